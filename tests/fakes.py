"""Test doubles: a recording transport and a scripted LLM backend."""

import asyncio
import json

from turnstream.providers.base import BaseLLM, LLMChunk
from turnstream.transports.base import BaseTransport, TransportClosed


class RecordingTransport(BaseTransport):
    """In-memory transport: feeds queued inbound frames, records outbound ones."""

    def __init__(self, inbound=None, fail_after=None):
        self.sent: list[str] = []
        self._inbound = asyncio.Queue()
        self._connected = True
        self._fail_after = fail_after
        for item in inbound or []:
            self.feed(item)

    def feed(self, item):
        if isinstance(item, dict):
            item = json.dumps(item)
        self._inbound.put_nowait(item)

    def close_inbound(self):
        self._inbound.put_nowait(None)

    async def send(self, data: str) -> None:
        if not self._connected:
            raise TransportClosed("closed")
        if self._fail_after is not None and len(self.sent) >= self._fail_after:
            raise TransportClosed("peer went away")
        self.sent.append(data)

    async def recv(self) -> str:
        item = await self._inbound.get()
        if item is None:
            self._connected = False
            raise TransportClosed("closed")
        return item

    async def disconnect(self) -> None:
        self._connected = False

    def is_connected(self) -> bool:
        return self._connected

    @property
    def events(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]


class ScriptedLLM(BaseLLM):
    """Backend that replays one scripted stream per generate() call.

    A script item is an LLMChunk, an Exception (raised at that point), or
    the string "hang" (blocks forever).
    """

    def __init__(self, *scripts):
        self.scripts = list(scripts)
        self.calls: list[dict] = []
        self.closed = False

    async def generate(self, messages, tools=None, temperature=0.1, max_tokens=200):
        self.calls.append({
            "messages": messages,
            "tools": tools,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        script = self.scripts.pop(0) if self.scripts else []
        for item in script:
            if isinstance(item, Exception):
                raise item
            if item == "hang":
                await asyncio.Event().wait()
            yield item

    async def close(self) -> None:
        self.closed = True

    @property
    def model(self) -> str:
        return "scripted"


def text(content):
    return LLMChunk(text=content)


def call_start(name, call_id="call_1", arguments="", index=0):
    return LLMChunk(
        tool_call_index=index,
        tool_call_id=call_id,
        tool_name=name,
        tool_arguments=arguments,
    )


def call_args(arguments, index=0):
    return LLMChunk(tool_call_index=index, tool_arguments=arguments)


def finish(reason="stop"):
    return LLMChunk(finish_reason=reason)
