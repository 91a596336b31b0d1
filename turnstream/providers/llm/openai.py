"""OpenAI-compatible streaming LLM providers.

Uses the Chat Completions API with streaming and tool calling. The same
client drives any OpenAI-compatible endpoint; GroqLLM simply points it at
Groq's base URL.

API key: https://platform.openai.com/ or https://console.groq.com/
"""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

from loguru import logger
from openai import AsyncOpenAI

from turnstream.providers.base import BaseLLM, LLMChunk, Message


GROQ_BASE_URL = "https://api.groq.com/openai/v1"


class OpenAILLM(BaseLLM):
    """OpenAI Chat Completions streaming provider.

    Translates every streamed delta into one LLMChunk. Tool call deltas are
    passed through as fragments (id/name on the first fragment, argument text
    on every fragment) so the orchestrator can run its own state machine
    over them.

    Args:
        api_key: API key for the endpoint.
        model: Model identifier (default: "gpt-4o-mini").
        base_url: Optional custom API base URL (Groq, Azure, local models).
        frequency_penalty: Frequency penalty sent with every request.
        presence_penalty: Presence penalty sent with every request.
        max_retries: Max client-level retries (default: 0; turns are not retried).
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        frequency_penalty: float = 0.0,
        presence_penalty: float = 0.0,
        max_retries: int = 0,
    ):
        self._model_name = model
        self._frequency_penalty = frequency_penalty
        self._presence_penalty = presence_penalty
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            max_retries=max_retries,
        )

    async def generate(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
        temperature: float = 0.1,
        max_tokens: int = 200,
    ) -> AsyncIterator[LLMChunk]:
        """Stream a response from the chat completions endpoint."""
        kwargs: dict[str, Any] = {
            "model": self._model_name,
            "messages": self._convert_messages(messages),
            "temperature": temperature,
            "max_tokens": max_tokens,
            "frequency_penalty": self._frequency_penalty,
            "presence_penalty": self._presence_penalty,
            "stream": True,
        }

        if tools:
            kwargs["tools"] = tools

        logger.debug(
            f"{self.name} request: model={self._model_name}, "
            f"messages={len(messages)}, tools={len(tools or [])}"
        )

        stream = await self._client.chat.completions.create(**kwargs)

        async for chunk in stream:
            if chunk.usage:
                yield LLMChunk(
                    is_final=True,
                    input_tokens=chunk.usage.prompt_tokens,
                    output_tokens=chunk.usage.completion_tokens,
                )

            if not chunk.choices:
                continue

            choice = chunk.choices[0]
            delta = choice.delta
            finish_reason = choice.finish_reason or ""

            if delta and delta.tool_calls:
                for tc in delta.tool_calls:
                    yield LLMChunk(
                        tool_call_index=tc.index or 0,
                        tool_call_id=tc.id or "",
                        tool_name=(tc.function.name or "") if tc.function else "",
                        tool_arguments=(tc.function.arguments or "") if tc.function else "",
                        finish_reason=finish_reason,
                    )
                continue

            yield LLMChunk(
                text=(delta.content or "") if delta else "",
                finish_reason=finish_reason,
            )

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    @property
    def model(self) -> str:
        return self._model_name

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _convert_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert Message objects to the chat completions format."""
        oai_messages = []

        for msg in messages:
            oai_msg: dict[str, Any] = {"role": msg.role}

            if msg.role == "tool":
                oai_msg["content"] = msg.content or ""
                oai_msg["tool_call_id"] = msg.tool_call_id
            elif msg.tool_calls:
                oai_msg["content"] = msg.content or None
                oai_msg["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments),
                        },
                    }
                    for tc in msg.tool_calls
                ]
            else:
                oai_msg["content"] = msg.content

            oai_messages.append(oai_msg)

        return oai_messages


class GroqLLM(OpenAILLM):
    """Groq-hosted models through the OpenAI-compatible endpoint."""

    def __init__(
        self,
        api_key: str,
        model: str = "llama3-70b-8192",
        base_url: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            api_key=api_key,
            model=model,
            base_url=base_url or GROQ_BASE_URL,
            **kwargs,
        )
