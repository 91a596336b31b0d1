"""Streaming response orchestrator - one turn, from request to final event.

This is the heart of turnstream. For every response_required or
reminder_required request it:

1. Assembles the prompt for the turn
2. Opens a streaming call to the LLM backend
3. Forwards plain text deltas to the channel as partial responses
4. Recognizes a function call declaration inside the stream, accumulates
   its argument fragments, and dispatches it once the declaration ends
5. Turns the function result into the turn's final response
6. Guarantees the turn ends with exactly one content_complete response,
   followed by an end_call response when the agent hangs up

The tool-call handling is an explicit state machine:

    STREAMING_TEXT --call start--> ACCUMULATING_CALL --declaration end-->
    DISPATCHING --> DONE

Only the first call of a turn is ever dispatched. Once a call has been
recognized, further text and any other call fragments are ignored.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, AsyncIterator

from loguru import logger

from turnstream.core.events import TurnRequest
from turnstream.pipeline.dispatch import (
    ArgumentParseError,
    FunctionCall,
    FunctionDispatcher,
    FunctionName,
)
from turnstream.pipeline.emitter import ResponseEmitter
from turnstream.pipeline.prompt import PromptAssembler
from turnstream.providers.base import BaseLLM, LLMChunk, Message


class OrchestratorState(str, Enum):
    STREAMING_TEXT = "streaming_text"
    ACCUMULATING_CALL = "accumulating_call"
    DISPATCHING = "dispatching"
    DONE = "done"


class UnitKind(str, Enum):
    """How a single stream unit drives the state machine."""

    TEXT = "text"
    CALL_START = "call_start"  # carries the call id and name
    CALL_ARGS = "call_args"  # argument text only
    OTHER = "other"  # e.g. the finish chunk; ends a call declaration


def classify_unit(chunk: LLMChunk) -> UnitKind:
    """Classify a stream unit using only its own fields."""
    if chunk.starts_tool_call:
        return UnitKind.CALL_START
    if chunk.has_tool_data:
        return UnitKind.CALL_ARGS
    if chunk.text:
        return UnitKind.TEXT
    return UnitKind.OTHER


def _suggested_times(result: dict[str, Any]) -> list[str]:
    times = result.get("suggested_times")
    if not isinstance(times, list):
        return []
    return [str(t) for t in times]


def render_function_result(name: str, result: dict[str, Any]) -> str:
    """Turn a function result into what the agent says next.

    - An available slot is confirmed, with any alternatives listed.
    - A successful CRM lookup passes the provider's message through.
    - Anything else, errors included, becomes the "not available" apology.
    """
    times = _suggested_times(result)

    if result.get("available"):
        content = f"Great! {result.get('message') or 'That time slot is available.'}"
        if times:
            content += f" I also have these alternative times available: {', '.join(times)}."
        return content

    if result.get("success") and name == FunctionName.CRM_LOOKUP.value:
        return result.get("message") or "Contact information found."

    content = "I'm sorry, that time slot isn't available. Let me suggest some alternatives."
    if times:
        content += f" How about: {', '.join(times)}?"
    return content


@dataclass
class OrchestratorConfig:
    """Settings for the response orchestrator.

    Args:
        temperature: Sampling temperature for every backend call.
        max_tokens: Max tokens per backend call.
        stream_idle_timeout: Seconds to wait for each stream unit (None = no limit).
        followup: "template" renders function results with fixed wording;
            "llm" feeds the result back to the backend and streams its reply.
        farewell: Content of the final end_call response.
        fallback_message: Said when the backend fails before producing anything.
        argument_error_message: Said when a function call has unparsable arguments.
    """

    temperature: float = 0.1
    max_tokens: int = 200
    stream_idle_timeout: float | None = 15.0
    followup: str = "template"
    farewell: str = "Thank you for calling PestAway Solutions!"
    fallback_message: str = "I'm sorry, I had a brief issue on my end. Could you say that again?"
    argument_error_message: str = "I'm sorry, I couldn't process that request. Could you repeat it?"


@dataclass
class TurnResult:
    """Outcome of one orchestrated turn."""

    response_id: int
    state: OrchestratorState = OrchestratorState.STREAMING_TEXT
    partial_count: int = 0
    terminal_sent: bool = False
    function_call: FunctionCall | None = None
    dispatched: bool = False
    ended_call: bool = False
    error: str = ""


class ResponseOrchestrator:
    """Runs turns against the LLM backend and writes responses to the channel.

    One orchestrator can serve many sessions; everything that changes during
    a turn lives in that turn's TurnResult, and session state (the contact
    summary) is passed in on every call.

    Usage:
        orchestrator = ResponseOrchestrator(llm, dispatcher, assembler, tools)
        result = await orchestrator.run_turn(request, session.contact_summary, emitter)
    """

    def __init__(
        self,
        llm: BaseLLM,
        dispatcher: FunctionDispatcher,
        assembler: PromptAssembler,
        tools: list[dict[str, Any]] | None = None,
        config: OrchestratorConfig | None = None,
    ):
        self._llm = llm
        self._dispatcher = dispatcher
        self._assembler = assembler
        self._tools = tools or None
        self.config = config or OrchestratorConfig()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run_turn(
        self,
        request: TurnRequest,
        contact_summary: str,
        emitter: ResponseEmitter,
    ) -> TurnResult:
        """Process one turn request to completion.

        Backend failures are logged and absorbed; the turn still ends with a
        terminal response. Transport failures from the emitter propagate.
        """
        turn = TurnResult(response_id=request.response_id)
        logger.info(
            f"Turn {request.response_id} ({request.interaction_type}): "
            f"{len(request.transcript)} utterances"
        )

        messages = self._assembler.build(request, contact_summary)
        await self._consume(turn, messages, emitter, request, contact_summary)

        if turn.state is OrchestratorState.ACCUMULATING_CALL:
            # Stream ended without an explicit end-of-declaration unit
            logger.debug(f"Stream ended mid-declaration, finalizing {turn.function_call.name}")
            await self._dispatch(turn, emitter, request, contact_summary)

        if not turn.terminal_sent:
            content = self.config.fallback_message if turn.error and not turn.partial_count else ""
            await self._terminal(turn, emitter, content)

        turn.state = OrchestratorState.DONE
        logger.info(
            f"Turn {turn.response_id} done: partials={turn.partial_count}, "
            f"function={turn.function_call.name if turn.function_call else None}, "
            f"end_call={turn.ended_call}"
        )
        return turn

    # ------------------------------------------------------------------
    # Internal: stream consumption
    # ------------------------------------------------------------------

    async def _consume(
        self,
        turn: TurnResult,
        messages: list[Message],
        emitter: ResponseEmitter,
        request: TurnRequest,
        contact_summary: str,
    ) -> None:
        """Drive the state machine over the backend stream."""
        stream = self._llm.generate(
            messages=messages,
            tools=self._tools,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )
        try:
            while turn.state in (
                OrchestratorState.STREAMING_TEXT,
                OrchestratorState.ACCUMULATING_CALL,
            ):
                chunk = await self._next_unit(stream, turn)
                if chunk is None:
                    break
                await self._on_unit(turn, chunk, emitter, request, contact_summary)
        finally:
            await self._close_stream(stream)

    async def _next_unit(
        self, stream: AsyncIterator[LLMChunk], turn: TurnResult
    ) -> LLMChunk | None:
        """Await the next stream unit. Returns None when the stream is over."""
        try:
            if self.config.stream_idle_timeout:
                return await asyncio.wait_for(
                    stream.__anext__(), self.config.stream_idle_timeout
                )
            return await stream.__anext__()
        except StopAsyncIteration:
            return None
        except asyncio.TimeoutError:
            logger.error(
                f"LLM stream idle for {self.config.stream_idle_timeout}s "
                f"on response {turn.response_id}"
            )
            turn.error = "stream timeout"
            return None
        except Exception as e:
            logger.error(f"Error in LLM stream: {e}")
            turn.error = str(e) or type(e).__name__
            return None

    @staticmethod
    async def _close_stream(stream: AsyncIterator[LLMChunk]) -> None:
        aclose = getattr(stream, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug(f"Error closing LLM stream: {e}")

    async def _on_unit(
        self,
        turn: TurnResult,
        chunk: LLMChunk,
        emitter: ResponseEmitter,
        request: TurnRequest,
        contact_summary: str,
    ) -> None:
        """Apply one stream unit to the turn's state machine."""
        kind = classify_unit(chunk)

        if turn.state is OrchestratorState.STREAMING_TEXT:
            if kind is UnitKind.TEXT:
                await emitter.respond(turn.response_id, chunk.text, content_complete=False)
                turn.partial_count += 1
            elif kind is UnitKind.CALL_START:
                turn.function_call = FunctionCall(
                    id=chunk.tool_call_id,
                    name=chunk.tool_name,
                    index=chunk.tool_call_index or 0,
                )
                turn.function_call.append(chunk.tool_arguments)
                turn.state = OrchestratorState.ACCUMULATING_CALL
                logger.info(f"Function call started: {chunk.tool_name} ({chunk.tool_call_id})")
            return

        if turn.state is OrchestratorState.ACCUMULATING_CALL:
            call = turn.function_call
            if kind in (UnitKind.CALL_START, UnitKind.CALL_ARGS):
                same_call = (chunk.tool_call_index or 0) == call.index and (
                    not chunk.tool_call_id or chunk.tool_call_id == call.id
                )
                if same_call:
                    call.append(chunk.tool_arguments)
                else:
                    logger.warning(
                        f"Ignoring additional function call fragment "
                        f"({chunk.tool_name or chunk.tool_call_id or chunk.tool_call_index}) "
                        f"while {call.name} is pending"
                    )
            elif kind is UnitKind.OTHER:
                await self._dispatch(turn, emitter, request, contact_summary)
            # Text after a call has been recognized is suppressed

    # ------------------------------------------------------------------
    # Internal: dispatch and completion
    # ------------------------------------------------------------------

    async def _dispatch(
        self,
        turn: TurnResult,
        emitter: ResponseEmitter,
        request: TurnRequest,
        contact_summary: str,
    ) -> None:
        """Finalize the pending call, run it, and complete the turn."""
        turn.state = OrchestratorState.DISPATCHING
        call = turn.function_call

        try:
            call.finalize()
        except ArgumentParseError as e:
            logger.error(f"Not dispatching {call.name}: {e}")
            await self._terminal(turn, emitter, self.config.argument_error_message)
            turn.state = OrchestratorState.DONE
            return

        result = await self._dispatcher.dispatch(call.name, call.arguments)
        call.result = json.dumps(result)
        turn.dispatched = True

        if call.function is FunctionName.END_CALL:
            await self._terminal(turn, emitter, "")
            await emitter.respond(
                turn.response_id,
                self.config.farewell,
                content_complete=True,
                end_call=True,
            )
            turn.ended_call = True
        elif self.config.followup == "llm":
            await self._follow_up(turn, emitter, request, contact_summary, result)
        else:
            await self._terminal(turn, emitter, render_function_result(call.name, result))

        turn.state = OrchestratorState.DONE

    async def _follow_up(
        self,
        turn: TurnResult,
        emitter: ResponseEmitter,
        request: TurnRequest,
        contact_summary: str,
        result: dict[str, Any],
    ) -> None:
        """Feed the function result back to the backend and stream its reply.

        Function calls in the follow-up are ignored. If the follow-up fails
        or says nothing, the fixed wording is used instead.
        """
        call = turn.function_call
        messages = self._assembler.build(request, contact_summary, function_result=call)
        stream = self._llm.generate(
            messages=messages,
            tools=self._tools,
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

        spoken = 0
        try:
            while True:
                chunk = await self._next_unit(stream, turn)
                if chunk is None:
                    break
                if classify_unit(chunk) is UnitKind.TEXT:
                    await emitter.respond(turn.response_id, chunk.text, content_complete=False)
                    turn.partial_count += 1
                    spoken += 1
        finally:
            await self._close_stream(stream)

        if spoken:
            await self._terminal(turn, emitter, "")
        else:
            await self._terminal(turn, emitter, render_function_result(call.name, result))

    async def _terminal(self, turn: TurnResult, emitter: ResponseEmitter, content: str) -> None:
        """Send the turn's single content_complete response."""
        if turn.terminal_sent:
            return
        await emitter.respond(turn.response_id, content, content_complete=True)
        turn.terminal_sent = True
