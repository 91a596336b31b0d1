"""Tests for the per-connection call handler."""

import httpx
import pytest

from fakes import RecordingTransport, ScriptedLLM, call_start, finish, text
from turnstream.config import AppConfig
from turnstream.handler import CallHandler
from turnstream.pipeline.dispatch import FunctionDispatcher
from turnstream.pipeline.emitter import ResponseEmitter


def _handler(*scripts, **config):
    dispatcher = FunctionDispatcher(
        client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={}))),
    )
    return CallHandler(AppConfig.from_dict(config), llm=ScriptedLLM(*scripts), dispatcher=dispatcher)


def _turn(response_id, content="Hello?"):
    return {
        "interaction_type": "response_required",
        "response_id": response_id,
        "transcript": [{"role": "user", "content": content}],
    }


class TestCallHandler:

    def test_builds_llm_from_config(self):
        handler = CallHandler({"llm_provider": "openai", "api_key": "test-key"})
        assert handler._llm.model == "llama3-70b-8192"
        assert handler._llm.name == "OpenAILLM"

    def test_webhooks_from_config(self):
        handler = CallHandler({
            "api_key": "test-key",
            "calendar_webhook_url": "https://hooks.test/cal",
        })
        assert [f.value for f in handler._dispatcher.webhooks] == ["check_calendar_tidycal"]

    @pytest.mark.asyncio
    async def test_greeting_then_turns(self):
        handler = _handler([text("Hi Ana!")], [text("Sure.")])
        transport = RecordingTransport([_turn(1), _turn(2)])
        transport.close_inbound()

        session = await handler.handle_connection(
            transport, call_id="call_1", contact='{"firstName": "Ana"}'
        )

        events = transport.events
        assert events[0] == {
            "response_type": "response",
            "response_id": 0,
            "content": "Hi Ana, I'm Katie from PestAway Solutions. How can I help you today?",
            "content_complete": True,
            "end_call": False,
        }
        assert [(e["response_id"], e["content"]) for e in events[1:]] == [
            (1, "Hi Ana!"), (1, ""), (2, "Sure."), (2, ""),
        ]
        assert session.turns_handled == 2
        assert session.last_response_id == 2
        assert handler.sessions.active_count == 0

    @pytest.mark.asyncio
    async def test_contact_summary_reaches_prompt(self):
        handler = _handler([text("ok")])
        transport = RecordingTransport([_turn(1)])
        transport.close_inbound()

        await handler.handle_connection(transport, contact={"firstName": "Ana"})

        messages = handler._llm.calls[0]["messages"]
        assert messages[1].content == "[Contact Information: Customer: Ana]"

    @pytest.mark.asyncio
    async def test_call_details_sets_contact(self):
        handler = _handler([text("ok")])
        transport = RecordingTransport([
            {
                "interaction_type": "call_details",
                "call": {"metadata": {"contact": {"companyName": "Acme"}}},
            },
            _turn(1),
        ])
        transport.close_inbound()

        await handler.handle_connection(transport)

        messages = handler._llm.calls[0]["messages"]
        assert messages[1].content == "[Contact Information: Company: Acme]"

    @pytest.mark.asyncio
    async def test_ignored_and_malformed_messages(self):
        handler = _handler([text("ok")])
        transport = RecordingTransport([
            "{not json",
            {"interaction_type": "update_only", "transcript": []},
            {"interaction_type": "brand_new_type"},
            _turn(1),
        ])
        transport.close_inbound()

        session = await handler.handle_connection(transport)

        assert session.turns_handled == 1
        assert len(transport.events) == 3

    @pytest.mark.asyncio
    async def test_caller_role_turn_is_answered(self, transport):
        handler = _handler([text("Hello")])
        session = handler.sessions.create(emitter=ResponseEmitter(transport))

        result = await handler.handle_message(session, {
            "interaction_type": "response_required",
            "response_id": 1,
            "transcript": [{"role": "caller", "content": "hi"}],
        })

        assert result.terminal_sent
        assert [(e["content"], e["content_complete"]) for e in transport.events] == [
            ("Hello", False), ("", True),
        ]
        assert handler._llm.calls[0]["messages"][-1].role == "user"

    @pytest.mark.asyncio
    async def test_configured_fallback_is_spoken(self, transport):
        handler = _handler(
            [RuntimeError("backend down")],
            agent={"fallback_message": "Sorry, say that once more?"},
        )
        session = handler.sessions.create(emitter=ResponseEmitter(transport))

        await handler.handle_message(session, _turn(1))

        assert transport.events[-1]["content"] == "Sorry, say that once more?"
        assert transport.events[-1]["content_complete"] is True
        assert handler.orchestrator.config.argument_error_message == (
            handler.config.agent.argument_error_message
        )

    @pytest.mark.asyncio
    async def test_ping_pong(self):
        handler = _handler()
        transport = RecordingTransport([{"interaction_type": "ping_pong", "timestamp": 123}])
        transport.close_inbound()

        await handler.handle_connection(transport)
        assert transport.events[-1] == {"response_type": "ping_pong", "timestamp": 123}

    @pytest.mark.asyncio
    async def test_ping_pong_disabled(self):
        handler = _handler(channel={"answer_ping_pong": False})
        transport = RecordingTransport([{"interaction_type": "ping_pong", "timestamp": 123}])
        transport.close_inbound()

        await handler.handle_connection(transport)
        assert len(transport.events) == 1

    @pytest.mark.asyncio
    async def test_config_event_first(self):
        handler = _handler(channel={"send_config": True})
        transport = RecordingTransport()
        transport.close_inbound()

        await handler.handle_connection(transport)
        assert transport.events[0]["response_type"] == "config"
        assert transport.events[1]["response_id"] == 0

    @pytest.mark.asyncio
    async def test_end_call_stops_loop(self):
        handler = _handler([call_start("end_call", arguments="{}"), finish()])
        transport = RecordingTransport([_turn(1), _turn(2)])

        session = await handler.handle_connection(transport)

        assert transport.events[-1]["end_call"] is True
        assert session.turns_handled == 1
        assert session.call_ended
        assert len(handler._llm.calls) == 1

    @pytest.mark.asyncio
    async def test_peer_disconnect_mid_turn(self):
        handler = _handler([text("a"), text("b")])
        transport = RecordingTransport([_turn(1)], fail_after=2)

        session = await handler.handle_connection(transport)

        assert len(transport.sent) == 2
        assert not session.is_active

    @pytest.mark.asyncio
    async def test_lifecycle(self):
        handler = _handler()
        await handler.start()
        await handler.close()
        assert handler._llm.closed
