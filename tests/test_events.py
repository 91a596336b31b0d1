"""Tests for the channel wire events."""

import json

import pytest

from turnstream.core.events import (
    CallDetails,
    InteractionType,
    OutboundConfig,
    OutboundPingPong,
    OutboundResponse,
    PingPong,
    ReminderRequired,
    ResponseRequired,
    UpdateOnly,
    dumps_outbound,
    is_turn_request,
    parse_inbound,
)


# =========================================================================
# Inbound parsing
# =========================================================================


class TestParseInbound:

    def test_response_required(self):
        event = parse_inbound(json.dumps({
            "interaction_type": "response_required",
            "response_id": 5,
            "transcript": [
                {"role": "agent", "content": "Hi!"},
                {"role": "user", "content": "Hello", "words": []},
            ],
        }))
        assert isinstance(event, ResponseRequired)
        assert event.response_id == 5
        assert [u.role for u in event.transcript] == ["agent", "user"]
        assert is_turn_request(event)

    def test_reminder_required(self):
        event = parse_inbound({"interaction_type": "reminder_required", "response_id": 2})
        assert isinstance(event, ReminderRequired)
        assert event.transcript == []
        assert is_turn_request(event)

    def test_update_only_is_not_a_turn(self):
        event = parse_inbound({"interaction_type": "update_only", "transcript": []})
        assert isinstance(event, UpdateOnly)
        assert not is_turn_request(event)

    def test_bytes_input(self):
        event = parse_inbound(b'{"interaction_type": "ping_pong", "timestamp": 17}')
        assert isinstance(event, PingPong)
        assert event.timestamp == 17

    def test_unknown_type_is_ignored(self):
        assert parse_inbound({"interaction_type": "something_new"}) is None
        assert parse_inbound({"no_type": True}) is None

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            parse_inbound("{not json")

    def test_not_an_object(self):
        with pytest.raises(ValueError):
            parse_inbound("[1, 2]")

    def test_missing_response_id(self):
        with pytest.raises(ValueError):
            parse_inbound({"interaction_type": "response_required", "transcript": []})

    def test_non_agent_roles_are_the_caller(self):
        event = parse_inbound({
            "interaction_type": "response_required",
            "response_id": 1,
            "transcript": [
                {"role": "caller", "content": "hi"},
                {"role": "agent", "content": "Hello!"},
                {"role": "customer", "content": "bye"},
            ],
        })
        assert [u.role for u in event.transcript] == ["user", "agent", "user"]


class TestCallDetails:

    def test_contact_from_dynamic_variables(self):
        event = parse_inbound({
            "interaction_type": "call_details",
            "call": {"retell_llm_dynamic_variables": {"contact": '{"firstName": "Ana"}'}},
        })
        assert isinstance(event, CallDetails)
        assert event.contact_payload == '{"firstName": "Ana"}'

    def test_contact_from_metadata(self):
        event = CallDetails(call={"metadata": {"contact": {"firstName": "Ana"}}})
        assert event.contact_payload == {"firstName": "Ana"}

    def test_no_contact(self):
        assert CallDetails(call={"call_id": "abc"}).contact_payload is None


# =========================================================================
# Outbound serialization
# =========================================================================


class TestOutbound:

    def test_response_defaults(self):
        data = json.loads(dumps_outbound(OutboundResponse(response_id=1)))
        assert data == {
            "response_type": "response",
            "response_id": 1,
            "content": "",
            "content_complete": False,
            "end_call": False,
        }

    def test_ping_pong(self):
        data = json.loads(dumps_outbound(OutboundPingPong(timestamp=99)))
        assert data == {"response_type": "ping_pong", "timestamp": 99}

    def test_config(self):
        data = json.loads(dumps_outbound(OutboundConfig()))
        assert data == {
            "response_type": "config",
            "config": {"auto_reconnect": True, "call_details": True},
        }

    def test_interaction_values(self):
        assert InteractionType.RESPONSE_REQUIRED.value == "response_required"
        assert InteractionType.REMINDER_REQUIRED.value == "reminder_required"
