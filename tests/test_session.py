"""Tests for call sessions and the session store."""

from fakes import RecordingTransport
from turnstream.pipeline.emitter import ResponseEmitter
from turnstream.session import CallSession, SessionStore


class TestCallSession:

    def test_contact_summary_per_session(self):
        a = CallSession(call_id="a")
        b = CallSession(call_id="b")
        a.set_contact({"firstName": "Ana"})
        b.set_contact('{"firstName": "Ben"}')

        assert a.contact_summary == "[Contact Information: Customer: Ana]"
        assert b.contact_summary == "[Contact Information: Customer: Ben]"

    def test_contact_replaced(self):
        session = CallSession()
        session.set_contact({"firstName": "Ana"})
        session.set_contact(None)
        assert session.contact_summary == ""

    def test_record_turn(self):
        session = CallSession()
        session.record_turn(4)
        session.record_turn(5)
        assert session.turns_handled == 2
        assert session.last_response_id == 5

    def test_call_ended_follows_emitter(self):
        session = CallSession(emitter=ResponseEmitter(RecordingTransport()))
        assert not session.call_ended
        session.emitter._call_ended = True
        assert session.call_ended

    def test_end(self):
        session = CallSession()
        session.end()
        assert not session.is_active
        assert session.ended_at is not None
        assert session.duration_ms >= 0


class TestSessionStore:

    def test_create_and_lookup(self):
        store = SessionStore()
        session = store.create(call_id="call_1")
        assert store.get(session.session_id) is session
        assert store.get_by_call_id("call_1") is session
        assert store.active_count == 1

    def test_remove(self):
        store = SessionStore()
        session = store.create(call_id="call_1")
        store.remove(session.session_id)

        assert store.get(session.session_id) is None
        assert store.get_by_call_id("call_1") is None
        assert not session.is_active
        assert store.active_count == 0

    def test_remove_unknown_is_noop(self):
        store = SessionStore()
        store.remove("missing")
        assert store.all_sessions == []
