"""Call session management for turnstream.

Each websocket connection gets a CallSession that owns the session-scoped
state: the contact profile and its summary, the outbound emitter, and turn
bookkeeping. The SessionStore tracks all live sessions for the status
endpoints.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from turnstream.core.contact import build_contact_summary
from turnstream.pipeline.emitter import ResponseEmitter


@dataclass
class CallSession:
    """Represents a single live channel connection.

    The contact summary is computed once when the session starts and only
    recomputed when a new profile arrives. It is never shared between
    sessions.
    """

    # Unique session identifier
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    # Call identifier from the platform (websocket path)
    call_id: str = ""

    emitter: ResponseEmitter | None = None

    # Contact state
    contact_payload: Any = None
    contact_summary: str = ""

    # Turn bookkeeping
    turns_handled: int = 0
    last_response_id: int | None = None

    # State
    is_active: bool = True
    started_at: float = field(default_factory=time.time)
    ended_at: float | None = None

    def set_contact(self, payload: Any) -> str:
        """Store a contact profile and recompute the summary."""
        self.contact_payload = payload
        self.contact_summary = build_contact_summary(payload)
        logger.debug(
            f"Session {self.session_id}: contact summary "
            f"{'set' if self.contact_summary else 'empty'}"
        )
        return self.contact_summary

    def record_turn(self, response_id: int) -> None:
        self.turns_handled += 1
        self.last_response_id = response_id

    def end(self) -> None:
        """Mark the session as ended."""
        if self.is_active:
            self.is_active = False
            self.ended_at = time.time()

    @property
    def call_ended(self) -> bool:
        """Whether end_call has been sent on this session."""
        return bool(self.emitter and self.emitter.call_ended)

    @property
    def duration_ms(self) -> int:
        """Session duration in milliseconds."""
        end = self.ended_at or time.time()
        return int((end - self.started_at) * 1000)


class SessionStore:
    """Store for live call sessions.

    Provides lookup by session_id or call_id.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, CallSession] = {}
        self._call_id_map: dict[str, str] = {}  # call_id -> session_id

    def create(self, **kwargs) -> CallSession:
        """Create and store a new session."""
        session = CallSession(**kwargs)
        self._sessions[session.session_id] = session
        if session.call_id:
            self._call_id_map[session.call_id] = session.session_id
        logger.info(f"Session created: {session.session_id} (call: {session.call_id})")
        return session

    def get(self, session_id: str) -> CallSession | None:
        """Get a session by session_id."""
        return self._sessions.get(session_id)

    def get_by_call_id(self, call_id: str) -> CallSession | None:
        """Get a session by call_id."""
        session_id = self._call_id_map.get(call_id)
        if session_id:
            return self._sessions.get(session_id)
        return None

    def remove(self, session_id: str) -> None:
        """Remove a session from the store."""
        session = self._sessions.pop(session_id, None)
        if session:
            session.end()
            self._call_id_map.pop(session.call_id, None)
            logger.info(
                f"Session removed: {session.session_id} "
                f"(duration: {session.duration_ms}ms, turns: {session.turns_handled})"
            )

    @property
    def active_count(self) -> int:
        """Number of active sessions."""
        return sum(1 for s in self._sessions.values() if s.is_active)

    @property
    def all_sessions(self) -> list[CallSession]:
        """All stored sessions."""
        return list(self._sessions.values())
