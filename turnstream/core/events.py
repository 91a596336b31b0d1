"""Wire event model for the custom-LLM websocket channel.

Inbound messages from the voice platform are tagged on ``interaction_type``;
outbound messages on ``response_type``. Every message that crosses the
channel is parsed into, or serialized from, one of these Pydantic models.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


class InteractionType(str, Enum):
    RESPONSE_REQUIRED = "response_required"
    REMINDER_REQUIRED = "reminder_required"
    UPDATE_ONLY = "update_only"
    CALL_DETAILS = "call_details"
    PING_PONG = "ping_pong"


class Utterance(BaseModel):
    """One turn of the conversation transcript.

    Anything the platform labels other than "agent" ("user", "caller", ...)
    is the person on the line and is stored as "user".
    """

    model_config = ConfigDict(extra="ignore")

    role: Literal["user", "agent"]
    content: str = ""

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: Any) -> str:
        return "agent" if value == "agent" else "user"


# ---------------------------------------------------------------------------
# Inbound
# ---------------------------------------------------------------------------

class InboundEvent(BaseModel):
    """Base for everything the platform sends us."""

    model_config = ConfigDict(extra="ignore")


class ResponseRequired(InboundEvent):
    """The caller finished speaking and the agent must reply."""

    interaction_type: Literal["response_required"] = "response_required"
    response_id: int
    transcript: list[Utterance] = Field(default_factory=list)


class ReminderRequired(InboundEvent):
    """The caller has been silent; the agent should nudge them."""

    interaction_type: Literal["reminder_required"] = "reminder_required"
    response_id: int
    transcript: list[Utterance] = Field(default_factory=list)


class UpdateOnly(InboundEvent):
    """Transcript update that needs no response."""

    interaction_type: Literal["update_only"] = "update_only"
    transcript: list[Utterance] = Field(default_factory=list)


class CallDetails(InboundEvent):
    """Call metadata, sent once after the config handshake."""

    interaction_type: Literal["call_details"] = "call_details"
    call: dict[str, Any] = Field(default_factory=dict)

    @property
    def contact_payload(self) -> Any:
        """Contact profile attached to the call, if any."""
        variables = self.call.get("retell_llm_dynamic_variables") or {}
        metadata = self.call.get("metadata") or {}
        if isinstance(variables, dict) and variables.get("contact"):
            return variables["contact"]
        if isinstance(metadata, dict) and metadata.get("contact"):
            return metadata["contact"]
        return None


class PingPong(InboundEvent):
    """Keepalive from the platform."""

    interaction_type: Literal["ping_pong"] = "ping_pong"
    timestamp: int


TurnRequest = Union[ResponseRequired, ReminderRequired]

AnyInboundEvent = Annotated[
    Union[ResponseRequired, ReminderRequired, UpdateOnly, CallDetails, PingPong],
    Field(discriminator="interaction_type"),
]

_inbound_adapter = TypeAdapter(AnyInboundEvent)

HANDLED_INTERACTIONS = frozenset({
    InteractionType.RESPONSE_REQUIRED.value,
    InteractionType.REMINDER_REQUIRED.value,
})


# ---------------------------------------------------------------------------
# Outbound
# ---------------------------------------------------------------------------

class OutboundEvent(BaseModel):
    """Base for everything we send to the platform."""

    model_config = ConfigDict(extra="forbid")


class OutboundResponse(OutboundEvent):
    """Agent speech for a turn.

    Zero or more partial events (content_complete=False) precede exactly one
    terminal event (content_complete=True) per turn. end_call=True ends the
    session and is the last event ever sent.
    """

    response_type: Literal["response"] = "response"
    response_id: int
    content: str = ""
    content_complete: bool = False
    end_call: bool = False


class OutboundPingPong(OutboundEvent):
    response_type: Literal["ping_pong"] = "ping_pong"
    timestamp: int


class ChannelSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    auto_reconnect: bool = True
    call_details: bool = True


class OutboundConfig(OutboundEvent):
    response_type: Literal["config"] = "config"
    config: ChannelSettings = Field(default_factory=ChannelSettings)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_inbound(raw: str | bytes | dict) -> AnyInboundEvent | None:
    """Parse a raw inbound message.

    Returns None for interaction types this server does not model (they are
    ignored, not errors). Raises ValueError (json.JSONDecodeError or
    pydantic.ValidationError) for malformed payloads of a known type.
    """
    data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
    if not isinstance(data, dict):
        raise ValueError(f"Inbound message must be an object, got {type(data).__name__}")
    interaction = data.get("interaction_type")
    if interaction not in {t.value for t in InteractionType}:
        return None
    return _inbound_adapter.validate_python(data)


def is_turn_request(event: Any) -> bool:
    """Whether an inbound event asks the agent to speak."""
    return getattr(event, "interaction_type", None) in HANDLED_INTERACTIONS


def dumps_outbound(event: OutboundEvent) -> str:
    """Serialize an outbound event as compact JSON."""
    return json.dumps(event.model_dump(), separators=(",", ":"))
