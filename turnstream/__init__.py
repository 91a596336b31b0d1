"""turnstream - Streaming custom-LLM server for voice agents.

Answers a voice platform's custom-LLM websocket: every turn request is
streamed through an OpenAI-compatible backend, function calls are
dispatched to webhooks, and the reply goes back as partial responses
closed by a single final one.

Quick start (config-driven):
    $ pip install turnstream
    $ turnstream init          # generates agent.yaml
    $ turnstream run --config agent.yaml

Quick start (programmatic):
    from turnstream import CallHandler
    from turnstream.server import create_app

    app = create_app({
        "llm_provider": "groq",
        "port": 8080,
        "calendar_webhook_url": "https://hooks.example.com/calendar",
    })
"""

__version__ = "0.1.0"

# Core
from turnstream.config import AppConfig, load_config
from turnstream.handler import CallHandler
from turnstream.session import CallSession, SessionStore

# Events
from turnstream.core.contact import build_contact_summary, build_greeting
from turnstream.core.events import (
    CallDetails,
    InteractionType,
    OutboundResponse,
    PingPong,
    ReminderRequired,
    ResponseRequired,
    UpdateOnly,
    Utterance,
    parse_inbound,
)

# Transports
from turnstream.transports.base import BaseTransport, TransportClosed

# Turn pipeline
from turnstream.pipeline.dispatch import FunctionDispatcher, FunctionName
from turnstream.pipeline.emitter import ResponseEmitter
from turnstream.pipeline.orchestrator import (
    OrchestratorConfig,
    ResponseOrchestrator,
    TurnResult,
)
from turnstream.pipeline.prompt import PromptAssembler

# LLM providers
from turnstream.providers.base import BaseLLM, LLMChunk
from turnstream.providers.registry import provider_registry

__all__ = [
    # Core
    "AppConfig",
    "load_config",
    "CallHandler",
    "CallSession",
    "SessionStore",
    # Events
    "build_contact_summary",
    "build_greeting",
    "CallDetails",
    "InteractionType",
    "OutboundResponse",
    "PingPong",
    "ReminderRequired",
    "ResponseRequired",
    "UpdateOnly",
    "Utterance",
    "parse_inbound",
    # Transports
    "BaseTransport",
    "TransportClosed",
    # Turn pipeline
    "FunctionDispatcher",
    "FunctionName",
    "ResponseEmitter",
    "OrchestratorConfig",
    "ResponseOrchestrator",
    "TurnResult",
    "PromptAssembler",
    # LLM providers
    "BaseLLM",
    "LLMChunk",
    "provider_registry",
]
