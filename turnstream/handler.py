"""Call handler - wires the turn pipeline to channel connections.

The CallHandler owns the long-lived pieces (LLM backend, function
dispatcher, orchestrator) and runs one receive loop per connection:

1. Create a CallSession with the caller's contact profile
2. Send the personalized greeting
3. Read inbound messages one at a time; each turn request is run to
   completion by the orchestrator before the next message is read
4. Stop after the agent ends the call or the platform disconnects
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger

from turnstream.config import AppConfig, load_config
from turnstream.core.contact import build_greeting
from turnstream.core.events import (
    CallDetails,
    ChannelSettings,
    OutboundConfig,
    OutboundPingPong,
    PingPong,
    is_turn_request,
    parse_inbound,
)
from turnstream.persona import TOOL_SCHEMAS
from turnstream.pipeline.dispatch import FunctionDispatcher, FunctionName
from turnstream.pipeline.emitter import ResponseEmitter
from turnstream.pipeline.orchestrator import (
    OrchestratorConfig,
    ResponseOrchestrator,
    TurnResult,
)
from turnstream.pipeline.prompt import PromptAssembler
from turnstream.providers.base import BaseLLM
from turnstream.providers.registry import provider_registry
from turnstream.session import CallSession, SessionStore
from turnstream.transports.base import BaseTransport, TransportClosed


class CallHandler:
    """Serves custom-LLM channel connections.

    Usage:
        handler = CallHandler("agent.yaml")
        await handler.start()
        await handler.handle_connection(transport, call_id="call_123")
        await handler.close()

    Args:
        config: App configuration (YAML path, dict, or AppConfig).
        llm: Optional LLM backend; created from config.llm when omitted.
        dispatcher: Optional function dispatcher; built from config.functions
            when omitted.
    """

    def __init__(
        self,
        config: AppConfig | dict | str | Path | None = None,
        llm: BaseLLM | None = None,
        dispatcher: FunctionDispatcher | None = None,
    ) -> None:
        self.config = load_config(config)
        self.sessions = SessionStore()

        self._llm = llm or provider_registry.create_llm(
            self.config.llm.provider, **self.config.llm.provider_kwargs()
        )
        self._dispatcher = dispatcher or FunctionDispatcher(
            webhooks=self._webhooks(),
            timeout=self.config.functions.timeout,
        )
        self.orchestrator = ResponseOrchestrator(
            llm=self._llm,
            dispatcher=self._dispatcher,
            assembler=PromptAssembler(system_prompt=self.config.agent.system_prompt),
            tools=TOOL_SCHEMAS,
            config=OrchestratorConfig(
                temperature=self.config.llm.temperature,
                max_tokens=self.config.llm.max_tokens,
                stream_idle_timeout=self.config.llm.stream_idle_timeout,
                followup=self.config.agent.followup,
                farewell=self.config.agent.farewell,
                fallback_message=self.config.agent.fallback_message,
                argument_error_message=self.config.agent.argument_error_message,
            ),
        )

    def _webhooks(self) -> dict[FunctionName, str]:
        functions = self.config.functions
        webhooks = {}
        if functions.calendar_webhook_url:
            webhooks[FunctionName.CHECK_CALENDAR] = functions.calendar_webhook_url
        if functions.crm_webhook_url:
            webhooks[FunctionName.CRM_LOOKUP] = functions.crm_webhook_url
        return webhooks

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Open shared clients."""
        await self._dispatcher.start()
        logger.info(
            f"CallHandler ready: LLM={self._llm.name} ({self._llm.model}), "
            f"followup={self.config.agent.followup}"
        )

    async def close(self) -> None:
        """Close shared clients."""
        await self._dispatcher.close()
        await self._llm.close()

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    async def handle_connection(
        self,
        transport: BaseTransport,
        call_id: str = "",
        contact: Any = None,
    ) -> CallSession:
        """Run a connection from greeting to hang-up or disconnect.

        Args:
            transport: The accepted channel connection.
            call_id: Platform call identifier.
            contact: Optional contact profile (JSON string or mapping).

        Returns:
            The finished session.
        """
        session = self.sessions.create(
            call_id=call_id,
            emitter=ResponseEmitter(transport),
        )
        session.set_contact(contact)

        try:
            if self.config.channel.send_config:
                await session.emitter.emit(OutboundConfig(config=ChannelSettings()))
            await self.send_greeting(session)

            async for raw in transport:
                await self.handle_message(session, raw)
                if session.call_ended:
                    logger.info(f"Call ended by agent: {session.call_id}")
                    break
        except TransportClosed:
            logger.info(f"Channel closed: session={session.session_id}")
        finally:
            self.sessions.remove(session.session_id)

        return session

    async def send_greeting(self, session: CallSession) -> None:
        """Send the opening line for a new session."""
        greeting = build_greeting(
            session.contact_payload,
            agent_name=self.config.agent.agent_name,
            company_name=self.config.agent.company_name,
        )
        await session.emitter.respond(0, greeting, content_complete=True)
        logger.info(f"Greeting sent: session={session.session_id}")

    async def handle_message(
        self, session: CallSession, raw: str | bytes | dict
    ) -> TurnResult | None:
        """Route one inbound message.

        Returns:
            The TurnResult when the message was a turn request, else None.
        """
        try:
            event = parse_inbound(raw)
        except ValueError as e:
            logger.warning(f"Skipping malformed inbound message: {e}")
            return None

        if event is None:
            logger.debug("Ignoring unsupported interaction type")
            return None

        if is_turn_request(event):
            result = await self.orchestrator.run_turn(
                event, session.contact_summary, session.emitter
            )
            session.record_turn(event.response_id)
            return result

        if isinstance(event, CallDetails):
            payload = event.contact_payload
            if payload is not None:
                session.set_contact(payload)
        elif isinstance(event, PingPong):
            if self.config.channel.answer_ping_pong:
                await session.emitter.emit(OutboundPingPong(timestamp=event.timestamp))
        return None
