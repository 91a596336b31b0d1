"""Outbound event emitter.

Serializes protocol events onto the channel one at a time, in the order
they are produced. Once an end_call response has gone out the emitter is
sealed and drops anything else.
"""

from __future__ import annotations

from loguru import logger

from turnstream.core.events import OutboundEvent, OutboundResponse, dumps_outbound
from turnstream.transports.base import BaseTransport


class ResponseEmitter:
    """Writes outbound events to a transport.

    Args:
        transport: The channel connection to write to.
    """

    def __init__(self, transport: BaseTransport):
        self._transport = transport
        self._sent = 0
        self._call_ended = False

    async def emit(self, event: OutboundEvent) -> bool:
        """Send one event and wait until the transport has taken it.

        Returns:
            True if sent, False if dropped because the call already ended.
        """
        if self._call_ended:
            logger.warning(
                f"Dropping {type(event).__name__} after end_call was sent"
            )
            return False

        await self._transport.send(dumps_outbound(event))
        self._sent += 1

        if isinstance(event, OutboundResponse) and event.end_call:
            self._call_ended = True
            logger.info(f"end_call sent for response {event.response_id}")
        return True

    async def respond(
        self,
        response_id: int,
        content: str,
        content_complete: bool,
        end_call: bool = False,
    ) -> bool:
        """Shorthand for emitting an OutboundResponse."""
        return await self.emit(
            OutboundResponse(
                response_id=response_id,
                content=content,
                content_complete=content_complete,
                end_call=end_call,
            )
        )

    @property
    def sent_count(self) -> int:
        """Number of events written so far."""
        return self._sent

    @property
    def call_ended(self) -> bool:
        """Whether an end_call response has been sent."""
        return self._call_ended
