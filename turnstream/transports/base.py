"""Base transport interface for turnstream.

A transport wraps one accepted websocket connection from the voice
platform. It only moves text frames; framing and parsing live elsewhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator


class TransportClosed(Exception):
    """The peer closed the connection."""


class BaseTransport(ABC):
    """Abstract base class for channel connections."""

    @abstractmethod
    async def send(self, data: str) -> None:
        """Send one text frame.

        Args:
            data: Serialized JSON message.
        """
        ...

    @abstractmethod
    async def recv(self) -> str:
        """Receive the next text frame.

        Raises:
            TransportClosed: If the connection is closed.
        """
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection gracefully."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the connection is still open."""
        ...

    async def __aiter__(self) -> AsyncIterator[str]:
        """Iterate over incoming frames until the peer disconnects."""
        while self.is_connected():
            try:
                msg = await self.recv()
            except TransportClosed:
                break
            yield msg
