"""Channel transports."""

from turnstream.transports.base import BaseTransport, TransportClosed

__all__ = ["BaseTransport", "TransportClosed"]
