"""Connection package: endpoint addresses, connectors and session lifecycle."""

from connection.address import ServiceAddress
from connection.base import (
    TransportError,
    TransportOptions,
    register_transport,
    get_transport,
    list_protocols,
)
from connection.manager import ConnectionManager, Session

# Import connectors to trigger registration
from connection import jolokia  # noqa: E402, F401

__all__ = [
    "ServiceAddress",
    "TransportError",
    "TransportOptions",
    "register_transport",
    "get_transport",
    "list_protocols",
    "ConnectionManager",
    "Session",
]
