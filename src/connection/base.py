"""Connector contract and protocol registry.

A connector (transport) is the protocol client behind a session. Connectors
register themselves for one or more address protocols:

    @register_transport('http', 'https')
    class JolokiaTransport:
        ...

Connectors raise the exceptions defined here; the pipeline steps translate
them into the probe error taxonomy.
"""

from dataclasses import dataclass
from typing import Any, Optional, Protocol, Union, runtime_checkable

from connection.address import ServiceAddress
from mbean.object_name import ObjectName

DEFAULT_CHECK_PERIOD = 5.0  # seconds between dead-connection probes
DEFAULT_TIMEOUT = 30.0


class TransportError(Exception):
    """Generic I/O failure talking to the management endpoint."""

    def __init__(self, message: str, remote_type: Optional[str] = None):
        self.message = message
        self.remote_type = remote_type
        super().__init__(message)


class TransportUnavailableError(TransportError):
    """Endpoint refused the connection or could not be reached."""


class AuthenticationError(TransportError):
    """Endpoint rejected the credentials."""


class UnsupportedProtocolError(TransportError):
    """No connector is registered for the address protocol."""

    def __init__(self, protocol: str):
        self.protocol = protocol
        available = ', '.join(list_protocols()) or 'none'
        super().__init__(f"Unsupported protocol: {protocol} (available: {available})")


class RemoteInstanceNotFoundError(TransportError):
    """MBean is not registered on the remote server."""


class RemoteAttributeNotFoundError(TransportError):
    """MBean has no such attribute."""


class RemoteReflectionError(TransportError):
    """Remote introspection or reflection failed."""


class RemoteOperationError(TransportError):
    """The remote getter or operation raised an exception."""


@dataclass(frozen=True)
class TransportOptions:
    """Settings handed to a connector when a session is opened."""
    credentials: Optional[tuple[str, str]] = None
    check_period: float = DEFAULT_CHECK_PERIOD
    timeout: float = DEFAULT_TIMEOUT
    verify: Union[bool, str] = True


@runtime_checkable
class Transport(Protocol):
    """Protocol for connectors.

    Constructed with ``(address, options)``; ``connect()`` performs the
    handshake and must be called before any query.
    """

    def connect(self) -> None:
        ...

    def query_names(self, pattern: ObjectName) -> list[ObjectName]:
        """Return the names of all MBeans selected by ``pattern``."""
        ...

    def get_attribute(self, name: ObjectName, attribute: str) -> Any:
        ...

    def invoke(self, name: ObjectName, operation: str) -> Any:
        """Invoke a no-argument operation."""
        ...

    def close(self) -> None:
        ...


# Registry of connectors by address protocol
_transports: dict[str, type] = {}


def register_transport(*protocols: str):
    """Decorator to register a connector class for address protocols."""
    def decorator(cls: type) -> type:
        for protocol in protocols:
            _transports[protocol.lower()] = cls
        return cls
    return decorator


def get_transport(protocol: str) -> type:
    """Get the connector class for a protocol.

    Raises:
        UnsupportedProtocolError: If no connector is registered
    """
    try:
        return _transports[protocol.lower()]
    except KeyError:
        raise UnsupportedProtocolError(protocol) from None


def list_protocols() -> list[str]:
    """List protocols with a registered connector."""
    return sorted(_transports.keys())


def create_transport(address: ServiceAddress, options: TransportOptions) -> Transport:
    """Instantiate the connector registered for the address protocol."""
    transport_cls = get_transport(address.protocol)
    transport: Transport = transport_cls(address, options)
    return transport
