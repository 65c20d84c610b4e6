"""Session lifecycle.

The ConnectionManager opens sessions against management endpoints and
keeps an index from session id to the transport that backs it. Closing
pops the index entry first, so each transport is closed at most once and
closing an unknown session is a no-op.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

from connection.address import ServiceAddress
from connection.base import (
    DEFAULT_CHECK_PERIOD,
    DEFAULT_TIMEOUT,
    Transport,
    TransportError,
    TransportOptions,
    TransportUnavailableError,
    create_transport,
)
from errors import CloseError, ConnectError
from mbean.object_name import ObjectName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """An open connection to a management endpoint."""
    session_id: str
    address: ServiceAddress
    transport: Transport = field(repr=False, compare=False)

    def query_names(self, pattern: ObjectName) -> list[ObjectName]:
        return self.transport.query_names(pattern)

    def get_attribute(self, name: ObjectName, attribute: str) -> Any:
        return self.transport.get_attribute(name, attribute)

    def invoke(self, name: ObjectName, operation: str) -> Any:
        return self.transport.invoke(name, operation)


class ConnectionManager:
    """Opens and closes sessions; owns the session registry."""

    def __init__(
        self,
        check_period: float = DEFAULT_CHECK_PERIOD,
        timeout: float = DEFAULT_TIMEOUT,
        verify: Union[bool, str] = True,
    ):
        """Initialize connection manager.

        Args:
            check_period: Seconds between dead-connection probes on idle transports
            timeout: Per-request transport timeout in seconds
            verify: TLS verification flag, or path to a CA bundle
        """
        self.options = TransportOptions(check_period=check_period, timeout=timeout, verify=verify)
        self._transports: dict[str, Transport] = {}
        self._lock = threading.Lock()

    @property
    def open_sessions(self) -> int:
        with self._lock:
            return len(self._transports)

    def is_open(self, session: Session) -> bool:
        with self._lock:
            return session.session_id in self._transports

    def open(
        self,
        address: Union[str, ServiceAddress],
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Session:
        """Open a session.

        Credentials are used only when both username and password are given.

        Raises:
            MalformedServiceAddressError: If a string address does not parse
            ConnectError: If the transport cannot be created or connected
        """
        if isinstance(address, str):
            address = ServiceAddress.parse(address)

        credentials = None
        if username is not None and password is not None:
            credentials = (username, password)
        elif username is not None or password is not None:
            logger.warning("Only one of username/password given, connecting unauthenticated")

        options = replace(self.options, credentials=credentials)

        try:
            transport = create_transport(address, options)
            transport.connect()
        except TransportUnavailableError as e:
            logger.debug(f"Connection refused by {address}: {e}")
            raise ConnectError(str(e)) from e
        except TransportError as e:
            logger.debug(f"Error opening connection to {address}: {e}")
            raise ConnectError(str(e)) from e

        session = Session(session_id=uuid.uuid4().hex, address=address, transport=transport)
        with self._lock:
            self._transports[session.session_id] = transport
        logger.debug(f"Opened session {session.session_id} to {address}")
        return session

    def close(self, session: Session):
        """Close a session. Unknown or already closed sessions are ignored.

        Raises:
            CloseError: If the transport fails to close
        """
        with self._lock:
            transport = self._transports.pop(session.session_id, None)
        if transport is None:
            return

        try:
            transport.close()
        except Exception as e:
            raise CloseError() from e
        logger.debug(f"Closed session {session.session_id}")

    def close_all(self):
        """Close every registered session.

        All sessions are attempted; the first close failure is raised.
        """
        with self._lock:
            transports = list(self._transports.items())
            self._transports.clear()

        first_error: Optional[CloseError] = None
        for session_id, transport in transports:
            try:
                transport.close()
            except Exception as e:
                logger.warning(f"Failed to close session {session_id}: {e}")
                if first_error is None:
                    first_error = CloseError()
                    first_error.__cause__ = e
        if first_error is not None:
            raise first_error
