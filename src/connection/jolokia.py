"""Jolokia connector: JMX over HTTP/JSON.

Talks to a Jolokia agent (``http://host:8778/jolokia``) using JSON POST
requests of type ``version``, ``search``, ``read`` and ``exec``. Jolokia
reports JMX exceptions inside the response body; they are mapped onto the
connector exceptions by their ``error_type``.
"""

import logging
import socket
from typing import Any, Optional

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection

from connection.address import ServiceAddress
from connection.base import (
    AuthenticationError,
    RemoteAttributeNotFoundError,
    RemoteInstanceNotFoundError,
    RemoteOperationError,
    RemoteReflectionError,
    TransportError,
    TransportOptions,
    TransportUnavailableError,
    register_transport,
)
from mbean.object_name import MalformedObjectNameError, ObjectName

logger = logging.getLogger(__name__)

DEFAULT_PATH = '/jolokia'
KEEPALIVE_PROBES = 3

_ERROR_TYPES = {
    'javax.management.InstanceNotFoundException': RemoteInstanceNotFoundError,
    'javax.management.AttributeNotFoundException': RemoteAttributeNotFoundError,
    'javax.management.ReflectionException': RemoteReflectionError,
    'javax.management.IntrospectionException': RemoteReflectionError,
    # Jolokia reports unknown or overloaded operations this way
    'java.lang.IllegalArgumentException': RemoteReflectionError,
    'javax.management.MBeanException': RemoteOperationError,
    'javax.management.RuntimeMBeanException': RemoteOperationError,
    'javax.management.RuntimeOperationsException': RemoteOperationError,
}


def keepalive_socket_options(check_period: float) -> list[tuple[int, int, int]]:
    """Socket options that probe an idle connection every ``check_period`` seconds."""
    interval = max(1, int(check_period))
    options = list(HTTPConnection.default_socket_options)
    options.append((socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1))
    # Not every platform exposes the tuning knobs
    if hasattr(socket, 'TCP_KEEPIDLE'):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPIDLE, interval))
    if hasattr(socket, 'TCP_KEEPINTVL'):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPINTVL, interval))
    if hasattr(socket, 'TCP_KEEPCNT'):
        options.append((socket.IPPROTO_TCP, socket.TCP_KEEPCNT, KEEPALIVE_PROBES))
    return options


class KeepAliveAdapter(HTTPAdapter):
    """HTTP adapter with TCP keepalive probing and no retries."""

    def __init__(self, check_period: float, **kwargs):
        # Must be set before HTTPAdapter.__init__ builds the pool manager
        self.check_period = check_period
        super().__init__(max_retries=0, **kwargs)

    def init_poolmanager(self, *args, **kwargs):
        kwargs['socket_options'] = keepalive_socket_options(self.check_period)
        super().init_poolmanager(*args, **kwargs)


def _remote_error(body: dict) -> TransportError:
    """Build the connector exception for a Jolokia error response."""
    error_type = body.get('error_type')
    message = body.get('error') or f"Request failed with status {body.get('status')}"
    error_cls = _ERROR_TYPES.get(error_type, TransportError)
    return error_cls(message, remote_type=error_type)


@register_transport('http', 'https')
class JolokiaTransport:
    """Connector for a Jolokia agent."""

    def __init__(self, address: ServiceAddress, options: TransportOptions):
        path = address.path if address.path not in ('', '/') else DEFAULT_PATH
        self.url = f"{address.protocol}://{address.netloc}{path}"
        self.options = options
        self.agent_info: dict = {}
        self._session: Optional[requests.Session] = None

    def _build_session(self) -> requests.Session:
        session = requests.Session()
        adapter = KeepAliveAdapter(self.options.check_period)
        session.mount('http://', adapter)
        session.mount('https://', adapter)
        session.headers['Accept'] = 'application/json'
        session.verify = self.options.verify
        if self.options.credentials:
            session.auth = self.options.credentials
        if self.options.verify is False:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        return session

    def connect(self):
        """Open the HTTP session and perform the ``version`` handshake."""
        self._session = self._build_session()
        try:
            info = self._request({'type': 'version'})
        except TransportError:
            self.close()
            raise
        self.agent_info = info if isinstance(info, dict) else {}
        logger.debug(
            "Connected to Jolokia agent %s (protocol %s) at %s",
            self.agent_info.get('agent', 'unknown'),
            self.agent_info.get('protocol', 'unknown'),
            self.url,
        )

    def query_names(self, pattern: ObjectName) -> list[ObjectName]:
        value = self._request({'type': 'search', 'mbean': pattern.canonical_name})
        names = []
        for raw in value or []:
            try:
                names.append(ObjectName.parse(raw))
            except MalformedObjectNameError as e:
                raise TransportError(f"Server returned malformed object name {raw!r}") from e
        return names

    def get_attribute(self, name: ObjectName, attribute: str) -> Any:
        return self._request({
            'type': 'read',
            'mbean': name.canonical_name,
            'attribute': attribute,
        })

    def invoke(self, name: ObjectName, operation: str) -> Any:
        return self._request({
            'type': 'exec',
            'mbean': name.canonical_name,
            'operation': operation,
            'arguments': [],
        })

    def close(self):
        if self._session is not None:
            self._session.close()
            self._session = None

    def _request(self, payload: dict) -> Any:
        """POST one Jolokia request and return its ``value``."""
        if self._session is None:
            raise TransportError(f"Not connected to {self.url}")

        logger.debug("Jolokia %s request to %s", payload['type'], self.url)
        try:
            response = self._session.post(self.url, json=payload, timeout=self.options.timeout)
        except requests.exceptions.Timeout as e:
            raise TransportError(f"Timeout talking to {self.url}") from e
        except requests.exceptions.ConnectionError as e:
            raise TransportUnavailableError(f"Cannot connect to {self.url}: {e}") from e
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Request to {self.url} failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthenticationError(
                f"Authentication failed for {self.url} (HTTP {response.status_code})"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON response from {self.url} (HTTP {response.status_code})"
            ) from e

        if not isinstance(body, dict):
            raise TransportError(f"Unexpected response from {self.url}: {body!r:.100}")

        if body.get('status', response.status_code) != 200:
            raise _remote_error(body)

        return body.get('value')
