"""Endpoint address parsing.

Accepted forms:
- ``service:jmx:<protocol>://<host>[:<port>][<path>]`` (JMX service URL)
- ``<protocol>://<host>[:<port>][<path>]``

The host may be empty, as in ``service:jmx:rmi:///jndi/rmi://host:1099/jmxrmi``.
"""

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlsplit

from errors import MalformedServiceAddressError

SERVICE_PREFIX = 'service:jmx:'

_ADDRESS_RE = re.compile(r'^([A-Za-z][A-Za-z0-9+.-]*)://')


@dataclass(frozen=True)
class ServiceAddress:
    """Parsed endpoint address."""
    protocol: str
    host: str = ''
    port: Optional[int] = None
    path: str = ''

    @classmethod
    def parse(cls, address: str) -> 'ServiceAddress':
        """Parse an endpoint address.

        Raises:
            MalformedServiceAddressError: If the address is empty, contains
                whitespace, lacks a protocol, or has an invalid port
        """
        if not address or any(char.isspace() for char in address):
            raise MalformedServiceAddressError(address or '')

        text = address[len(SERVICE_PREFIX):] if address.startswith(SERVICE_PREFIX) else address
        match = _ADDRESS_RE.match(text)
        if not match:
            raise MalformedServiceAddressError(address)

        try:
            parts = urlsplit(text)
            port = parts.port
        except ValueError as e:
            raise MalformedServiceAddressError(address) from e

        path = parts.path
        if parts.query:
            path = f"{path}?{parts.query}"

        return cls(
            protocol=match.group(1).lower(),
            host=parts.hostname or '',
            port=port,
            path=path,
        )

    @property
    def netloc(self) -> str:
        host = f"[{self.host}]" if ':' in self.host else self.host
        return f"{host}:{self.port}" if self.port is not None else host

    @property
    def url(self) -> str:
        """Address without the ``service:jmx:`` prefix."""
        return f"{self.protocol}://{self.netloc}{self.path}"

    def __str__(self):
        return f"{SERVICE_PREFIX}{self.url}"
