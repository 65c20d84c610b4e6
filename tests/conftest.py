"""Shared pytest fixtures for check_jmx tests."""

import sys
from pathlib import Path
from typing import Any, Optional

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from connection import base  # noqa: E402
from connection.base import (  # noqa: E402
    RemoteAttributeNotFoundError,
    RemoteInstanceNotFoundError,
    RemoteReflectionError,
)
from mbean.object_name import ObjectName  # noqa: E402


class FakeMBeanServer:
    """In-memory MBean server behind the 'mock' protocol.

    Attribute values that are exceptions are raised on read; operation
    entries that are exceptions are raised on invoke, callables are called.
    """

    def __init__(self):
        self.mbeans: dict[ObjectName, dict[str, Any]] = {}
        self.operations: dict[ObjectName, dict[str, Any]] = {}
        self.invocations: list[tuple[str, str]] = []
        self.transports: list['FakeTransport'] = []
        self.connect_error: Optional[Exception] = None
        self.query_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None
        self.query_count = 0

    def register(self, name: str, attributes: Optional[dict] = None,
                 operations: Optional[dict] = None) -> ObjectName:
        object_name = ObjectName.parse(name)
        self.mbeans[object_name] = dict(attributes or {})
        self.operations[object_name] = dict(operations or {})
        return object_name


class FakeTransport:
    """Connector backed by a FakeMBeanServer (bound per test)."""

    server: FakeMBeanServer

    def __init__(self, address, options):
        self.address = address
        self.options = options
        self.connected = False
        self.close_calls = 0
        self.server.transports.append(self)

    def connect(self):
        if self.server.connect_error is not None:
            raise self.server.connect_error
        self.connected = True

    def query_names(self, pattern):
        self.server.query_count += 1
        if self.server.query_error is not None:
            raise self.server.query_error
        return [name for name in self.server.mbeans if pattern.matches(name)]

    def _attributes(self, name):
        if name not in self.server.mbeans:
            raise RemoteInstanceNotFoundError(f"{name}", remote_type='javax.management.InstanceNotFoundException')
        return self.server.mbeans[name]

    def get_attribute(self, name, attribute):
        attributes = self._attributes(name)
        if attribute not in attributes:
            raise RemoteAttributeNotFoundError(f"No such attribute: {attribute}")
        value = attributes[attribute]
        if isinstance(value, Exception):
            raise value
        return value

    def invoke(self, name, operation):
        self._attributes(name)
        operations = self.server.operations[name]
        if operation not in operations:
            raise RemoteReflectionError(f"No operation {operation} found on MBean {name}")
        self.server.invocations.append((name.canonical_name, operation))
        target = operations[operation]
        if isinstance(target, Exception):
            raise target
        return target() if callable(target) else target

    def close(self):
        self.close_calls += 1
        if self.server.close_error is not None:
            raise self.server.close_error


@pytest.fixture
def mbean_server(monkeypatch):
    """FakeMBeanServer reachable at mock://<anything>."""
    server = FakeMBeanServer()
    transport_cls = type('BoundFakeTransport', (FakeTransport,), {'server': server})
    monkeypatch.setitem(base._transports, 'mock', transport_cls)
    return server


@pytest.fixture
def cache_server(mbean_server):
    """Server exposing domain:type=Cache with HitRatio = 0.97 and a reset operation."""
    name = mbean_server.register('domain:type=Cache', {'HitRatio': 0.97, 'Size': 1024})

    def reset():
        mbean_server.mbeans[name]['HitRatio'] = 0.0

    mbean_server.operations[name]['reset'] = reset
    return mbean_server


@pytest.fixture
def session(mbean_server):
    """Open session against the fake server."""
    from connection.manager import ConnectionManager
    manager = ConnectionManager()
    return manager.open('mock://host')


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Hide real config files and CHECK_JMX_* environment variables."""
    import config
    monkeypatch.setattr(config, 'USER_CONFIG_PATH', tmp_path / 'home' / 'probe.yaml')
    monkeypatch.setattr(config, 'FHS_CONFIG_PATH', tmp_path / 'etc' / 'probe.yaml')
    for var in ('CHECK_JMX_CONFIG', 'CHECK_JMX_URL', 'CHECK_JMX_USERNAME', 'CHECK_JMX_PASSWORD'):
        monkeypatch.delenv(var, raising=False)
    return tmp_path
