"""Tests for connection/manager.py - session lifecycle and registry."""

import logging
from concurrent.futures import ThreadPoolExecutor

import pytest

from connection.address import ServiceAddress
from connection.base import (
    AuthenticationError,
    TransportError,
    TransportUnavailableError,
    UnsupportedProtocolError,
)
from connection.manager import ConnectionManager, Session
from errors import CloseError, ConnectError, MalformedServiceAddressError


class TestOpen:
    """Tests for ConnectionManager.open()."""

    def test_returns_registered_session(self, mbean_server):
        manager = ConnectionManager()
        session = manager.open('mock://host')
        assert isinstance(session, Session)
        assert session.address.protocol == 'mock'
        assert manager.is_open(session)
        assert manager.open_sessions == 1
        assert mbean_server.transports[0].connected

    def test_accepts_parsed_address(self, mbean_server):
        manager = ConnectionManager()
        session = manager.open(ServiceAddress.parse('mock://host'))
        assert manager.is_open(session)

    def test_sessions_have_distinct_ids(self, mbean_server):
        manager = ConnectionManager()
        first = manager.open('mock://host')
        second = manager.open('mock://host')
        assert first.session_id != second.session_id
        assert manager.open_sessions == 2

    def test_requests_liveness_checking(self, mbean_server):
        """Check period and timeout reach the transport."""
        manager = ConnectionManager(check_period=7.5, timeout=12)
        manager.open('mock://host')
        options = mbean_server.transports[0].options
        assert options.check_period == 7.5
        assert options.timeout == 12

    def test_default_check_period(self, mbean_server):
        ConnectionManager().open('mock://host')
        assert mbean_server.transports[0].options.check_period == 5.0

    def test_credentials_passed_when_both_present(self, mbean_server):
        ConnectionManager().open('mock://host', 'monitorRole', 'secret')
        assert mbean_server.transports[0].options.credentials == ('monitorRole', 'secret')

    @pytest.mark.parametrize('username,password', [
        ('monitorRole', None),
        (None, 'secret'),
        (None, None),
    ])
    def test_unauthenticated_without_both_credentials(self, mbean_server, username, password):
        ConnectionManager().open('mock://host', username, password)
        assert mbean_server.transports[0].options.credentials is None

    def test_half_credentials_logs_warning(self, mbean_server, caplog):
        with caplog.at_level(logging.WARNING):
            ConnectionManager().open('mock://host', 'monitorRole', None)
        assert 'unauthenticated' in caplog.text

    def test_malformed_address(self, mbean_server):
        with pytest.raises(MalformedServiceAddressError):
            ConnectionManager().open('not a url')

    def test_unsupported_protocol(self):
        with pytest.raises(ConnectError) as exc_info:
            ConnectionManager().open('service:jmx:rmi:///jndi/rmi://host:1099/jmxrmi')
        assert isinstance(exc_info.value.__cause__, UnsupportedProtocolError)
        assert 'Unsupported protocol: rmi' in exc_info.value.message

    @pytest.mark.parametrize('error', [
        TransportUnavailableError('Connection refused'),
        AuthenticationError('Authentication failed'),
        TransportError('Broken pipe'),
    ])
    def test_connect_failure(self, mbean_server, error):
        mbean_server.connect_error = error
        manager = ConnectionManager()
        with pytest.raises(ConnectError) as exc_info:
            manager.open('mock://host')
        assert exc_info.value.__cause__ is error
        assert str(error) in exc_info.value.message
        assert manager.open_sessions == 0


class TestClose:
    """Tests for ConnectionManager.close()."""

    def test_closes_transport(self, mbean_server):
        manager = ConnectionManager()
        session = manager.open('mock://host')
        manager.close(session)
        assert not manager.is_open(session)
        assert mbean_server.transports[0].close_calls == 1

    def test_close_twice_is_noop(self, mbean_server):
        manager = ConnectionManager()
        session = manager.open('mock://host')
        manager.close(session)
        manager.close(session)
        assert mbean_server.transports[0].close_calls == 1

    def test_close_unknown_session_is_noop(self, mbean_server):
        manager = ConnectionManager()
        other = ConnectionManager().open('mock://host')
        manager.close(other)
        assert mbean_server.transports[0].close_calls == 0

    def test_close_failure_raises_close_error(self, mbean_server):
        manager = ConnectionManager()
        session = manager.open('mock://host')
        failure = TransportError('socket already closed')
        mbean_server.close_error = failure

        with pytest.raises(CloseError) as exc_info:
            manager.close(session)
        assert exc_info.value.__cause__ is failure
        # Entry removed even though close failed; second close is a no-op
        manager.close(session)
        assert mbean_server.transports[0].close_calls == 1

    def test_close_all(self, mbean_server):
        manager = ConnectionManager()
        for _ in range(3):
            manager.open('mock://host')
        manager.close_all()
        assert manager.open_sessions == 0
        assert [t.close_calls for t in mbean_server.transports] == [1, 1, 1]

    def test_close_all_attempts_every_session(self, mbean_server):
        manager = ConnectionManager()
        manager.open('mock://host')
        manager.open('mock://host')
        mbean_server.close_error = TransportError('boom')
        with pytest.raises(CloseError):
            manager.close_all()
        assert [t.close_calls for t in mbean_server.transports] == [1, 1]
        assert manager.open_sessions == 0


class TestConcurrentUse:
    """Registry stays consistent when shared across threads."""

    def test_parallel_open_close(self, mbean_server):
        manager = ConnectionManager()

        def cycle(_):
            session = manager.open('mock://host')
            manager.close(session)
            return session.session_id

        with ThreadPoolExecutor(max_workers=8) as pool:
            ids = list(pool.map(cycle, range(50)))

        assert len(set(ids)) == 50
        assert manager.open_sessions == 0
        assert all(t.close_calls == 1 for t in mbean_server.transports)
