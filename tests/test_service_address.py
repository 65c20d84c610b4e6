"""Tests for connection/address.py - endpoint address parsing."""

import pytest

from connection.address import ServiceAddress
from errors import MalformedServiceAddressError


class TestServiceAddressParse:
    """Tests for ServiceAddress.parse()."""

    def test_jmx_service_url(self):
        address = ServiceAddress.parse('service:jmx:http://app1:8778/jolokia')
        assert address.protocol == 'http'
        assert address.host == 'app1'
        assert address.port == 8778
        assert address.path == '/jolokia'
        assert address.url == 'http://app1:8778/jolokia'
        assert str(address) == 'service:jmx:http://app1:8778/jolokia'

    def test_bare_url(self):
        address = ServiceAddress.parse('https://app1/jolokia')
        assert address.protocol == 'https'
        assert address.port is None
        assert address.url == 'https://app1/jolokia'

    def test_protocol_is_lowercased(self):
        assert ServiceAddress.parse('HTTP://app1:8778').protocol == 'http'

    def test_empty_host_allowed(self):
        """JMX RMI URLs leave the host empty."""
        address = ServiceAddress.parse('service:jmx:rmi:///jndi/rmi://host:1099/jmxrmi')
        assert address.protocol == 'rmi'
        assert address.host == ''
        assert address.path == '/jndi/rmi://host:1099/jmxrmi'

    def test_mock_url(self):
        address = ServiceAddress.parse('mock://host')
        assert address.protocol == 'mock'
        assert address.host == 'host'
        assert address.path == ''

    def test_query_is_kept_in_path(self):
        address = ServiceAddress.parse('http://app1:8778/jolokia?ignoreErrors=true')
        assert address.path == '/jolokia?ignoreErrors=true'

    def test_ipv6_host(self):
        address = ServiceAddress.parse('http://[::1]:8778/jolokia')
        assert address.host == '::1'
        assert address.netloc == '[::1]:8778'

    @pytest.mark.parametrize('text', [
        '',
        'app1:8778',
        'service:jmx:',
        '://app1',
        'http://app1:port/jolokia',
        'http://app1:99999/jolokia',
        'http://app 1/jolokia',
        'http://[::1/jolokia',
    ])
    def test_malformed(self, text):
        with pytest.raises(MalformedServiceAddressError) as exc_info:
            ServiceAddress.parse(text)
        assert exc_info.value.code == 'MalformedServiceAddress'
        assert f"[{text}]" in exc_info.value.message
