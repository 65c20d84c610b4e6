"""Probe configuration.

Configuration is optional and loaded from a YAML file:

    defaults:
      check_period: 5        # seconds between dead-connection probes
      timeout: 30            # per-request transport timeout
      insecure: false        # skip TLS verification
      ca_cert: /etc/ssl/certs/jmx-ca.pem
    endpoints:
      cache1:
        url: http://cache1:8778/jolokia
        username: monitorRole
        password: secret

File discovery order:
1. --config argument
2. CHECK_JMX_CONFIG environment variable
3. ~/.config/check-jmx/probe.yaml
4. /usr/local/etc/check-jmx/probe.yaml (FHS)

Request defaults also come from CHECK_JMX_URL, CHECK_JMX_USERNAME and
CHECK_JMX_PASSWORD. The merge order is: built-ins → file defaults →
environment → named endpoint → command line.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import yaml

from connection.base import DEFAULT_CHECK_PERIOD, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)

CONFIG_ENV = 'CHECK_JMX_CONFIG'
USER_CONFIG_PATH = Path('~/.config/check-jmx/probe.yaml')
FHS_CONFIG_PATH = Path('/usr/local/etc/check-jmx/probe.yaml')


class ConfigError(Exception):
    """Configuration error."""


@dataclass
class EndpointConfig:
    """A named endpoint from the endpoints section."""
    name: str
    url: str
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass
class ProbeConfig:
    """Settings for the connection manager and request defaults."""
    url: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    check_period: float = DEFAULT_CHECK_PERIOD
    timeout: float = DEFAULT_TIMEOUT
    insecure: bool = False
    ca_cert: Optional[Path] = None
    endpoints: dict[str, EndpointConfig] = field(default_factory=dict)
    config_file: Optional[Path] = None

    @property
    def verify(self) -> Union[bool, str]:
        """TLS verification setting for the transport."""
        if self.insecure:
            return False
        if self.ca_cert:
            return str(self.ca_cert)
        return True

    def endpoint(self, name: str) -> Optional[EndpointConfig]:
        return self.endpoints.get(name)


def discover_config_path() -> Optional[Path]:
    """Find the configuration file, or None if there is none.

    Raises:
        ConfigError: If CHECK_JMX_CONFIG points at a missing file
    """
    if env_path := os.environ.get(CONFIG_ENV):
        path = Path(env_path).expanduser()
        if not path.is_file():
            raise ConfigError(f"{CONFIG_ENV} points at missing file: {path}")
        return path

    for candidate in (USER_CONFIG_PATH.expanduser(), FHS_CONFIG_PATH):
        if candidate.is_file():
            return candidate
    return None


def _load_yaml(path: Path) -> dict:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _number(section: dict, key: str, default: float, path: Path) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{path}: defaults.{key} must be a positive number, got {value!r}")
    return float(value)


def _parse_endpoints(raw: dict, path: Path) -> dict[str, EndpointConfig]:
    if not isinstance(raw, dict):
        raise ConfigError(f"{path}: endpoints must be a mapping")

    endpoints = {}
    for name, entry in raw.items():
        if not isinstance(entry, dict) or not entry.get('url'):
            raise ConfigError(f"{path}: endpoint '{name}' must define a url")
        endpoints[str(name)] = EndpointConfig(
            name=str(name),
            url=str(entry['url']),
            username=entry.get('username'),
            password=entry.get('password'),
        )
    return endpoints


def load_config(path: Optional[Path] = None) -> ProbeConfig:
    """Load configuration from file and environment.

    Args:
        path: Explicit config file. Auto-discovered if not provided.

    Returns:
        ProbeConfig with file defaults and environment applied

    Raises:
        ConfigError: On a missing explicit file or invalid content
    """
    if path is not None:
        path = Path(path).expanduser()
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
    else:
        path = discover_config_path()

    config = ProbeConfig()

    if path is not None:
        logger.debug(f"Loading config from {path}")
        data = _load_yaml(path)
        defaults = data.get('defaults') or {}
        if not isinstance(defaults, dict):
            raise ConfigError(f"{path}: defaults must be a mapping")

        config.config_file = path
        config.check_period = _number(defaults, 'check_period', DEFAULT_CHECK_PERIOD, path)
        config.timeout = _number(defaults, 'timeout', DEFAULT_TIMEOUT, path)
        config.insecure = bool(defaults.get('insecure', False))
        if ca_cert := defaults.get('ca_cert'):
            config.ca_cert = Path(ca_cert).expanduser()
        config.url = defaults.get('url')
        config.username = defaults.get('username')
        config.password = defaults.get('password')
        config.endpoints = _parse_endpoints(data.get('endpoints') or {}, path)

    # Environment overrides file defaults
    if url := os.environ.get('CHECK_JMX_URL'):
        config.url = url
    if username := os.environ.get('CHECK_JMX_USERNAME'):
        config.username = username
    if password := os.environ.get('CHECK_JMX_PASSWORD'):
        config.password = password

    return config
