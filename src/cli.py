#!/usr/bin/env python3
"""CLI entry point for check_jmx.

Reads one MBean attribute (optionally one key of a composite attribute),
optionally invokes an operation on the same MBean, and prints a single
line for a monitoring supervisor:

    check_jmx -U http://app1:8778/jolokia -O java.lang:type=Memory \\
        -A HeapMemoryUsage -K used
    HeapMemoryUsage.used = 52365216

Exit codes follow the Nagios plugin convention: 0 on success, 2 when the
probe fails, 3 when the command line or configuration is wrong.
"""

import argparse
import logging
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

from common import ProbeRequest
from config import ConfigError, ProbeConfig, load_config
from connection import ConnectionManager
from errors import EXIT_OK, EXIT_USAGE_ERROR, UsageError
from orchestrator import ProbeOrchestrator

logger = logging.getLogger(__name__)

USAGE = (
    "Usage: check_jmx -U <service_url> -O <object_name> -A <attribute_name>\n"
    "    [-K <compound_key>] [-o <operation_name>] [-u <units>]\n"
    "    [--username <username>] [--password <password>] [-v] [-h]"
)

HELP = USAGE + """

Options are:

-h
    Help page, this page.

-U
    Endpoint URL, or the name of an endpoint from the config file; for
    example "http://<host>:8778/jolokia" or
    "service:jmx:https://<host>:8778/jolokia"

-O
    Object name to be checked, for example "java.lang:type=Memory".
    Patterns such as "java.lang:type=GarbageCollector,name=*Old*" must
    match exactly one MBean.

-A
    Attribute name

-K
    Attribute key; use when attribute is a composite

-u
    Units label; accepted for compatibility, not printed

-o
    Operation to invoke on MBean after querying value. Useful to
    reset any statistics or counter.

--username
    Username, if JMX access is restricted; for example "monitorRole"

--password
    Password

-v
    Verbose logging on stderr

--config <path>
    Configuration file (default: $CHECK_JMX_CONFIG,
    ~/.config/check-jmx/probe.yaml, /usr/local/etc/check-jmx/probe.yaml)

--insecure
    Skip TLS certificate verification

--ca-cert <path>
    CA certificate bundle for TLS verification

--check-period <seconds>
    Interval of dead-connection probes (default: 5)

--timeout <seconds>
    Per-request timeout (default: 30)

--version
    Print version and exit
"""

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


class ProbeArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports problems as UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message)


def get_version() -> str:
    """Get the installed package version."""
    try:
        return version('check-jmx')
    except PackageNotFoundError:
        return 'dev'


def build_parser() -> ProbeArgumentParser:
    parser = ProbeArgumentParser(prog='check_jmx', usage=USAGE, add_help=False)
    parser.add_argument('-U', dest='url')
    parser.add_argument('-O', dest='object_name')
    parser.add_argument('-A', dest='attribute')
    parser.add_argument('-K', dest='attribute_key')
    parser.add_argument('-o', dest='operation')
    parser.add_argument('-u', dest='units')
    parser.add_argument('--username')
    parser.add_argument('--password')
    parser.add_argument('-v', dest='verbose', action='store_true')
    parser.add_argument('--config', type=Path)
    parser.add_argument('--insecure', action='store_true')
    parser.add_argument('--ca-cert', type=Path)
    parser.add_argument('--check-period', type=float)
    parser.add_argument('--timeout', type=float)
    parser.add_argument('--version', action='store_true')
    return parser


def configure_logging(verbose: bool):
    """Log to stderr so stdout carries only the probe line."""
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT, datefmt=LOG_DATEFMT, stream=sys.stderr)
    logging.getLogger().setLevel(logging.DEBUG if verbose else logging.WARNING)


def apply_overrides(config: ProbeConfig, args: argparse.Namespace) -> ProbeConfig:
    """Apply transport settings given on the command line."""
    if args.check_period is not None:
        if args.check_period <= 0:
            raise UsageError("--check-period must be positive")
        config.check_period = args.check_period
    if args.timeout is not None:
        if args.timeout <= 0:
            raise UsageError("--timeout must be positive")
        config.timeout = args.timeout
    if args.insecure:
        config.insecure = True
    if args.ca_cert:
        config.ca_cert = args.ca_cert
    return config


def build_request(args: argparse.Namespace, config: ProbeConfig) -> ProbeRequest:
    """Merge command line, named endpoint and config defaults into a request."""
    url = args.url or config.url
    username = config.username
    password = config.password

    endpoint = config.endpoint(args.url) if args.url else None
    if endpoint:
        logger.debug(f"Using endpoint '{endpoint.name}' from {config.config_file}")
        url = endpoint.url
        username = endpoint.username if endpoint.username is not None else username
        password = endpoint.password if endpoint.password is not None else password

    return ProbeRequest(
        url=url,
        object_name=args.object_name,
        attribute=args.attribute,
        attribute_key=args.attribute_key,
        operation=args.operation,
        username=args.username if args.username is not None else username,
        password=args.password if args.password is not None else password,
        units=args.units,
        verbose=args.verbose,
    )


def main(argv: Optional[list] = None) -> int:
    """CLI entry point."""
    argv = sys.argv[1:] if argv is None else argv

    # Help wins over any other argument, valid or not
    if '-h' in argv or '--help' in argv:
        print(HELP)
        return EXIT_OK

    parser = build_parser()

    try:
        args, unknown = parser.parse_known_args(argv)
    except UsageError as e:
        print(f"Error: {e.message}")
        print(USAGE)
        return e.exit_code

    configure_logging(args.verbose)

    if unknown:
        logger.warning(f"Ignoring unknown arguments: {' '.join(unknown)}")

    if args.version:
        print(f"check_jmx {get_version()}")
        return EXIT_OK

    try:
        config = apply_overrides(load_config(args.config), args)
        request = build_request(args, config)
        request.validate()
    except ConfigError as e:
        print(f"Error: {e}")
        return EXIT_USAGE_ERROR
    except UsageError as e:
        print(f"Error: {e.message}")
        print(USAGE)
        return e.exit_code

    if config.insecure:
        logger.warning("SSL certificate verification disabled")

    connections = ConnectionManager(
        check_period=config.check_period,
        timeout=config.timeout,
        verify=config.verify,
    )
    result = ProbeOrchestrator(connections).run(request)
    print(result.render())
    return result.exit_code


if __name__ == '__main__':
    sys.exit(main())
