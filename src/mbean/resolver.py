"""Resolve a resource identifier into exactly one concrete object name."""

import logging

from connection.base import TransportError
from connection.manager import Session
from errors import (
    AmbiguousIdentifierError,
    CommunicationError,
    InvalidIdentifierError,
    NotFoundError,
)
from mbean.object_name import MalformedObjectNameError, ObjectName

logger = logging.getLogger(__name__)


def parse_identifier(identifier: str) -> ObjectName:
    """Parse a resource identifier.

    Raises:
        InvalidIdentifierError: If the identifier is not a valid object name
    """
    try:
        return ObjectName.parse(identifier)
    except MalformedObjectNameError as e:
        raise InvalidIdentifierError(identifier) from e


def resolve(session: Session, identifier: str) -> ObjectName:
    """Resolve an exact or pattern identifier against a live session.

    Exact names are returned without a round trip; their existence is
    checked by the following read or invoke. Patterns are queried once and
    must match exactly one MBean.

    Args:
        session: Open session
        identifier: Object name string, e.g. "java.lang:type=Memory" or
            "java.lang:type=GarbageCollector,name=*Old*"

    Returns:
        Concrete object name

    Raises:
        InvalidIdentifierError: Malformed identifier
        NotFoundError: Pattern matched nothing
        AmbiguousIdentifierError: Pattern matched more than one MBean
        CommunicationError: Query failed
    """
    name = parse_identifier(identifier)
    if not name.is_pattern:
        return name

    try:
        matches = set(session.query_names(name))
    except TransportError as e:
        raise CommunicationError(str(e)) from e

    logger.debug(f"Pattern {name} matched {len(matches)} MBean(s)")
    if not matches:
        raise NotFoundError(identifier)
    if len(matches) > 1:
        raise AmbiguousIdentifierError(identifier, len(matches))
    return matches.pop()
