"""Read an attribute from a resolved MBean."""

import logging
from collections.abc import Mapping
from typing import Any, Optional

from connection.base import (
    RemoteAttributeNotFoundError,
    RemoteInstanceNotFoundError,
    RemoteReflectionError,
    TransportError,
)
from connection.manager import Session
from errors import (
    AttributeKeyNotFoundError,
    AttributeNotFoundError,
    CommunicationError,
    NotFoundError,
    RemoteIntrospectionError,
)
from mbean.object_name import ObjectName

logger = logging.getLogger(__name__)


def is_composite(value: Any) -> bool:
    """Composite (CompositeData-like) values arrive as mappings."""
    return isinstance(value, Mapping)


def read_attribute(
    session: Session,
    name: ObjectName,
    attribute: str,
    key: Optional[str] = None,
) -> Any:
    """Fetch an attribute, extracting ``key`` from a composite value.

    A key given for a non-composite value is ignored and the raw value is
    returned.

    Raises:
        NotFoundError: MBean does not exist
        AttributeNotFoundError: MBean has no such attribute
        AttributeKeyNotFoundError: Composite value lacks the key
        RemoteIntrospectionError: Remote reflection failed
        CommunicationError: Any other transport failure
    """
    try:
        value = session.get_attribute(name, attribute)
    except RemoteInstanceNotFoundError as e:
        raise NotFoundError(str(name)) from e
    except RemoteAttributeNotFoundError as e:
        raise AttributeNotFoundError(attribute) from e
    except RemoteReflectionError as e:
        raise RemoteIntrospectionError(attribute, str(name)) from e
    except TransportError as e:
        raise CommunicationError(str(e)) from e

    if key is None or not is_composite(value):
        if key is not None:
            logger.debug(f"Ignoring key '{key}': {attribute} is not a composite value")
        return value

    try:
        return value[key]
    except KeyError as e:
        raise AttributeKeyNotFoundError(key) from e
