"""Invoke an operation on a resolved MBean."""

import logging

from connection.base import TransportError
from connection.manager import Session
from errors import InvokeError
from mbean.object_name import ObjectName

logger = logging.getLogger(__name__)


def invoke_operation(session: Session, name: ObjectName, operation: str):
    """Invoke a no-argument operation, discarding its return value.

    Raises:
        InvokeError: If the invocation fails for any reason
    """
    logger.debug(f"Invoking {operation} on {name}")
    try:
        session.invoke(name, operation)
    except TransportError as e:
        raise InvokeError(operation, str(e)) from e
