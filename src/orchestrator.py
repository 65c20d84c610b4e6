"""Probe orchestration.

Runs one request through the pipeline:

    IDLE -> CONNECTING -> RESOLVING -> READING -> [INVOKING] -> CLOSING -> DONE

Every classified failure ends up in the returned ProbeResult. Once a
session is open it is closed on every exit path; the first failure in the
pipeline is the one reported, and a close failure is reported only when
nothing failed before it.
"""

import logging
from enum import Enum
from typing import Optional

from common import ProbeRequest, ProbeResult
from connection.manager import ConnectionManager, Session
from errors import CloseError, ProbeError
from mbean.invoker import invoke_operation
from mbean.reader import read_attribute
from mbean.resolver import resolve

logger = logging.getLogger(__name__)


class ProbeState(Enum):
    IDLE = 'idle'
    CONNECTING = 'connecting'
    RESOLVING = 'resolving'
    READING = 'reading'
    INVOKING = 'invoking'
    CLOSING = 'closing'
    DONE = 'done'


class ProbeOrchestrator:
    """Coordinates a probe cycle against a connection manager."""

    def __init__(self, connections: Optional[ConnectionManager] = None):
        self.connections = connections or ConnectionManager()
        self.state = ProbeState.IDLE
        self.history: list[ProbeState] = [ProbeState.IDLE]

    def _transition(self, state: ProbeState):
        logger.debug(f"{self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def _finish(self, result: ProbeResult) -> ProbeResult:
        self._transition(ProbeState.DONE)
        if result.error is not None:
            logger.debug(f"Probe failed: {result.error.describe()}")
        return result

    def run(self, request: ProbeRequest) -> ProbeResult:
        """Run one probe cycle. Classified errors are returned, not raised."""
        self.state = ProbeState.IDLE
        self.history = [ProbeState.IDLE]
        result = ProbeResult(request=request)

        try:
            request.validate()
        except ProbeError as e:
            result.error = e
            return self._finish(result)

        self._transition(ProbeState.CONNECTING)
        try:
            session = self.connections.open(request.url, request.username, request.password)
        except ProbeError as e:
            result.error = e
            return self._finish(result)

        try:
            self._query(session, request, result)
        except ProbeError as e:
            result.error = e
        finally:
            self._transition(ProbeState.CLOSING)
            try:
                self.connections.close(session)
            except CloseError as e:
                if result.error is None:
                    result.error = e
                else:
                    logger.warning(f"Ignoring close failure after earlier error: {e.describe()}")

        return self._finish(result)

    def _query(self, session: Session, request: ProbeRequest, result: ProbeResult):
        self._transition(ProbeState.RESOLVING)
        name = resolve(session, request.object_name)
        result.object_name = name.canonical_name

        self._transition(ProbeState.READING)
        result.value = read_attribute(session, name, request.attribute, request.attribute_key)

        if request.operation:
            self._transition(ProbeState.INVOKING)
            invoke_operation(session, name, request.operation)
            result.invoked = True
