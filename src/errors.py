"""Error taxonomy for the probe pipeline.

Every failure inside the pipeline is re-raised as one of the classes below
with the low-level exception kept as ``__cause__``. The presentation layer
maps ``exit_code`` onto the process exit status.
"""

# Exit codes (Nagios plugin convention)
EXIT_OK = 0
EXIT_PROBE_ERROR = 2  # CRITICAL: remote resource/attribute problem
EXIT_USAGE_ERROR = 3  # UNKNOWN: caller misused the CLI or config


class ProbeError(Exception):
    """Base exception for classified probe failures."""

    exit_code = EXIT_PROBE_ERROR

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

    def describe(self) -> str:
        """Return the message followed by the cause chain."""
        text = f"{self.code}: {self.message}"
        cause = self.__cause__
        while cause is not None:
            cause_text = str(cause).strip()
            # Wrapped messages often already embed their cause
            if cause_text and cause_text not in text:
                text = f"{text}: {cause_text}"
            cause = cause.__cause__
        return text


class UsageError(ProbeError):
    """Required request fields are absent or the CLI was misused."""

    exit_code = EXIT_USAGE_ERROR

    def __init__(self, message: str):
        super().__init__("UsageError", message)


class MalformedServiceAddressError(ProbeError):
    """Endpoint address does not parse."""

    def __init__(self, address: str):
        self.address = address
        super().__init__("MalformedServiceAddress", f"Malformed service URL [{address}]")


class ConnectError(ProbeError):
    """Opening a session failed."""

    def __init__(self, reason: str):
        super().__init__("ConnectError", f"Error opening connection: {reason}")


class InvalidIdentifierError(ProbeError):
    """Resource identifier does not parse as an object name."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("InvalidIdentifier", f"Malformed objectName [{identifier}]")


class NotFoundError(ProbeError):
    """No resource matches, or an exact resource does not exist."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__("NotFound", f"objectName not found [{identifier}]")


class AmbiguousIdentifierError(ProbeError):
    """Pattern matched more than one resource."""

    def __init__(self, identifier: str, count: int):
        self.identifier = identifier
        self.count = count
        super().__init__(
            "AmbiguousIdentifier",
            f"Object name not unique: objectName pattern [{identifier}] matches {count} MBeans",
        )


class AttributeNotFoundError(ProbeError):
    """Attribute does not exist on the resolved resource."""

    def __init__(self, attribute: str):
        self.attribute = attribute
        super().__init__("AttributeNotFound", f"attributeName not found [{attribute}]")


class AttributeKeyNotFoundError(ProbeError):
    """Composite value lacks the requested key."""

    def __init__(self, key: str):
        self.key = key
        super().__init__("AttributeKeyNotFound", f"attributeKey not found [{key}]")


class RemoteIntrospectionError(ProbeError):
    """Remote reflection/introspection failed."""

    def __init__(self, attribute: str, identifier: str):
        super().__init__(
            "RemoteIntrospectionError",
            f"Introspection failed for [{attribute}] on [{identifier}]",
        )


class CommunicationError(ProbeError):
    """Generic I/O failure while querying the server."""

    def __init__(self, reason: str):
        super().__init__("CommunicationError", f"Error querying server: {reason}")


class InvokeError(ProbeError):
    """Invoking the requested operation failed."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        super().__init__("InvokeError", f"Error invoking operation [{operation}]: {reason}")


class CloseError(ProbeError):
    """Releasing the session failed."""

    def __init__(self):
        super().__init__("CloseError", "Error closing JMX connection")
