"""Common types for a probe cycle: the request and the result."""

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from errors import EXIT_OK, ProbeError, UsageError


@dataclass(frozen=True)
class ProbeRequest:
    """Validated input to one probe cycle."""
    url: Optional[str] = None
    object_name: Optional[str] = None
    attribute: Optional[str] = None
    attribute_key: Optional[str] = None
    operation: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    units: Optional[str] = None
    verbose: bool = False

    def missing_fields(self) -> list[str]:
        """Return the CLI flags of required fields that are absent."""
        missing = []
        if not self.url:
            missing.append('-U <service_url>')
        if not self.object_name:
            missing.append('-O <object_name>')
        if not self.attribute:
            missing.append('-A <attribute_name>')
        return missing

    def validate(self):
        """Raise UsageError if endpoint, resource or attribute is absent."""
        missing = self.missing_fields()
        if missing:
            raise UsageError(f"Missing required option(s): {', '.join(missing)}")

    @property
    def label(self) -> str:
        """Display label: attribute name, plus ``.key`` for composites."""
        if self.attribute_key is not None:
            return f"{self.attribute}.{self.attribute_key}"
        return self.attribute or ''


def format_value(value: Any) -> str:
    """Render an attribute value for display."""
    if value is None:
        return 'null'
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (Mapping, list, tuple)):
        return json.dumps(value, sort_keys=True, separators=(',', ':'), default=str)
    return str(value)


@dataclass
class ProbeResult:
    """Outcome of a probe cycle: a value or a classified error."""
    request: ProbeRequest
    value: Any = None
    error: Optional[ProbeError] = None
    object_name: Optional[str] = None  # resolved canonical name
    invoked: bool = False

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def exit_code(self) -> int:
        return EXIT_OK if self.error is None else self.error.exit_code

    def render(self) -> str:
        """Single output line for the caller."""
        if self.error is not None:
            return self.error.describe()
        # Units are carried on the request but never printed
        return f"{self.request.label} = {format_value(self.value)}"
