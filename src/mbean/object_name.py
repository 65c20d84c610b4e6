"""JMX object names.

An object name has the form ``domain:key=value[,key=value]*``. Three kinds of
wildcard turn a name into a pattern that selects a set of registered MBeans:

- domain pattern: the domain contains ``*`` or ``?`` (``java.*:type=Memory``)
- property list pattern: the key list is ``*`` or ends with ``,*``
  (``java.lang:type=GarbageCollector,*``)
- property value pattern: a value contains an unescaped ``*`` or ``?``
  (``java.lang:type=MemoryPool,name=*Old*``)

Values may be quoted. Inside quotes ``\\"``, ``\\\\``, ``\\*``, ``\\?`` and
``\\n`` are the only legal escapes.
"""

import re
from dataclasses import dataclass
from typing import Optional

_WILDCARDS = frozenset('*?')
_KEY_ILLEGAL = frozenset(':,=*?\n')
_VALUE_ILLEGAL = frozenset(':",=\n')
_QUOTED_ESCAPES = frozenset('"\\*?n')


class MalformedObjectNameError(ValueError):
    """Object name string does not follow the JMX grammar."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"{reason}: {name!r}")


def _split_properties(name: str, key_list: str) -> list[str]:
    """Split a key property list on commas that are not inside quotes."""
    tokens = []
    current: list[str] = []
    in_quotes = False
    escaped = False

    for char in key_list:
        if escaped:
            escaped = False
        elif in_quotes and char == '\\':
            escaped = True
        elif char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            tokens.append(''.join(current))
            current = []
            continue
        current.append(char)

    if in_quotes:
        raise MalformedObjectNameError(name, "Unterminated quoted value")
    tokens.append(''.join(current))
    return tokens


def _check_quoted(name: str, key: str, value: str):
    if len(value) < 2 or not value.endswith('"'):
        raise MalformedObjectNameError(name, f"Unterminated quoted value for key '{key}'")

    escaped = False
    for char in value[1:-1]:
        if escaped:
            if char not in _QUOTED_ESCAPES:
                raise MalformedObjectNameError(
                    name, f"Invalid escape sequence '\\{char}' in value of key '{key}'"
                )
            escaped = False
        elif char == '\\':
            escaped = True
        elif char == '"':
            raise MalformedObjectNameError(name, f"Unescaped quote in value of key '{key}'")
        elif char == '\n':
            raise MalformedObjectNameError(name, f"Newline in value of key '{key}'")

    if escaped:
        raise MalformedObjectNameError(name, f"Unterminated quoted value for key '{key}'")


def _check_value(name: str, key: str, value: str):
    if not value:
        raise MalformedObjectNameError(name, f"Empty value for key '{key}'")
    if value.startswith('"'):
        _check_quoted(name, key, value)
        return
    illegal = sorted(set(value) & _VALUE_ILLEGAL)
    if illegal:
        raise MalformedObjectNameError(
            name, f"Invalid character {illegal[0]!r} in value of key '{key}'"
        )


def _is_value_pattern(value: str) -> bool:
    """Check whether a (possibly quoted) value holds an unescaped wildcard."""
    if not value.startswith('"'):
        return bool(set(value) & _WILDCARDS)

    escaped = False
    for char in value[1:-1]:
        if escaped:
            escaped = False
        elif char == '\\':
            escaped = True
        elif char in _WILDCARDS:
            return True
    return False


def _wildcard_regex(pattern: str, quoted: bool = False) -> re.Pattern:
    """Translate a ``*``/``?`` wildcard string into a compiled regex."""
    parts = []
    escaped = False
    for char in pattern:
        if escaped:
            parts.append(re.escape('\\' + char))
            escaped = False
        elif quoted and char == '\\':
            escaped = True
        elif char == '*':
            parts.append('.*')
        elif char == '?':
            parts.append('.')
        else:
            parts.append(re.escape(char))
    return re.compile(''.join(parts), re.DOTALL)


@dataclass(frozen=True, eq=False)
class ObjectName:
    """Parsed JMX object name.

    Names compare equal when their canonical forms (keys sorted) match, so
    ``d:b=2,a=1`` and ``d:a=1,b=2`` are the same name.
    """
    domain: str
    properties: tuple[tuple[str, str], ...] = ()
    property_list_pattern: bool = False

    @classmethod
    def parse(cls, name: str) -> 'ObjectName':
        """Parse an object name string.

        Raises:
            MalformedObjectNameError: If the string does not follow the grammar
        """
        if not name:
            raise MalformedObjectNameError(name or '', "Object name cannot be empty")

        domain, sep, key_list = name.partition(':')
        if not sep:
            raise MalformedObjectNameError(name, "Missing domain separator ':'")
        if '\n' in domain:
            raise MalformedObjectNameError(name, "Newline in domain")
        if not key_list:
            raise MalformedObjectNameError(name, "Key properties cannot be empty")

        properties = []
        seen: set[str] = set()
        list_pattern = False
        tokens = _split_properties(name, key_list)

        for token in tokens:
            if token == '*':
                if list_pattern:
                    raise MalformedObjectNameError(name, "Cannot have several '*' characters in key properties")
                list_pattern = True
                continue

            key, eq, value = token.partition('=')
            if not eq:
                raise MalformedObjectNameError(name, f"Key property '{token}' is missing '='")
            if not key:
                raise MalformedObjectNameError(name, "Key property has an empty key")
            illegal = sorted(set(key) & _KEY_ILLEGAL)
            if illegal:
                raise MalformedObjectNameError(name, f"Invalid character {illegal[0]!r} in key '{key}'")
            if key in seen:
                raise MalformedObjectNameError(name, f"Duplicate key '{key}'")
            _check_value(name, key, value)

            seen.add(key)
            properties.append((key, value))

        return cls(domain=domain, properties=tuple(properties), property_list_pattern=list_pattern)

    @property
    def canonical_key_list(self) -> str:
        return ','.join(f"{key}={value}" for key, value in sorted(self.properties))

    @property
    def canonical_name(self) -> str:
        keys = self.canonical_key_list
        if self.property_list_pattern:
            keys = f"{keys},*" if keys else '*'
        return f"{self.domain}:{keys}"

    @property
    def is_domain_pattern(self) -> bool:
        return bool(set(self.domain) & _WILDCARDS)

    @property
    def is_property_list_pattern(self) -> bool:
        return self.property_list_pattern

    @property
    def is_property_value_pattern(self) -> bool:
        return any(_is_value_pattern(value) for _, value in self.properties)

    @property
    def is_property_pattern(self) -> bool:
        return self.is_property_list_pattern or self.is_property_value_pattern

    @property
    def is_pattern(self) -> bool:
        return self.is_domain_pattern or self.is_property_pattern

    def get(self, key: str) -> Optional[str]:
        """Return the value of a key property, or None."""
        return dict(self.properties).get(key)

    def matches(self, name: 'ObjectName') -> bool:
        """Check whether a concrete name is selected by this name.

        Used by connectors that list names and filter on the client side;
        the Jolokia connector leaves pattern matching to the agent. A
        non-pattern name only matches itself. Pattern names are never
        matched.
        """
        if name.is_pattern:
            return False
        if not _wildcard_regex(self.domain).fullmatch(name.domain):
            return False
        if not self.is_property_pattern:
            return self.canonical_key_list == name.canonical_key_list

        target = dict(name.properties)
        for key, value in self.properties:
            if key not in target:
                return False
            if _is_value_pattern(value):
                regex = _wildcard_regex(value, quoted=value.startswith('"'))
                if not regex.fullmatch(target[key]):
                    return False
            elif target[key] != value:
                return False

        return self.property_list_pattern or len(target) == len(self.properties)

    def __eq__(self, other):
        if not isinstance(other, ObjectName):
            return NotImplemented
        return self.canonical_name == other.canonical_name

    def __hash__(self):
        return hash(self.canonical_name)

    def __str__(self):
        return self.canonical_name
