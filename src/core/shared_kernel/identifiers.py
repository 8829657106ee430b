"""Safe SQL identifiers.

Namespace, table and column names are interpolated into DDL and DML, so
they never travel as plain strings. A ``SafeIdentifier`` can only be built
from a value matching a strict allow-list and renders through
``psycopg2.sql.Identifier`` (always double-quoted).
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from psycopg2 import sql

# Lowercase letters, digits, underscore; must not start with a digit.
# Max length 63 (PostgreSQL identifier limit)
_VALID_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")
_MAX_IDENTIFIER_LENGTH = 63


class InvalidIdentifier(ValueError):
    """Raised when a value is not usable as a SQL identifier."""

    def __init__(self, value: object, reason: str):
        super().__init__(f"Invalid identifier {value!r}: {reason}")
        self.value = value
        self.reason = reason


@dataclass(frozen=True)
class SafeIdentifier:
    """A validated SQL identifier.

    Construct with ``SafeIdentifier.of(value)``; direct construction also
    validates.
    """

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not self.value:
            raise InvalidIdentifier(self.value, "must be a non-empty string")
        if len(self.value) > _MAX_IDENTIFIER_LENGTH:
            raise InvalidIdentifier(
                self.value,
                f"exceeds maximum length of {_MAX_IDENTIFIER_LENGTH} characters",
            )
        if not _VALID_IDENTIFIER.match(self.value):
            raise InvalidIdentifier(
                self.value,
                "only lowercase letters, digits and underscores are allowed "
                "and it must not start with a digit",
            )

    def __str__(self) -> str:
        return self.value

    @classmethod
    def of(cls, value: str | SafeIdentifier) -> SafeIdentifier:
        """Validate ``value`` (idempotent for existing identifiers)."""
        if isinstance(value, SafeIdentifier):
            return value
        return cls(value)

    @property
    def sql(self) -> sql.Identifier:
        """Composable for ``psycopg2.sql`` statements."""
        return sql.Identifier(self.value)

    def qualify(self, name: str | SafeIdentifier) -> sql.Composed:
        """Render ``"<self>"."<name>"`` treating self as the namespace."""
        return sql.SQL("{}.{}").format(self.sql, SafeIdentifier.of(name).sql)


def is_safe_identifier(value: object) -> bool:
    """Return True if ``value`` would pass ``SafeIdentifier`` validation."""
    try:
        SafeIdentifier(value)  # type: ignore[arg-type]
    except InvalidIdentifier:
        return False
    return True
