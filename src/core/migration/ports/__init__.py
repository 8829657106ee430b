"""Ports for the migration bounded context."""

from migration.ports.exceptions import (
    InvalidRunTransition,
    MigrationAborted,
    MigrationError,
    RunImmutableError,
)

__all__ = [
    "InvalidRunTransition",
    "MigrationAborted",
    "MigrationError",
    "RunImmutableError",
]
