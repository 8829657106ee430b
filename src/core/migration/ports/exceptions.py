"""Exceptions for the migration bounded context."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from migration.domain.exceptions import InvalidRunTransition, RunImmutableError

if TYPE_CHECKING:
    from migration.domain.run import MigrationRun


class MigrationError(Exception):
    """Base class for migration errors."""

    pass


class MigrationAborted(MigrationError):
    """Raised when a migration run failed and was rolled back.

    Attributes:
        run: The rolled-back (and persisted) run
        artifact_path: Error artifact location, or None if it could not be written
    """

    def __init__(self, run: MigrationRun, artifact_path: Path | None):
        super().__init__(f"Migration rolled back: {run.error}")
        self.run = run
        self.artifact_path = artifact_path


__all__ = [
    "InvalidRunTransition",
    "MigrationAborted",
    "MigrationError",
    "RunImmutableError",
]
