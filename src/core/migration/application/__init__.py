"""Application layer for the migration bounded context."""

from migration.application.controller import MigrationRunController

__all__ = ["MigrationRunController"]
