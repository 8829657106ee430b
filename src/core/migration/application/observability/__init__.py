"""Domain probes for the migration application layer."""

from migration.application.observability.migration_probe import (
    DefaultMigrationProbe,
    MigrationProbe,
)

__all__ = [
    "DefaultMigrationProbe",
    "MigrationProbe",
]
