"""Domain probes for migration step implementations."""

from migration.infrastructure.observability.step_probe import (
    DefaultMigrationStepProbe,
    MigrationStepProbe,
)

__all__ = [
    "DefaultMigrationStepProbe",
    "MigrationStepProbe",
]
