"""Migration domain layer."""

from migration.domain.exceptions import InvalidRunTransition, RunImmutableError
from migration.domain.outcomes import (
    ColumnMapping,
    TableOutcome,
    TableStatus,
    TypeConflict,
    UserMigrationResult,
)
from migration.domain.run import (
    STEP_ORDER,
    MigrationRun,
    RunOutcome,
    RunState,
    RunWarning,
)

__all__ = [
    "STEP_ORDER",
    "ColumnMapping",
    "InvalidRunTransition",
    "MigrationRun",
    "RunImmutableError",
    "RunOutcome",
    "RunState",
    "RunWarning",
    "TableOutcome",
    "TableStatus",
    "TypeConflict",
    "UserMigrationResult",
]
