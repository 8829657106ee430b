"""Migration run aggregate and its state machine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path

from migration.domain.exceptions import InvalidRunTransition, RunImmutableError
from migration.domain.outcomes import TableOutcome, TableStatus


class RunState(StrEnum):
    """Steps of a migration run, in execution order."""

    NOT_STARTED = "NotStarted"
    INITIALIZING_SCHEMA = "InitializingSchema"
    MIGRATING_TENANTS = "MigratingTenants"
    PROVISIONING_NAMESPACES = "ProvisioningNamespaces"
    MIGRATING_USERS = "MigratingUsers"
    MIGRATING_TENANT_DATA = "MigratingTenantData"
    BOOTSTRAPPING_PLATFORM_ADMIN = "BootstrappingPlatformAdmin"
    RESYNCING_SEQUENCES = "ResyncingSequences"
    COMMITTED = "Committed"
    ROLLED_BACK = "RolledBack"


STEP_ORDER: tuple[RunState, ...] = (
    RunState.NOT_STARTED,
    RunState.INITIALIZING_SCHEMA,
    RunState.MIGRATING_TENANTS,
    RunState.PROVISIONING_NAMESPACES,
    RunState.MIGRATING_USERS,
    RunState.MIGRATING_TENANT_DATA,
    RunState.BOOTSTRAPPING_PLATFORM_ADMIN,
    RunState.RESYNCING_SEQUENCES,
    RunState.COMMITTED,
)

TERMINAL_STATES = frozenset({RunState.COMMITTED, RunState.ROLLED_BACK})


class RunOutcome(StrEnum):
    COMMITTED = "committed"
    ROLLED_BACK = "rolled-back"


@dataclass(frozen=True)
class RunWarning:
    """A recoverable problem: what was being done, and the error."""

    message: str
    error: str

    def __str__(self) -> str:
        return f"{self.message}: {self.error}"


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class MigrationRun:
    """One execution of the migration pipeline.

    Business rules:
    - Steps advance strictly in ``STEP_ORDER``; none can be skipped or repeated
    - ``RolledBack`` is reachable from any non-terminal state
    - Messages and warnings are append-only
    - Once persisted, the run cannot change
    """

    started_at: datetime = field(default_factory=_utc_now)
    state: RunState = RunState.NOT_STARTED
    messages: list[str] = field(default_factory=list)
    warnings: list[RunWarning] = field(default_factory=list)
    table_outcomes: list[TableOutcome] = field(default_factory=list)
    outcome: RunOutcome | None = None
    error: str | None = None
    failed_step: RunState | None = None
    finished_at: datetime | None = None
    artifact_path: Path | None = None

    @property
    def run_id(self) -> str:
        """Identifier derived from the start time, also used in artifact names."""
        return self.started_at.strftime("%Y%m%dT%H%M%S%fZ")

    @property
    def is_persisted(self) -> bool:
        return self.artifact_path is not None

    @property
    def is_finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def log(self, message: str) -> str:
        """Append a timestamped step message and return the formatted line."""
        self._ensure_mutable()
        line = f"[{_utc_now().isoformat()}] {message}"
        self.messages.append(line)
        return line

    def warn(self, message: str, error: BaseException | str) -> RunWarning:
        """Record a recoverable problem."""
        self._ensure_mutable()
        warning = RunWarning(message=message, error=str(error))
        self.warnings.append(warning)
        return warning

    def record_table(self, outcome: TableOutcome) -> None:
        """Record a table outcome; failed copies also become warnings."""
        self._ensure_mutable()
        self.table_outcomes.append(outcome)
        if outcome.status == TableStatus.WARNING:
            self.warn(
                f"Failed to copy {outcome.namespace}.{outcome.table}",
                outcome.reason or "unknown error",
            )

    def advance(self, next_state: RunState) -> None:
        """Move to the next step.

        Raises:
            InvalidRunTransition: If ``next_state`` is not the immediate
                successor of the current state.
        """
        self._ensure_mutable()
        if self.state in TERMINAL_STATES:
            raise InvalidRunTransition(f"Run already finished in state {self.state}")
        expected = STEP_ORDER[STEP_ORDER.index(self.state) + 1]
        if next_state != expected:
            raise InvalidRunTransition(
                f"Cannot move from {self.state} to {next_state}; next step is {expected}"
            )
        self.state = next_state

    def commit(self) -> None:
        """Mark the run committed. Only valid after the last step."""
        self.advance(RunState.COMMITTED)
        self.outcome = RunOutcome.COMMITTED
        self.finished_at = _utc_now()

    def roll_back(self, error: BaseException | str) -> None:
        """Mark the run rolled back after a fatal error."""
        self._ensure_mutable()
        if self.state in TERMINAL_STATES:
            raise InvalidRunTransition(f"Run already finished in state {self.state}")
        self.error = str(error) or type(error).__name__
        self.failed_step = self.state
        self.state = RunState.ROLLED_BACK
        self.outcome = RunOutcome.ROLLED_BACK
        self.finished_at = _utc_now()

    def mark_persisted(self, path: Path) -> None:
        """Freeze the run once its artifact is written."""
        self._ensure_mutable()
        if not self.is_finished:
            raise InvalidRunTransition("Only a finished run can be persisted")
        self.artifact_path = path

    def rows_copied(self) -> int:
        return sum(o.rows_copied for o in self.table_outcomes)

    def _ensure_mutable(self) -> None:
        if self.artifact_path is not None:
            raise RunImmutableError(f"Run {self.run_id} was persisted to {self.artifact_path}")
