"""Tolerant execution of multi-statement DDL inside a caller's transaction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import psycopg2

from infrastructure.database.errors import error_summary, is_already_exists
from infrastructure.database.transactions import savepoint
from tenancy.domain.value_objects import StatementWarning
from tenancy.infrastructure.observability import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.infrastructure.templates import split_statements


@dataclass
class DdlReport:
    """Per-statement accounting of one script execution."""

    executed: int = 0
    already_applied: int = 0
    warnings: list[StatementWarning] = field(default_factory=list)


class DdlRunner:
    """Executes DDL statement by statement, each under its own savepoint.

    "Already exists" failures are tolerated silently. Any other database
    error is recorded as a warning and execution continues with the next
    statement. Errors that are not database errors propagate.
    """

    def __init__(self, probe: ProvisioningProbe | None = None):
        self._probe = probe or DefaultProvisioningProbe()

    def run(self, cursor: Any, script: str) -> DdlReport:
        report = DdlReport()
        for statement in split_statements(script):
            try:
                with savepoint(cursor, prefix="ddl"):
                    cursor.execute(statement)
            except psycopg2.Error as e:
                if is_already_exists(e):
                    report.already_applied += 1
                    self._probe.statement_already_applied(statement)
                    continue
                report.warnings.append(
                    StatementWarning(statement=statement, error=error_summary(e))
                )
                self._probe.statement_failed(statement, e)
                continue
            report.executed += 1
        return report
