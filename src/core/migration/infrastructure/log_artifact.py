"""Durable log artifacts for migration runs.

A committed run produces ``migration_log_<run id>.txt`` with the ordered
step messages followed by the warnings. A rolled-back run produces
``migration_error_<run id>.json`` holding the error message, stack trace,
full message log and warnings.
"""

from __future__ import annotations

import json
import traceback
from pathlib import Path

from migration.domain.run import MigrationRun, RunOutcome


class RunLogWriter:
    """Writes one artifact per finished run and freezes the run."""

    def __init__(self, log_dir: Path):
        self._log_dir = log_dir

    def write(self, run: MigrationRun, error: BaseException | None = None) -> Path:
        """Persist a finished run.

        Raises:
            InvalidRunTransition: If the run has not finished.
            OSError: If the artifact cannot be written.
        """
        self._log_dir.mkdir(parents=True, exist_ok=True)
        if run.outcome == RunOutcome.COMMITTED:
            path = self._log_dir / f"migration_log_{run.run_id}.txt"
            content = render_success(run)
        else:
            path = self._log_dir / f"migration_error_{run.run_id}.json"
            content = json.dumps(failure_payload(run, error), indent=2)
        path.write_text(content, encoding="utf-8")
        run.mark_persisted(path)
        return path


def render_success(run: MigrationRun) -> str:
    lines = list(run.messages)
    if run.warnings:
        lines.append("")
        lines.append(f"Warnings ({len(run.warnings)}):")
        lines.extend(f"  - {warning}" for warning in run.warnings)
    return "\n".join(lines) + "\n"


def failure_payload(run: MigrationRun, error: BaseException | None) -> dict[str, object]:
    stack = (
        "".join(traceback.format_exception(type(error), error, error.__traceback__))
        if error is not None
        else None
    )
    return {
        "error": run.error,
        "failed_step": _failed_step(run),
        "stack": stack,
        "log": list(run.messages),
        "warnings": [
            {"message": warning.message, "error": warning.error}
            for warning in run.warnings
        ],
    }


def _failed_step(run: MigrationRun) -> str | None:
    return run.failed_step.value if run.failed_step is not None else None
