"""Command-line entry point for the one-time multi-tenant migration.

Usage:
    school-tenancy-migrate
    school-tenancy-migrate --template-dir ./sql --log-dir ./logs
    school-tenancy-migrate --json-logs

Connection details come from ``SCHOOL_DB_*`` and migration options from
``SCHOOL_MIGRATION_*`` environment variables (or ``.env``).
"""

from __future__ import annotations

import argparse
from pathlib import Path

from pydantic import ValidationError
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from infrastructure.database.connection import ConnectionFactory
from infrastructure.logging import configure_logging
from infrastructure.settings import (
    DatabaseSettings,
    MigrationSettings,
    get_database_settings,
    get_migration_settings,
)
from migration.application.controller import MigrationRunController
from migration.domain.run import MigrationRun
from migration.ports.exceptions import MigrationAborted

console = Console()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Migrate a shared-table school database to one namespace per school",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--template-dir",
        type=Path,
        default=None,
        help="Directory holding public_schema.sql and school_schema.sql "
        "(packaged templates when omitted)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for the run artifact (SCHOOL_MIGRATION_LOG_DIR when omitted)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured logs as JSON lines on stderr",
    )
    return parser.parse_args(argv)


def build_settings(
    args: argparse.Namespace, base: MigrationSettings | None = None
) -> MigrationSettings:
    """Apply command-line overrides on top of environment settings."""
    settings = base or get_migration_settings()
    overrides: dict[str, object] = {}
    if args.template_dir is not None:
        overrides["template_dir"] = args.template_dir
    if args.log_dir is not None:
        overrides["log_dir"] = args.log_dir
    return settings.model_copy(update=overrides) if overrides else settings


def render_summary(run: MigrationRun, out: Console | None = None) -> None:
    """Print per-table totals and warnings of a committed run."""
    out = out or console
    table = Table(title="Tenant data", box=box.SIMPLE_HEAVY)
    table.add_column("Namespace", style="cyan")
    table.add_column("Copied", justify="right")
    table.add_column("Skipped", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Rows", justify="right", style="green")

    totals: dict[str, list[int]] = {}
    for outcome in run.table_outcomes:
        counts = totals.setdefault(outcome.namespace, [0, 0, 0, 0])
        counts[["copied", "skipped", "warning"].index(outcome.status.value)] += 1
        counts[3] += outcome.rows_copied
    for namespace, counts in totals.items():
        table.add_row(namespace, *(str(count) for count in counts))
    out.print(table)

    if run.warnings:
        out.print(f"[yellow]Warnings ({len(run.warnings)}):[/]")
        for warning in run.warnings:
            out.print(f"  [yellow]-[/] {warning}")


def main(argv: list[str] | None = None) -> int:
    """Run the migration; exit status 0 on commit, 1 on rollback."""
    args = parse_args(argv)
    configure_logging(json_output=True if args.json_logs else None)

    try:
        settings = build_settings(args)
        database: DatabaseSettings = get_database_settings()
    except ValidationError as e:
        console.print(f"[bold red]Invalid configuration:[/] {e}")
        return 2

    console.print(
        Panel(
            f"[bold cyan]Migrating[/] [green]{database.connection_string}[/] "
            f"[bold cyan]to per-school namespaces[/]",
            box=box.ROUNDED,
            border_style="blue",
        )
    )

    controller = MigrationRunController(ConnectionFactory(database), settings)
    try:
        run = controller.run()
    except MigrationAborted as e:
        console.print(f"\n[bold red]Migration rolled back[/] at {e.run.failed_step}: {e.run.error}")
        if e.artifact_path is not None:
            console.print(f"Error log: [bold]{e.artifact_path}[/]")
        else:
            console.print("[red]The error log could not be written[/]")
        return 1

    render_summary(run)
    console.print(f"\n[green]✓[/] Migration committed ({run.rows_copied()} rows copied)")
    if run.artifact_path is not None:
        console.print(f"Run log: [bold]{run.artifact_path}[/]")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
