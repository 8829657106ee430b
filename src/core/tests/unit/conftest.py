"""Unit test fixtures with mocked dependencies."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest
from psycopg2 import sql
from pydantic import SecretStr

from shared_kernel.identifiers import SafeIdentifier
from tenancy.domain.tenant import Tenant


def render_sql(statement: Any) -> str:
    """Render a psycopg2 composable to text without a connection."""
    if isinstance(statement, str):
        return statement
    if isinstance(statement, sql.Composed):
        return "".join(render_sql(part) for part in statement.seq)
    if isinstance(statement, sql.SQL):
        return statement.string
    if isinstance(statement, sql.Identifier):
        return ".".join(f'"{part}"' for part in statement.strings)
    if isinstance(statement, sql.Placeholder):
        return "%s"
    if isinstance(statement, sql.Literal):
        return repr(statement.wrapped)
    raise TypeError(f"Cannot render {statement!r}")


@dataclass
class Rows:
    """Scripted result of one statement."""

    rows: list[tuple[Any, ...]] = field(default_factory=list)
    rowcount: int | None = None
    columns: tuple[str, ...] = ()


Responder = Callable[[str, Any], "Rows | list[tuple[Any, ...]] | BaseException | None"]


class RecordingCursor:
    """psycopg2-like cursor that records statements and replays scripted rows.

    The responder receives the rendered SQL and parameters and returns rows,
    a ``Rows`` instance, an exception to raise, or None for no result.
    """

    def __init__(self, responder: Responder | None = None):
        self._responder = responder or (lambda statement, params: None)
        self.statements: list[tuple[str, Any]] = []
        self.rowcount = -1
        self.description: list[tuple[str]] | None = None
        self._rows: list[tuple[Any, ...]] = []

    def execute(self, statement: Any, params: Any = None) -> None:
        text = render_sql(statement)
        self.statements.append((text, params))
        outcome = self._responder(text, params)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            outcome = Rows()
        elif isinstance(outcome, list):
            outcome = Rows(rows=outcome)
        self._rows = list(outcome.rows)
        self.rowcount = outcome.rowcount if outcome.rowcount is not None else len(self._rows)
        self.description = [(name,) for name in outcome.columns] or None

    def fetchone(self) -> tuple[Any, ...] | None:
        return self._rows.pop(0) if self._rows else None

    def fetchall(self) -> list[tuple[Any, ...]]:
        rows, self._rows = self._rows, []
        return rows

    def executed(self, fragment: str) -> list[tuple[str, Any]]:
        """Statements containing ``fragment``."""
        return [(text, params) for text, params in self.statements if fragment in text]

    def __enter__(self) -> RecordingCursor:
        return self

    def __exit__(self, *exc: object) -> bool:
        return False


@pytest.fixture
def recording_cursor() -> type[RecordingCursor]:
    """The RecordingCursor class, for tests that script their own responses."""
    return RecordingCursor


@pytest.fixture
def sql_text() -> Callable[[Any], str]:
    """Renderer for psycopg2 composables."""
    return render_sql


@pytest.fixture
def mock_db_settings():
    """Provide test database settings."""
    from infrastructure.settings import DatabaseSettings

    return DatabaseSettings(
        host="testhost",
        port=5432,
        database="testdb",
        username="testuser",
        password=SecretStr("testpass"),
    )


@pytest.fixture
def tenant() -> Tenant:
    """An active school with its namespace assigned."""
    return Tenant(
        id=1,
        name="Westfield School",
        code="WS",
        namespace=SafeIdentifier("school_ws"),
        subdomain="ws",
    )


@pytest.fixture
def shared() -> SafeIdentifier:
    return SafeIdentifier("public")


@pytest.fixture
def result_rows() -> type[Rows]:
    """The Rows class, for responders that need an explicit rowcount."""
    return Rows
