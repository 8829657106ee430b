"""Tenant-scoped query execution over the shared request pool.

A scope is bound to one checkout, never to a physical connection:

1. A connection is checked out and a transaction begins.
2. ``search_path`` is set with ``set_config(..., is_local => true)`` so it
   lives only as long as that transaction.
3. The effective schema is read back; if it is not the tenant namespace
   (e.g. the namespace does not exist) the unit of work is refused.
4. On success the transaction commits, which also drops the local
   setting. On error, timeout or cancellation it rolls back, and a
   connection that cannot be rolled back is invalidated instead of being
   returned to the pool.

Every checkout sets the scope unconditionally, so a connection that last
served another school can never carry that school's scope into this one.

Because of the shared fallback, a tenant table that provisioning failed to
create would resolve to the legacy shared table of the same name, which
still holds every school's rows. Given the template's table names, the
executor refuses a namespace until all of them exist in it; namespaces
found complete are remembered for the life of the executor.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.sql import Executable

from shared_kernel.identifiers import SafeIdentifier
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.infrastructure.observability import DefaultScopeProbe, ScopeProbe
from tenancy.ports.exceptions import TenantScopeError

_SET_SEARCH_PATH = text("SELECT set_config('search_path', :path, true)")
_CURRENT_SCHEMA = text("SELECT current_schema()")
_PRESENT_TABLES = text(
    "SELECT c.relname::text FROM pg_catalog.pg_class c "
    "JOIN pg_catalog.pg_namespace n ON n.oid = c.relnamespace "
    "WHERE n.nspname = :namespace AND c.relkind IN ('r', 'p') "
    "AND c.relname::text = ANY(CAST(:tables AS text[]))"
)


@dataclass(frozen=True)
class ScopedResult:
    """Materialized result of a scoped query."""

    rows: list[RowMapping] = field(default_factory=list)
    rowcount: int = 0


def search_path_for(namespace: SafeIdentifier, shared: SafeIdentifier) -> str:
    """``search_path`` value: the tenant namespace, then the shared one."""
    if namespace == shared:
        return f'"{namespace.value}"'
    return f'"{namespace.value}", "{shared.value}"'


class TenantScopedExecutor:
    """Runs queries against one tenant's namespace.

    Unqualified table names resolve in the tenant namespace first and fall
    back to the shared namespace for cross-tenant lookups (e.g. the school
    registry). With ``required_tables`` set, a namespace missing any of them
    is refused rather than allowed to fall through to shared tables.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        shared_namespace: str | SafeIdentifier = "public",
        timeout_seconds: float | None = None,
        probe: ScopeProbe | None = None,
        required_tables: Iterable[str] = (),
    ):
        """Initialize the executor.

        Args:
            engine: Request engine whose pool is shared by all tenants
            shared_namespace: Fallback namespace placed after the tenant's
            timeout_seconds: Upper bound for one scoped unit of work
            probe: Optional domain probe for observability
            required_tables: Tables every tenant namespace must hold
        """
        self._engine = engine
        self._shared = SafeIdentifier.of(shared_namespace)
        self._timeout = timeout_seconds
        self._probe = probe or DefaultScopeProbe()
        self._required = frozenset(table.lower() for table in required_tables)
        self._complete: set[str] = set()

    @asynccontextmanager
    async def scoped_connection(
        self, context: TenantContext
    ) -> AsyncIterator[AsyncConnection]:
        """Check out a connection scoped to the tenant for one transaction.

        Raises:
            TenantScopeError: If the scope could not be applied.
        """
        async with self._engine.connect() as conn:
            try:
                await conn.begin()
                await self._apply_scope(conn, context)
                yield conn
                await conn.commit()
            except BaseException as e:
                self._probe.scoped_query_failed(
                    context.school_id, context.namespace.value, e
                )
                await self._reset(conn, context)
                raise

    async def with_scope(
        self,
        context: TenantContext,
        query: str | Executable,
        params: Mapping[str, Any] | None = None,
    ) -> ScopedResult:
        """Execute one query scoped to the tenant.

        Args:
            context: Resolved tenant context of the calling request
            query: SQL text (bound parameters as ``:name``) or a SQLAlchemy
                executable
            params: Bound parameter values

        Returns:
            Rows (for row-returning statements) and the affected row count

        Raises:
            TenantScopeError: If the scope could not be applied.
            TimeoutError: If the configured timeout elapses; the connection
                is still reset before it returns to the pool.
        """
        statement = text(query) if isinstance(query, str) else query
        async with asyncio.timeout(self._timeout):
            async with self.scoped_connection(context) as conn:
                result = await conn.execute(statement, dict(params or {}))
                rows = list(result.mappings().all()) if result.returns_rows else []
                return ScopedResult(rows=rows, rowcount=result.rowcount)

    async def _apply_scope(self, conn: AsyncConnection, context: TenantContext) -> None:
        path = search_path_for(context.namespace, self._shared)
        await conn.execute(_SET_SEARCH_PATH, {"path": path})
        actual = (await conn.execute(_CURRENT_SCHEMA)).scalar()
        if actual != context.namespace.value:
            self._probe.scope_rejected(context.school_id, context.namespace.value, actual)
            raise TenantScopeError(
                f"Namespace {context.namespace} of school {context.school_id} "
                f"is not usable (current schema is {actual!r})"
            )
        await self._ensure_complete(conn, context)
        self._probe.scope_applied(context.school_id, context.namespace.value)

    async def _ensure_complete(self, conn: AsyncConnection, context: TenantContext) -> None:
        namespace = context.namespace.value
        if not self._required or namespace in self._complete:
            return
        result = await conn.execute(
            _PRESENT_TABLES, {"namespace": namespace, "tables": sorted(self._required)}
        )
        missing = sorted(self._required - set(result.scalars().all()))
        if missing:
            self._probe.namespace_incomplete(context.school_id, namespace, missing)
            raise TenantScopeError(
                f"Namespace {context.namespace} of school {context.school_id} "
                f"is missing tables: {', '.join(missing)}"
            )
        self._complete.add(namespace)

    async def _reset(self, conn: AsyncConnection, context: TenantContext) -> None:
        try:
            await conn.rollback()
        except Exception as e:
            self._probe.connection_invalidated(context.school_id, e)
            await conn.invalidate()
