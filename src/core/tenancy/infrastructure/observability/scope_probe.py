"""Domain probe for tenant-scoped query execution."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ScopeProbe(Protocol):
    """Domain probe for connection scoping."""

    def scope_applied(self, school_id: int, namespace: str) -> None:
        """Record that a checked-out connection was scoped to a namespace."""
        ...

    def scope_rejected(self, school_id: int, namespace: str, actual: str | None) -> None:
        """Record that scoping did not take effect and the connection was discarded."""
        ...

    def namespace_incomplete(self, school_id: int, namespace: str, missing: list[str]) -> None:
        """Record that a namespace lacks tables every tenant must have."""
        ...

    def scoped_query_failed(self, school_id: int, namespace: str, error: BaseException) -> None:
        """Record that a scoped unit of work failed or was cancelled."""
        ...

    def connection_invalidated(self, school_id: int, error: Exception) -> None:
        """Record that a connection could not be reset and was invalidated."""
        ...

    def with_context(self, context: ObservationContext) -> ScopeProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultScopeProbe:
    """Default implementation of ScopeProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultScopeProbe:
        return DefaultScopeProbe(logger=self._logger, context=context)

    def scope_applied(self, school_id: int, namespace: str) -> None:
        self._logger.debug(
            "tenant_scope_applied",
            school_id=school_id,
            namespace=namespace,
            **self._get_context_kwargs(),
        )

    def scope_rejected(self, school_id: int, namespace: str, actual: str | None) -> None:
        self._logger.error(
            "tenant_scope_rejected",
            school_id=school_id,
            namespace=namespace,
            actual_schema=actual,
            **self._get_context_kwargs(),
        )

    def namespace_incomplete(self, school_id: int, namespace: str, missing: list[str]) -> None:
        self._logger.error(
            "tenant_namespace_incomplete",
            school_id=school_id,
            namespace=namespace,
            missing_tables=missing,
            **self._get_context_kwargs(),
        )

    def scoped_query_failed(self, school_id: int, namespace: str, error: BaseException) -> None:
        self._logger.warning(
            "tenant_scoped_query_failed",
            school_id=school_id,
            namespace=namespace,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def connection_invalidated(self, school_id: int, error: Exception) -> None:
        self._logger.error(
            "tenant_connection_invalidated",
            school_id=school_id,
            error=str(error),
            **self._get_context_kwargs(),
        )
