"""Domain probe for namespace provisioning.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class ProvisioningProbe(Protocol):
    """Domain probe for DDL execution and namespace provisioning."""

    def namespace_already_provisioned(self, namespace: str) -> None:
        """Record that a namespace existed and no DDL was executed."""
        ...

    def namespace_provisioned(
        self, namespace: str, statements: int, warnings: int
    ) -> None:
        """Record that a namespace was created from its template."""
        ...

    def statement_already_applied(self, statement: str) -> None:
        """Record that a statement failed because its object already exists."""
        ...

    def statement_failed(self, statement: str, error: Exception) -> None:
        """Record that a statement failed and was skipped."""
        ...

    def table_missing_after_provisioning(self, namespace: str, table: str) -> None:
        """Record that a template table does not exist after provisioning."""
        ...

    def with_context(self, context: ObservationContext) -> ProvisioningProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultProvisioningProbe:
    """Default implementation of ProvisioningProbe using structlog."""

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

    def with_context(self, context: ObservationContext) -> DefaultProvisioningProbe:
        return DefaultProvisioningProbe(logger=self._logger, context=context)

    def namespace_already_provisioned(self, namespace: str) -> None:
        self._logger.info(
            "namespace_already_provisioned",
            namespace=namespace,
            **self._get_context_kwargs(),
        )

    def namespace_provisioned(
        self, namespace: str, statements: int, warnings: int
    ) -> None:
        self._logger.info(
            "namespace_provisioned",
            namespace=namespace,
            statements=statements,
            warnings=warnings,
            **self._get_context_kwargs(),
        )

    def statement_already_applied(self, statement: str) -> None:
        self._logger.debug(
            "ddl_statement_already_applied",
            statement=_abbreviate(statement),
            **self._get_context_kwargs(),
        )

    def statement_failed(self, statement: str, error: Exception) -> None:
        self._logger.warning(
            "ddl_statement_failed",
            statement=_abbreviate(statement),
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def table_missing_after_provisioning(self, namespace: str, table: str) -> None:
        self._logger.warning(
            "table_missing_after_provisioning",
            namespace=namespace,
            table=table,
            **self._get_context_kwargs(),
        )


def _abbreviate(statement: str, limit: int = 120) -> str:
    compact = " ".join(statement.split())
    return compact if len(compact) <= limit else f"{compact[:limit]}..."
