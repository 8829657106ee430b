"""Domain probe for tenant context resolution.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events related to resolving a principal to a school
namespace.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.observability_context import ObservationContext


class TenantContextProbe(Protocol):
    """Domain probe for tenant context resolution operations."""

    def context_resolved(
        self,
        user_id: int,
        school_id: int,
        namespace: str,
        source: str,
    ) -> None:
        """Record that a principal was resolved to a school namespace."""
        ...

    def context_missing(
        self,
        user_id: int,
        reason: str,
    ) -> None:
        """Record that no namespace could be resolved for the principal."""
        ...

    def tenant_inactive(
        self,
        user_id: int,
        school_id: int,
        status: str,
    ) -> None:
        """Record that the resolved school is not active."""
        ...

    def tenant_access_denied(
        self,
        user_id: int,
        school_id: int,
    ) -> None:
        """Record that the principal selected a school it is not linked to."""
        ...

    def school_not_found(self, lookup: str, key: str, reason: str) -> None:
        """Record that a subdomain or code lookup found no usable school."""
        ...

    def school_lookup_inactive(
        self,
        lookup: str,
        key: str,
        school_id: int,
        status: str,
    ) -> None:
        """Record that a subdomain or code lookup found an inactive school."""
        ...

    def school_cache_hit(self, school_id: int) -> None:
        """Record that a school was served from the lookup cache."""
        ...

    def school_cache_invalidated(self, school_id: int) -> None:
        """Record that a school was evicted from the lookup cache."""
        ...

    def with_context(self, context: ObservationContext) -> TenantContextProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultTenantContextProbe:
    """Default implementation of TenantContextProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultTenantContextProbe:
        """Create a new probe with observation context bound."""
        return DefaultTenantContextProbe(logger=self._logger, context=context)

    def context_resolved(
        self,
        user_id: int,
        school_id: int,
        namespace: str,
        source: str,
    ) -> None:
        self._logger.debug(
            "tenant_context_resolved",
            user_id=user_id,
            school_id=school_id,
            namespace=namespace,
            source=source,
            **self._get_context_kwargs(),
        )

    def context_missing(
        self,
        user_id: int,
        reason: str,
    ) -> None:
        self._logger.warning(
            "tenant_context_missing",
            user_id=user_id,
            reason=reason,
            message="Principal must re-authenticate after migration",
            **self._get_context_kwargs(),
        )

    def tenant_inactive(
        self,
        user_id: int,
        school_id: int,
        status: str,
    ) -> None:
        self._logger.warning(
            "tenant_context_school_inactive",
            user_id=user_id,
            school_id=school_id,
            status=status,
            **self._get_context_kwargs(),
        )

    def tenant_access_denied(
        self,
        user_id: int,
        school_id: int,
    ) -> None:
        self._logger.warning(
            "tenant_context_access_denied",
            user_id=user_id,
            school_id=school_id,
            **self._get_context_kwargs(),
        )

    def school_not_found(self, lookup: str, key: str, reason: str) -> None:
        self._logger.info(
            "tenant_school_not_found",
            lookup=lookup,
            key=key,
            reason=reason,
            **self._get_context_kwargs(),
        )

    def school_lookup_inactive(
        self,
        lookup: str,
        key: str,
        school_id: int,
        status: str,
    ) -> None:
        self._logger.warning(
            "tenant_school_lookup_inactive",
            lookup=lookup,
            key=key,
            school_id=school_id,
            status=status,
            **self._get_context_kwargs(),
        )

    def school_cache_hit(self, school_id: int) -> None:
        self._logger.debug(
            "tenant_context_school_cache_hit",
            school_id=school_id,
            **self._get_context_kwargs(),
        )

    def school_cache_invalidated(self, school_id: int) -> None:
        self._logger.info(
            "tenant_context_school_cache_invalidated",
            school_id=school_id,
            **self._get_context_kwargs(),
        )
