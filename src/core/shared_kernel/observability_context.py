"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Attributes:
        request_id: Unique identifier for the current request/operation.
        user_id: Identifier of the principal performing the operation.
        school_id: Tenant identifier (if applicable).
        namespace: Tenant namespace being operated on (if applicable).
        run_id: Migration run identifier (if applicable).
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(run_id="20260101T000000Z", namespace="school_ws")
        probe = DefaultMigrationProbe().with_context(context)
    """

    request_id: str | None = None
    user_id: str | None = None
    school_id: int | None = None
    namespace: str | None = None
    run_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.request_id is not None:
            result["request_id"] = self.request_id
        if self.user_id is not None:
            result["user_id"] = self.user_id
        if self.school_id is not None:
            result["school_id"] = self.school_id
        if self.namespace is not None:
            result["namespace"] = self.namespace
        if self.run_id is not None:
            result["run_id"] = self.run_id
        result.update(self.extra)
        return result

    def with_namespace(self, namespace: str) -> ObservationContext:
        """Create a new context with the namespace set."""
        return replace(self, namespace=namespace)

    def with_extra(self, **kwargs: Any) -> ObservationContext:
        """Create a new context with additional metadata."""
        return replace(self, extra={**self.extra, **kwargs})
