"""Tenant context value object for resolved tenant identification.

This module contains the pure value object that represents a resolved
tenant context. It is framework-agnostic and contains no business logic,
making it safe for the shared kernel.

The actual resolution logic (directory lookup, status and membership
checks) lives in the tenancy bounded context.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared_kernel.identifiers import SafeIdentifier


@dataclass(frozen=True)
class TenantContext:
    """Resolved tenant context for one in-flight request.

    Created once per request by the resolver, read-only for the request's
    lifetime and discarded at completion. Every scoped query takes it as
    an explicit argument; it is never stored on a connection.

    Attributes:
        school_id: Numeric identifier of the tenant.
        namespace: Validated namespace (schema) name of the tenant.
        user_id: The principal the context was resolved for.
        source: How the school was chosen - 'primary' for the principal's
            primary school, 'selected' for an explicitly requested one.
    """

    school_id: int
    namespace: SafeIdentifier
    user_id: int
    source: str = "primary"
