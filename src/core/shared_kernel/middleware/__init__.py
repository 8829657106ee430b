"""Shared middleware for cross-cutting concerns.

Holds the tenant context value object handed from the request boundary to
every tenant-scoped query.
"""

from shared_kernel.middleware.tenant_context import TenantContext

__all__ = ["TenantContext"]
