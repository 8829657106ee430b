"""Tenancy domain layer."""

from tenancy.domain.exceptions import NamespaceImmutableError
from tenancy.domain.tenant import Tenant
from tenancy.domain.value_objects import (
    NAMESPACE_PREFIX,
    Principal,
    ProvisionResult,
    ProvisionStatus,
    StatementWarning,
    TenantStatus,
    namespace_for_code,
)

__all__ = [
    "NAMESPACE_PREFIX",
    "NamespaceImmutableError",
    "Principal",
    "ProvisionResult",
    "ProvisionStatus",
    "StatementWarning",
    "Tenant",
    "TenantStatus",
    "namespace_for_code",
]
