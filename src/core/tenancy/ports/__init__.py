"""Ports for the tenancy bounded context."""

from tenancy.ports.exceptions import (
    MissingTenantContext,
    NamespaceImmutableError,
    SchoolNotFound,
    TemplateNotFoundError,
    TenancyError,
    TenantAccessDenied,
    TenantInactiveError,
    TenantScopeError,
)
from tenancy.ports.repositories import DirectoryUser, ITenantDirectory

__all__ = [
    "DirectoryUser",
    "ITenantDirectory",
    "MissingTenantContext",
    "NamespaceImmutableError",
    "SchoolNotFound",
    "TemplateNotFoundError",
    "TenancyError",
    "TenantAccessDenied",
    "TenantInactiveError",
    "TenantScopeError",
]
