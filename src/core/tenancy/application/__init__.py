"""Tenancy application layer."""

from tenancy.application.context_resolver import SchoolCache, TenantContextResolver

__all__ = [
    "SchoolCache",
    "TenantContextResolver",
]
