"""Exceptions for the tenancy bounded context.

Resolution errors are distinct from authentication failures: the caller is
authenticated but cannot be bound to a usable school namespace. The request
boundary maps each of them to its own response.
"""

from tenancy.domain.exceptions import NamespaceImmutableError


class TenancyError(Exception):
    """Base class for tenancy errors."""

    pass


class MissingTenantContext(TenancyError):
    """Raised when an authenticated principal has no resolvable namespace.

    Typically a legacy account whose school link or namespace was never
    migrated. Callers must force re-authentication rather than fall back
    to any other namespace.
    """

    def __init__(self, user_id: int, reason: str):
        super().__init__(f"No school context for user {user_id}: {reason}")
        self.user_id = user_id
        self.reason = reason


class TenantInactiveError(TenancyError):
    """Raised when the resolved school is not active."""

    def __init__(self, school_id: int, status: str):
        super().__init__(f"School {school_id} is {status}")
        self.school_id = school_id
        self.status = status


class TenantAccessDenied(TenancyError):
    """Raised when a principal selects a school it is not linked to."""

    def __init__(self, user_id: int, school_id: int):
        super().__init__(f"User {user_id} has no access to school {school_id}")
        self.user_id = user_id
        self.school_id = school_id


class SchoolNotFound(TenancyError):
    """Raised when a subdomain or code lookup yields no usable school."""

    def __init__(self, lookup: str, key: str, reason: str):
        super().__init__(f"No school for {lookup} {key!r}: {reason}")
        self.lookup = lookup
        self.key = key
        self.reason = reason


class TemplateNotFoundError(TenancyError):
    """Raised when a required DDL template cannot be located."""

    pass


class TenantScopeError(TenancyError):
    """Raised when a connection cannot be scoped to a tenant namespace.

    The connection is discarded; no query runs against it.
    """

    pass


__all__ = [
    "MissingTenantContext",
    "NamespaceImmutableError",
    "SchoolNotFound",
    "TemplateNotFoundError",
    "TenancyError",
    "TenantAccessDenied",
    "TenantInactiveError",
    "TenantScopeError",
]
