"""Repository protocols (ports) for the tenancy bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from tenancy.domain.tenant import Tenant


@dataclass(frozen=True)
class DirectoryUser:
    """Subset of a unified directory user needed for tenant resolution."""

    id: int
    email: str
    primary_school_id: int | None
    is_active: bool


@runtime_checkable
class ITenantDirectory(Protocol):
    """Read access to the unified user directory and school registry.

    Both live in the shared namespace; implementations must qualify every
    table explicitly so results never depend on the connection scope.
    """

    async def get_user(self, user_id: int) -> DirectoryUser | None:
        """Retrieve a directory user by ID.

        Args:
            user_id: The unified directory identifier

        Returns:
            The user, or None if no such user exists
        """
        ...

    async def get_school(self, school_id: int) -> Tenant | None:
        """Retrieve a school by ID.

        Args:
            school_id: The school identifier

        Returns:
            The Tenant with its namespace (if assigned), or None if not found
        """
        ...

    async def get_school_by_subdomain(self, subdomain: str) -> Tenant | None:
        """Retrieve a school by its (lowercase) subdomain."""
        ...

    async def get_school_by_code(self, code: str) -> Tenant | None:
        """Retrieve a school by its exact code."""
        ...

    async def has_membership(self, user_id: int, school_id: int) -> bool:
        """Check whether a user is linked to a school.

        A link is either a membership row or the user's primary school.
        """
        ...
