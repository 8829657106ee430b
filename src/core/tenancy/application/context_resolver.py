"""Request-time resolution of a principal to its school namespace."""

from __future__ import annotations

from typing import Literal, NoReturn

from cachetools import TTLCache

from shared_kernel.identifiers import InvalidIdentifier
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.application.observability import (
    DefaultTenantContextProbe,
    TenantContextProbe,
)
from tenancy.domain.tenant import Tenant
from tenancy.domain.value_objects import Principal
from tenancy.ports.exceptions import (
    MissingTenantContext,
    SchoolNotFound,
    TenantAccessDenied,
    TenantInactiveError,
)
from tenancy.ports.repositories import ITenantDirectory

LookupKind = Literal["id", "subdomain", "code"]


class SchoolCache:
    """Process-wide TTL cache of school registry rows.

    Entries are keyed by how the school was looked up (``id``, ``subdomain``
    or ``code``). Shared by all requests; entries expire after
    ``ttl_seconds`` and every key of a school is evicted explicitly whenever
    its record changes.
    """

    def __init__(self, ttl_seconds: int = 300, maxsize: int = 1024):
        self._cache: TTLCache[tuple[str, str], Tenant] = TTLCache(
            maxsize=maxsize, ttl=ttl_seconds
        )

    def get(self, kind: LookupKind, key: int | str) -> Tenant | None:
        return self._cache.get((kind, str(key)))

    def put(self, kind: LookupKind, key: int | str, school: Tenant) -> None:
        self._cache[(kind, str(key))] = school

    def invalidate(self, school_id: int) -> bool:
        """Evict every key of one school. Returns True if any was cached."""
        stale = [key for key, school in list(self._cache.items()) if school.id == school_id]
        for key in stale:
            self._cache.pop(key, None)
        return bool(stale)

    def clear(self) -> None:
        self._cache.clear()


class TenantContextResolver:
    """Maps an authenticated principal to a TenantContext.

    Resolution rules:
    - The explicitly selected school wins, but only if the principal is
      linked to it; otherwise the principal's primary school is used
    - The school must have a namespace and be active

    A principal without a resolvable namespace raises MissingTenantContext,
    never a silent fallback to another namespace.

    Schools can also be looked up without a principal, by subdomain or
    code, through ``resolve_school``.
    """

    def __init__(
        self,
        directory: ITenantDirectory,
        cache: SchoolCache | None = None,
        probe: TenantContextProbe | None = None,
    ):
        """Initialize the resolver.

        Args:
            directory: Directory lookups for the current request
            cache: Shared school cache (a private one is created if omitted)
            probe: Optional domain probe for observability
        """
        self._directory = directory
        self._cache = cache or SchoolCache()
        self._probe = probe or DefaultTenantContextProbe()

    async def resolve(self, principal: Principal) -> TenantContext:
        """Resolve the principal's tenant context.

        Raises:
            MissingTenantContext: If no usable namespace can be determined.
            TenantAccessDenied: If the selected school is not linked to the principal.
            TenantInactiveError: If the school is not active.
        """
        user = await self._directory.get_user(principal.user_id)
        if user is None:
            self._missing(principal.user_id, "user is not in the unified directory")
        if not user.is_active:
            self._missing(principal.user_id, "user is not active")

        if principal.selected_school_id is not None:
            school_id = principal.selected_school_id
            source = "selected"
            if not await self._directory.has_membership(user.id, school_id):
                self._probe.tenant_access_denied(user.id, school_id)
                raise TenantAccessDenied(user.id, school_id)
        elif user.primary_school_id is not None:
            school_id = user.primary_school_id
            source = "primary"
        else:
            self._missing(user.id, "user is not linked to a school")

        try:
            school = await self._lookup("id", school_id)
        except InvalidIdentifier as e:
            self._missing(user.id, f"school {school_id} has an invalid namespace: {e.reason}")
        if school is None:
            self._missing(user.id, f"school {school_id} does not exist")
        if school.namespace is None:
            self._missing(user.id, f"school {school_id} has no namespace")
        if not school.is_active:
            self._probe.tenant_inactive(user.id, school.id, school.status.value)
            raise TenantInactiveError(school.id, school.status.value)

        self._probe.context_resolved(user.id, school.id, school.namespace.value, source)
        return TenantContext(
            school_id=school.id,
            namespace=school.namespace,
            user_id=user.id,
            source=source,
        )

    async def resolve_school(
        self,
        *,
        subdomain: str | None = None,
        code: str | None = None,
    ) -> Tenant:
        """Find an active, migrated school by subdomain or code.

        Exactly one of ``subdomain`` and ``code`` must be given. Subdomains
        are matched case-insensitively; codes exactly.

        Raises:
            ValueError: If neither or both lookups are given.
            SchoolNotFound: If no school matches or it has no usable namespace.
            TenantInactiveError: If the school is not active.
        """
        if (subdomain is None) == (code is None):
            raise ValueError("Give exactly one of subdomain or code")
        kind: LookupKind = "subdomain" if subdomain is not None else "code"
        key = subdomain.strip().lower() if subdomain is not None else code.strip()

        try:
            school = await self._lookup(kind, key)
        except InvalidIdentifier as e:
            self._not_found(kind, key, f"invalid namespace: {e.reason}")
        if school is None:
            self._not_found(kind, key, "no such school")
        if school.namespace is None:
            self._not_found(kind, key, "school has no namespace")
        if not school.is_active:
            self._probe.school_lookup_inactive(kind, key, school.id, school.status.value)
            raise TenantInactiveError(school.id, school.status.value)
        return school

    def invalidate_school(self, school_id: int) -> None:
        """Evict a school from the shared cache after it changes."""
        if self._cache.invalidate(school_id):
            self._probe.school_cache_invalidated(school_id)

    async def _lookup(self, kind: LookupKind, key: int | str) -> Tenant | None:
        cached = self._cache.get(kind, key)
        if cached is not None:
            self._probe.school_cache_hit(cached.id)
            return cached
        if kind == "id":
            school = await self._directory.get_school(int(key))
        elif kind == "subdomain":
            school = await self._directory.get_school_by_subdomain(str(key))
        else:
            school = await self._directory.get_school_by_code(str(key))
        if school is not None:
            self._cache.put(kind, key, school)
        return school

    def _missing(self, user_id: int, reason: str) -> NoReturn:
        self._probe.context_missing(user_id, reason)
        raise MissingTenantContext(user_id, reason)

    def _not_found(self, kind: LookupKind, key: str, reason: str) -> NoReturn:
        self._probe.school_not_found(kind, key, reason)
        raise SchoolNotFound(kind, key, reason)
