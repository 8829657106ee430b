"""Tenant context FastAPI dependencies.

Resolves the school namespace of an authenticated principal. Authentication
itself happens upstream: middleware stores a ``Principal`` on
``request.state.principal``.

Usage in FastAPI routes:
    @router.get("/students")
    async def list_students(
        tenant: Annotated[TenantContext, Depends(get_current_tenant)],
        executor: Annotated[TenantScopedExecutor, Depends(get_tenant_scoped_executor)],
    ):
        result = await executor.with_scope(tenant, "SELECT * FROM students")
        ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.dependencies import get_request_engine, get_session
from infrastructure.settings import get_tenancy_settings
from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.application.context_resolver import SchoolCache, TenantContextResolver
from tenancy.application.observability import (
    DefaultTenantContextProbe,
    TenantContextProbe,
)
from tenancy.domain.tenant import Tenant
from tenancy.domain.value_objects import Principal
from tenancy.infrastructure.directory_repository import TenantDirectoryRepository
from tenancy.infrastructure.scoped_executor import TenantScopedExecutor
from tenancy.infrastructure.templates import SCHOOL_TEMPLATE, load_template
from tenancy.ports.exceptions import (
    MissingTenantContext,
    SchoolNotFound,
    TenantAccessDenied,
    TenantInactiveError,
)

MISSING_SCHOOL_CONTEXT = "MISSING_SCHOOL_CONTEXT"
SCHOOL_INACTIVE = "SCHOOL_INACTIVE"
SCHOOL_ACCESS_DENIED = "SCHOOL_ACCESS_DENIED"
SCHOOL_NOT_FOUND = "SCHOOL_NOT_FOUND"


@lru_cache
def get_school_cache() -> SchoolCache:
    """Get the process-wide school cache."""
    settings = get_tenancy_settings()
    return SchoolCache(
        ttl_seconds=settings.school_cache_ttl_seconds,
        maxsize=settings.school_cache_size,
    )


@lru_cache
def get_tenant_scoped_executor() -> TenantScopedExecutor:
    """Get the executor bound to the shared request engine.

    Tenant namespaces must hold every table of the packaged school template.
    """
    settings = get_tenancy_settings()
    return TenantScopedExecutor(
        engine=get_request_engine(),
        shared_namespace=settings.shared_namespace,
        timeout_seconds=settings.scoped_query_timeout_seconds,
        required_tables=load_template(SCHOOL_TEMPLATE).defined_tables(),
    )


def get_tenant_context_probe() -> TenantContextProbe:
    """Get TenantContextProbe instance."""
    return DefaultTenantContextProbe()


def get_tenant_directory(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> TenantDirectoryRepository:
    """Get a directory repository on the request session."""
    return TenantDirectoryRepository(
        session=session,
        shared_namespace=get_tenancy_settings().shared_namespace,
    )


def get_tenant_context_resolver(
    directory: Annotated[TenantDirectoryRepository, Depends(get_tenant_directory)],
    probe: Annotated[TenantContextProbe, Depends(get_tenant_context_probe)],
) -> TenantContextResolver:
    """Get TenantContextResolver instance sharing the process-wide cache."""
    return TenantContextResolver(
        directory=directory,
        cache=get_school_cache(),
        probe=probe,
    )


async def get_tenant_context(
    principal: Principal,
    resolver: TenantContextResolver,
) -> TenantContext:
    """Resolve the tenant context for an authenticated principal.

    Args:
        principal: The authenticated caller.
        resolver: Resolver for the current request.

    Returns:
        TenantContext with the school and its namespace.

    Raises:
        HTTPException 401: If the principal has no school context. The
            ``MISSING_SCHOOL_CONTEXT`` code tells clients to sign in again;
            it is not a generic authentication failure.
        HTTPException 403: If the school is inactive or not linked to the
            principal.
    """
    try:
        return await resolver.resolve(principal)
    except MissingTenantContext as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "code": MISSING_SCHOOL_CONTEXT,
                "message": "Your session has no school context. Please sign in again.",
            },
        ) from e
    except TenantInactiveError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": SCHOOL_INACTIVE,
                "message": "This school account is currently inactive. Please contact support.",
            },
        ) from e
    except TenantAccessDenied as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": SCHOOL_ACCESS_DENIED,
                "message": "You do not have access to this school.",
            },
        ) from e


async def get_school_by_lookup(
    resolver: TenantContextResolver,
    subdomain: str | None = None,
    code: str | None = None,
) -> Tenant:
    """Find a school from a request subdomain or school code.

    Raises:
        HTTPException 404: If no active, migrated school matches.
        HTTPException 403: If the school is inactive.
    """
    try:
        return await resolver.resolve_school(subdomain=subdomain, code=code)
    except SchoolNotFound as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "code": SCHOOL_NOT_FOUND,
                "message": f"No school found for {e.lookup}: {e.key}",
            },
        ) from e
    except TenantInactiveError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": SCHOOL_INACTIVE,
                "message": "This school account is currently inactive. Please contact support.",
            },
        ) from e


def get_principal(request: Request) -> Principal:
    """Read the principal that authentication middleware put on the request.

    Raises:
        HTTPException 401: If the request was not authenticated.
    """
    principal = getattr(request.state, "principal", None)
    if not isinstance(principal, Principal):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


async def get_current_tenant(
    principal: Annotated[Principal, Depends(get_principal)],
    resolver: Annotated[TenantContextResolver, Depends(get_tenant_context_resolver)],
) -> TenantContext:
    """FastAPI dependency resolving the tenant of the current request."""
    return await get_tenant_context(principal, resolver)
