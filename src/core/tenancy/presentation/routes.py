"""HTTP routes for the Tenancy bounded context."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from shared_kernel.middleware.tenant_context import TenantContext
from tenancy.dependencies import get_current_tenant

router = APIRouter(prefix="/tenancy", tags=["tenancy"])


class TenantContextResponse(BaseModel):
    school_id: int
    namespace: str
    source: str


@router.get("/context")
async def read_tenant_context(
    tenant: Annotated[TenantContext, Depends(get_current_tenant)],
) -> TenantContextResponse:
    """Return the school and namespace the current request is scoped to."""
    return TenantContextResponse(
        school_id=tenant.school_id,
        namespace=tenant.namespace.value,
        source=tenant.source,
    )
