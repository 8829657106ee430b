"""PostgreSQL implementation of ITenantDirectory.

Reads the school registry and the unified user directory from the shared
namespace. Every query targets explicitly qualified tables, so the result
does not depend on any scope a pooled connection might carry.
"""

from __future__ import annotations

from sqlalchemy import ColumnElement, exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from infrastructure.database.models import SHARED_SCHEMA, schema_translation
from tenancy.domain.tenant import Tenant
from tenancy.infrastructure.models import SchoolModel, UserModel, UserSchoolModel
from tenancy.ports.repositories import DirectoryUser, ITenantDirectory


class TenantDirectoryRepository(ITenantDirectory):
    """Directory lookups over an AsyncSession."""

    def __init__(self, session: AsyncSession, shared_namespace: str = SHARED_SCHEMA) -> None:
        """Initialize repository with database session.

        Args:
            session: AsyncSession from FastAPI dependency injection
            shared_namespace: Namespace holding the registry tables
        """
        self._session = session
        self._execution_options = (
            {}
            if shared_namespace == SHARED_SCHEMA
            else {"schema_translate_map": schema_translation(shared_namespace)}
        )

    async def get_user(self, user_id: int) -> DirectoryUser | None:
        stmt = select(UserModel).where(UserModel.id == user_id)
        result = await self._session.execute(
            stmt, execution_options=self._execution_options
        )
        model = result.scalar_one_or_none()
        if model is None:
            return None
        return DirectoryUser(
            id=model.id,
            email=model.email,
            primary_school_id=model.primary_school_id,
            is_active=model.is_active,
        )

    async def get_school(self, school_id: int) -> Tenant | None:
        return await self._find_school(SchoolModel.id == school_id)

    async def get_school_by_subdomain(self, subdomain: str) -> Tenant | None:
        return await self._find_school(func.lower(SchoolModel.subdomain) == subdomain.lower())

    async def get_school_by_code(self, code: str) -> Tenant | None:
        return await self._find_school(SchoolModel.code == code)

    async def has_membership(self, user_id: int, school_id: int) -> bool:
        linked = exists().where(
            UserSchoolModel.user_id == user_id,
            UserSchoolModel.school_id == school_id,
        )
        primary = exists().where(
            UserModel.id == user_id,
            UserModel.primary_school_id == school_id,
        )
        result = await self._session.execute(
            select(or_(linked, primary)),
            execution_options=self._execution_options,
        )
        return bool(result.scalar())

    async def _find_school(self, criterion: ColumnElement[bool]) -> Tenant | None:
        stmt = select(SchoolModel).where(criterion).order_by(SchoolModel.id)
        result = await self._session.execute(
            stmt, execution_options=self._execution_options
        )
        model = result.scalars().first()
        if model is None:
            return None
        return Tenant.from_legacy(
            id=model.id,
            name=model.name,
            code=model.code,
            status=model.status,
            namespace=model.schema_name,
            subdomain=model.subdomain,
        )
