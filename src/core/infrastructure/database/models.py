"""SQLAlchemy declarative base for tables in the shared namespace.

Only shared-namespace tables (school registry and user directory) are
mapped. Per-school tables are reached through scoped raw SQL, never the
ORM, because their namespace varies per request.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, MetaData
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

SHARED_SCHEMA = "public"

NAMING_CONVENTION = {
    "ix": "idx_%(table_name)s_%(column_0_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s",
    "pk": "pk_%(table_name)s",
}


def _utc_now() -> datetime:
    """UTC timestamp evaluated at INSERT/UPDATE time."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for shared-namespace ORM models.

    Models declare ``SHARED_SCHEMA``; repositories remap it with
    ``schema_translate_map`` when the shared namespace is configured
    differently.
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
    type_annotation_map: dict[type, Any] = {}


class TimestampMixin:
    """created_at / updated_at columns matching the DDL templates."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        insert_default=_utc_now,
        onupdate=_utc_now,
        nullable=False,
    )


def schema_translation(shared_namespace: str) -> dict[str | None, str]:
    """Execution option mapping ``SHARED_SCHEMA`` to the configured namespace."""
    return {SHARED_SCHEMA: shared_namespace}
