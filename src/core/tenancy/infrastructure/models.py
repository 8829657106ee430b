"""SQLAlchemy ORM models for the school registry and user directory."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import SHARED_SCHEMA, Base, TimestampMixin, _utc_now


class SchoolModel(Base, TimestampMixin):
    """ORM model for the schools table (the tenant registry).

    ``schema_name`` is the school's namespace; it is unique and never
    changes once set.
    """

    __tablename__ = "schools"
    __table_args__ = {"schema": SHARED_SCHEMA}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    code: Mapped[str | None] = mapped_column(String(50))
    subdomain: Mapped[str | None] = mapped_column(String(100), unique=True)
    schema_name: Mapped[str | None] = mapped_column(String(63), unique=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    def __repr__(self) -> str:
        return f"<SchoolModel(id={self.id}, code={self.code}, schema_name={self.schema_name})>"


class UserModel(Base, TimestampMixin):
    """ORM model for the unified user directory."""

    __tablename__ = "users"
    __table_args__ = {"schema": SHARED_SCHEMA}

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    password_hash: Mapped[str | None] = mapped_column(String(255))
    name: Mapped[str | None] = mapped_column(String(255))
    role: Mapped[str | None] = mapped_column(String(50))
    phone: Mapped[str | None] = mapped_column(String(50))
    primary_school_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey(f"{SHARED_SCHEMA}.schools.id", ondelete="SET NULL")
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<UserModel(id={self.id}, email={self.email})>"


class UserSchoolModel(Base):
    """Membership link between a directory user and a school."""

    __tablename__ = "user_schools"
    __table_args__ = (
        UniqueConstraint("user_id", "school_id"),
        {"schema": SHARED_SCHEMA},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey(f"{SHARED_SCHEMA}.users.id", ondelete="CASCADE"), nullable=False
    )
    school_id: Mapped[int] = mapped_column(
        Integer, ForeignKey(f"{SHARED_SCHEMA}.schools.id", ondelete="CASCADE"), nullable=False
    )
    role_in_school: Mapped[str | None] = mapped_column(String(50))
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), insert_default=_utc_now, nullable=False
    )

    def __repr__(self) -> str:
        return f"<UserSchoolModel(user_id={self.user_id}, school_id={self.school_id})>"
