"""Merge legacy user rows into the unified user directory.

A legacy user is pending when the directory has no row with its id and a
populated ``password_hash``. Merges only ever fill NULL fields, so a user
that already has a credential in the directory keeps it.
"""

from __future__ import annotations

from typing import Any

import psycopg2
from psycopg2 import sql

from infrastructure.database.catalog import PostgresCatalog
from infrastructure.database.errors import error_summary
from infrastructure.database.transactions import savepoint
from infrastructure.settings import OrphanUserPolicy
from migration.domain.outcomes import UserMigrationResult
from migration.infrastructure.observability import (
    DefaultMigrationStepProbe,
    MigrationStepProbe,
)
from migration.ports.exceptions import MigrationError
from shared_kernel.identifiers import SafeIdentifier
from tenancy.domain.tenant import Tenant

USERS = SafeIdentifier("users")
USER_SCHOOLS = SafeIdentifier("user_schools")

# Legacy schemas used either name for the credential and the school link.
CREDENTIAL_FIELDS = ("password_hash", "password")
SCHOOL_LINK_FIELDS = ("school_id", "primary_school_id")


def resolve_field(row: dict[str, Any], names: tuple[str, ...]) -> Any:
    """First non-empty value among ``names``."""
    for name in names:
        value = row.get(name)
        if value not in (None, ""):
            return value
    return None


class IdentityUnifier:
    """Implements ``MigrateUsers`` against one open transaction."""

    def __init__(
        self,
        cursor: Any,
        legacy_namespace: SafeIdentifier,
        directory_namespace: SafeIdentifier,
        orphan_policy: OrphanUserPolicy = OrphanUserPolicy.FIRST_TENANT,
        orphan_school_code: str | None = None,
        probe: MigrationStepProbe | None = None,
    ):
        self._cursor = cursor
        self._legacy = legacy_namespace
        self._directory = directory_namespace
        self._orphan_policy = orphan_policy
        self._orphan_school_code = orphan_school_code
        self._probe = probe or DefaultMigrationStepProbe()

    def migrate_users(self, tenants: list[Tenant]) -> UserMigrationResult:
        """Merge every pending legacy user.

        Raises:
            MigrationError: If the explicit orphan policy names a school
                that is not among ``tenants``.
        """
        result = UserMigrationResult()
        orphan_school = self._orphan_school(tenants)

        if not PostgresCatalog(self._cursor).table_exists(self._legacy, USERS):
            return result

        for row in self._pending_users():
            email = row.get("email") or f"<user {row.get('id')}>"
            school_id = resolve_field(row, SCHOOL_LINK_FIELDS)
            if school_id is None and orphan_school is not None:
                school_id = orphan_school.id
                result.orphans_assigned.append(email)
                self._probe.orphan_user_assigned(email, school_id)
            try:
                with savepoint(self._cursor, prefix="user"):
                    merged, linked = self._merge_user(row, school_id)
            except psycopg2.Error as e:
                result.failures.append((email, error_summary(e)))
                self._probe.user_failed(email, e)
                continue
            if merged:
                result.merged += 1
            else:
                result.inserted += 1
            result.linked += linked
        return result

    def _orphan_school(self, tenants: list[Tenant]) -> Tenant | None:
        if self._orphan_policy == OrphanUserPolicy.SKIP or not tenants:
            return None
        if self._orphan_policy == OrphanUserPolicy.FIRST_TENANT:
            return tenants[0]
        for tenant in tenants:
            if tenant.code == self._orphan_school_code:
                return tenant
        raise MigrationError(
            f"Orphan user school {self._orphan_school_code!r} is not a migrated school"
        )

    def _pending_users(self) -> list[dict[str, Any]]:
        self._cursor.execute(
            sql.SQL(
                "SELECT * FROM {legacy} WHERE id NOT IN "
                "(SELECT id FROM {directory} WHERE password_hash IS NOT NULL) "
                "ORDER BY id"
            ).format(
                legacy=self._legacy.qualify(USERS),
                directory=self._directory.qualify(USERS),
            )
        )
        names = [column[0] for column in self._cursor.description]
        return [dict(zip(names, values)) for values in self._cursor.fetchall()]

    def _merge_user(self, row: dict[str, Any], school_id: int | None) -> tuple[bool, int]:
        """Upsert one user and its membership; returns (merged, links created)."""
        credential = resolve_field(row, CREDENTIAL_FIELDS)
        users = self._directory.qualify(USERS)

        self._cursor.execute(
            sql.SQL("SELECT id FROM {users} WHERE email = %s").format(users=users),
            (row.get("email"),),
        )
        existing = self._cursor.fetchone()

        if existing is not None:
            directory_id = existing[0]
            self._cursor.execute(
                sql.SQL(
                    "UPDATE {users} SET "
                    "password_hash = COALESCE(password_hash, %s), "
                    "primary_school_id = COALESCE(primary_school_id, %s), "
                    "is_active = TRUE "
                    "WHERE id = %s"
                ).format(users=users),
                (credential, school_id, directory_id),
            )
            merged = True
        else:
            self._cursor.execute(
                sql.SQL(
                    "INSERT INTO {users} AS u "
                    "(id, email, password_hash, name, role, primary_school_id, is_active, phone) "
                    "VALUES (%s, %s, %s, %s, %s, %s, TRUE, %s) "
                    "ON CONFLICT (id) DO UPDATE SET "
                    "password_hash = COALESCE(u.password_hash, EXCLUDED.password_hash), "
                    "primary_school_id = COALESCE(u.primary_school_id, EXCLUDED.primary_school_id) "
                    "RETURNING id"
                ).format(users=users),
                (
                    row.get("id"),
                    row.get("email"),
                    credential,
                    row.get("name"),
                    row.get("role"),
                    school_id,
                    row.get("phone"),
                ),
            )
            directory_id = self._cursor.fetchone()[0]
            merged = False

        if school_id is None:
            self._probe.user_skipped(str(row.get("email")), "no school to link")
            return merged, 0

        self._cursor.execute(
            sql.SQL(
                "INSERT INTO {links} (user_id, school_id, role_in_school, is_primary) "
                "VALUES (%s, %s, %s, TRUE) "
                "ON CONFLICT (user_id, school_id) DO NOTHING"
            ).format(links=self._directory.qualify(USER_SCHOOLS)),
            (directory_id, school_id, row.get("role")),
        )
        return merged, max(self._cursor.rowcount, 0)
