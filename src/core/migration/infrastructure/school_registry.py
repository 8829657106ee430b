"""Assign namespaces to legacy schools in the shared registry."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import psycopg2
from psycopg2 import sql

from infrastructure.database.errors import error_summary
from infrastructure.database.transactions import savepoint
from migration.infrastructure.observability import (
    DefaultMigrationStepProbe,
    MigrationStepProbe,
)
from shared_kernel.identifiers import SafeIdentifier
from tenancy.domain.tenant import Tenant
from tenancy.domain.value_objects import TenantStatus, namespace_for_code

SCHOOLS = SafeIdentifier("schools")
_SCHOOL_COLUMNS = sql.SQL("id, name, code, status, schema_name, subdomain")


@dataclass
class RegistrationResult:
    """Outcome of the school registration step.

    Attributes:
        tenants: Every school with a namespace, ordered by id
        registered: Schools that received their namespace in this run
        failures: (school label, error) for schools left unregistered
        created_default: Whether the default school was created
    """

    tenants: list[Tenant] = field(default_factory=list)
    registered: list[Tenant] = field(default_factory=list)
    failures: list[tuple[str, str]] = field(default_factory=list)
    created_default: bool = False


class SchoolRegistry:
    """Gives each legacy school its namespace, exactly once.

    ``schema_name``, ``code`` and ``subdomain`` are only written where they
    are empty, so a school that already has a namespace keeps it.
    """

    def __init__(
        self,
        cursor: Any,
        namespace: SafeIdentifier,
        default_school_name: str = "Default School",
        default_school_code: str = "DEFAULT",
        probe: MigrationStepProbe | None = None,
    ):
        self._cursor = cursor
        self._schools = namespace.qualify(SCHOOLS)
        self._default_name = default_school_name
        self._default_code = default_school_code
        self._probe = probe or DefaultMigrationStepProbe()

    def register_schools(self) -> RegistrationResult:
        """Register pending schools and return all schools with a namespace.

        Raises:
            InvalidIdentifier: If a derived or stored namespace is unsafe.
        """
        result = RegistrationResult()

        for tenant in self._pending():
            namespace = tenant.assign_namespace()
            try:
                with savepoint(self._cursor, prefix="school"):
                    self._cursor.execute(
                        sql.SQL(
                            "UPDATE {schools} SET schema_name = %s, "
                            "code = COALESCE(NULLIF(code, ''), %s), "
                            "subdomain = COALESCE(NULLIF(subdomain, ''), %s) "
                            "WHERE id = %s AND (schema_name IS NULL OR schema_name = '')"
                        ).format(schools=self._schools),
                        (namespace.value, tenant.code, tenant.code.lower(), tenant.id),
                    )
            except psycopg2.Error as e:
                result.failures.append((f"{tenant.label} ({tenant.code})", error_summary(e)))
                self._probe.school_registration_failed(tenant.id, e)
                continue
            result.registered.append(tenant)
            self._probe.school_registered(tenant.id, namespace.value)

        result.tenants = self._with_namespace()
        if not result.tenants and not self._any_school():
            result.tenants = [self._create_default()]
            result.created_default = True
        return result

    def _pending(self) -> list[Tenant]:
        self._cursor.execute(
            sql.SQL(
                "SELECT {columns} FROM {schools} "
                "WHERE schema_name IS NULL OR schema_name = '' ORDER BY id"
            ).format(columns=_SCHOOL_COLUMNS, schools=self._schools)
        )
        return [_to_tenant(row, with_namespace=False) for row in self._cursor.fetchall()]

    def _with_namespace(self) -> list[Tenant]:
        self._cursor.execute(
            sql.SQL(
                "SELECT {columns} FROM {schools} "
                "WHERE schema_name IS NOT NULL AND schema_name <> '' ORDER BY id"
            ).format(columns=_SCHOOL_COLUMNS, schools=self._schools)
        )
        return [_to_tenant(row, with_namespace=True) for row in self._cursor.fetchall()]

    def _any_school(self) -> bool:
        self._cursor.execute(
            sql.SQL("SELECT EXISTS (SELECT 1 FROM {schools})").format(schools=self._schools)
        )
        return bool(self._cursor.fetchone()[0])

    def _create_default(self) -> Tenant:
        namespace = namespace_for_code(self._default_code)
        self._cursor.execute(
            sql.SQL(
                "INSERT INTO {schools} (name, code, subdomain, schema_name, status) "
                "VALUES (%s, %s, %s, %s, %s) RETURNING id"
            ).format(schools=self._schools),
            (
                self._default_name,
                self._default_code,
                self._default_code.lower(),
                namespace.value,
                TenantStatus.ACTIVE.value,
            ),
        )
        school_id = self._cursor.fetchone()[0]
        self._probe.school_registered(school_id, namespace.value)
        return Tenant(
            id=school_id,
            name=self._default_name,
            code=self._default_code,
            namespace=namespace,
            subdomain=self._default_code.lower(),
        )


def _to_tenant(row: tuple[Any, ...], with_namespace: bool) -> Tenant:
    school_id, name, code, status, schema_name, subdomain = row
    return Tenant.from_legacy(
        id=school_id,
        name=name,
        code=code,
        status=status,
        namespace=schema_name if with_namespace else None,
        subdomain=subdomain,
    )
