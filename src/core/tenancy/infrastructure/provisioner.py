"""Namespace provisioning from the school template."""

from __future__ import annotations

from typing import Any

from infrastructure.database.catalog import PostgresCatalog
from shared_kernel.identifiers import SafeIdentifier
from tenancy.domain.tenant import Tenant
from tenancy.domain.value_objects import ProvisionResult, ProvisionStatus
from tenancy.infrastructure.ddl_runner import DdlRunner
from tenancy.infrastructure.observability import (
    DefaultProvisioningProbe,
    ProvisioningProbe,
)
from tenancy.infrastructure.templates import SchemaTemplate


class NamespaceProvisioner:
    """Idempotently creates a school namespace from a schema template.

    An existing namespace is never touched: provisioning it again reports
    ``ALREADY_PROVISIONED`` without executing DDL. For a new namespace every
    table the template defines either exists afterwards or is listed in
    ``missing_tables`` with the statement warnings that explain it.
    """

    def __init__(
        self,
        template: SchemaTemplate,
        runner: DdlRunner | None = None,
        probe: ProvisioningProbe | None = None,
    ):
        self._template = template
        self._probe = probe or DefaultProvisioningProbe()
        self._runner = runner or DdlRunner(probe=self._probe)

    @property
    def template(self) -> SchemaTemplate:
        return self._template

    def provision(self, cursor: Any, tenant: Tenant) -> ProvisionResult:
        """Provision the tenant's namespace.

        Args:
            cursor: Cursor on the caller's open transaction
            tenant: Tenant with an assigned namespace

        Raises:
            NamespaceImmutableError: If the tenant has no namespace assigned.
            InvalidIdentifier: If the namespace is not a safe identifier.
        """
        namespace = tenant.require_namespace()
        return self.provision_namespace(cursor, namespace)

    def provision_namespace(
        self, cursor: Any, namespace: SafeIdentifier
    ) -> ProvisionResult:
        catalog = PostgresCatalog(cursor)
        if catalog.namespace_exists(namespace):
            self._probe.namespace_already_provisioned(namespace.value)
            return ProvisionResult(
                namespace=namespace,
                status=ProvisionStatus.ALREADY_PROVISIONED,
            )

        ddl = self._template.render(namespace)
        report = self._runner.run(cursor, ddl)

        missing: list[str] = []
        for table in self._template.defined_tables():
            if not catalog.table_exists(namespace, SafeIdentifier(table)):
                missing.append(table)
                self._probe.table_missing_after_provisioning(namespace.value, table)

        self._probe.namespace_provisioned(
            namespace.value,
            statements=report.executed,
            warnings=len(report.warnings),
        )
        return ProvisionResult(
            namespace=namespace,
            status=ProvisionStatus.PROVISIONED,
            warnings=tuple(report.warnings),
            missing_tables=tuple(missing),
        )
