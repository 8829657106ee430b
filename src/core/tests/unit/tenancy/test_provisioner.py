"""Unit tests for NamespaceProvisioner."""

from unittest.mock import MagicMock

import pytest
from psycopg2 import errors

from shared_kernel.identifiers import SafeIdentifier
from tenancy.domain import NamespaceImmutableError
from tenancy.domain.tenant import Tenant
from tenancy.domain.value_objects import ProvisionStatus
from tenancy.infrastructure.provisioner import NamespaceProvisioner
from tenancy.infrastructure.templates import SchemaTemplate

TEMPLATE = SchemaTemplate(
    "school_schema.sql",
    """-- version: 1
CREATE SCHEMA IF NOT EXISTS {SCHEMA_NAME};
CREATE TABLE IF NOT EXISTS {SCHEMA_NAME}.students (id SERIAL PRIMARY KEY);
CREATE TABLE IF NOT EXISTS {SCHEMA_NAME}.merits (id SERIAL PRIMARY KEY, points INT);
""",
)


class FakeCatalogDatabase:
    """Answers catalog queries from a set of existing namespaces and tables."""

    def __init__(self, namespaces=(), failing=()):
        self.namespaces = set(namespaces)
        self.tables: set[tuple[str, str]] = set()
        self.failing = set(failing)

    def __call__(self, statement, params):
        statement = "\n".join(
            line for line in statement.splitlines() if not line.strip().startswith("--")
        ).strip()
        if "information_schema.schemata" in statement:
            return [(params[0] in self.namespaces,)]
        if "information_schema.tables" in statement:
            return [(tuple(params) in self.tables,)]
        if statement.startswith("CREATE SCHEMA"):
            self.namespaces.add(statement.split()[-1])
            return None
        if statement.startswith("CREATE TABLE"):
            qualified = statement.split()[5]
            namespace, table = qualified.split(".")
            if table in self.failing:
                return errors.InsufficientPrivilege("permission denied")
            self.tables.add((namespace, table))
        return None


@pytest.fixture
def mock_probe():
    return MagicMock()


class TestNamespaceProvisioner:
    """Tests for namespace provisioning."""

    def test_provisions_new_namespace(self, recording_cursor, tenant, mock_probe):
        """A new namespace gets every template table."""
        database = FakeCatalogDatabase()
        cursor = recording_cursor(database)

        result = NamespaceProvisioner(TEMPLATE, probe=mock_probe).provision(cursor, tenant)

        assert result.status == ProvisionStatus.PROVISIONED
        assert result.is_clean
        assert ("school_ws", "students") in database.tables
        assert ("school_ws", "merits") in database.tables

    def test_existing_namespace_is_not_touched(self, recording_cursor, tenant, mock_probe):
        """Provisioning twice executes no DDL the second time."""
        cursor = recording_cursor(FakeCatalogDatabase(namespaces={"school_ws"}))

        result = NamespaceProvisioner(TEMPLATE, probe=mock_probe).provision(cursor, tenant)

        assert result.already_provisioned
        assert not cursor.executed("CREATE")
        mock_probe.namespace_already_provisioned.assert_called_once_with("school_ws")

    def test_failed_table_is_reported_missing(self, recording_cursor, tenant, mock_probe):
        """A table whose DDL failed is listed with its warning."""
        cursor = recording_cursor(FakeCatalogDatabase(failing={"merits"}))

        result = NamespaceProvisioner(TEMPLATE, probe=mock_probe).provision(cursor, tenant)

        assert result.status == ProvisionStatus.PROVISIONED
        assert result.missing_tables == ("merits",)
        assert len(result.warnings) == 1
        assert "permission denied" in result.warnings[0].error
        mock_probe.table_missing_after_provisioning.assert_called_once_with(
            "school_ws", "merits"
        )

    def test_requires_assigned_namespace(self, recording_cursor, mock_probe):
        """A tenant without a namespace cannot be provisioned."""
        with pytest.raises(NamespaceImmutableError):
            NamespaceProvisioner(TEMPLATE, probe=mock_probe).provision(
                recording_cursor(), Tenant(id=1, name="x", code="X")
            )

    def test_provision_namespace_directly(self, recording_cursor, mock_probe):
        """Namespaces can be provisioned without a tenant."""
        database = FakeCatalogDatabase()
        result = NamespaceProvisioner(TEMPLATE, probe=mock_probe).provision_namespace(
            recording_cursor(database), SafeIdentifier("school_new")
        )

        assert result.namespace == SafeIdentifier("school_new")
        assert "school_new" in database.namespaces
