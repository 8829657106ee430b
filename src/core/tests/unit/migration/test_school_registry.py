"""Unit tests for SchoolRegistry."""

from unittest.mock import MagicMock

import pytest
from psycopg2 import errors

from migration.infrastructure.school_registry import SchoolRegistry
from shared_kernel.identifiers import InvalidIdentifier, SafeIdentifier


class FakeSchools:
    """In-memory schools table answering the registry's statements."""

    def __init__(self, schools, failing_ids=()):
        self.schools = {s["id"]: dict(s) for s in schools}
        self.failing = set(failing_ids)

    def row(self, school):
        return (
            school["id"], school["name"], school.get("code"), school.get("status"),
            school.get("schema_name"), school.get("subdomain"),
        )

    def __call__(self, statement, params):
        if statement.startswith("SELECT id, name") and "IS NULL" in statement:
            return [self.row(s) for _, s in sorted(self.schools.items()) if not s.get("schema_name")]
        if statement.startswith("SELECT id, name"):
            return [self.row(s) for _, s in sorted(self.schools.items()) if s.get("schema_name")]
        if statement.startswith("SELECT EXISTS"):
            return [(bool(self.schools),)]
        if statement.startswith("UPDATE"):
            namespace, code, subdomain, school_id = params
            if school_id in self.failing:
                return errors.UniqueViolation("duplicate key value violates unique constraint")
            school = self.schools[school_id]
            if not school.get("schema_name"):
                school["schema_name"] = namespace
                school["code"] = school.get("code") or code
                school["subdomain"] = school.get("subdomain") or subdomain
            return None
        if statement.startswith("INSERT INTO"):
            name, code, subdomain, namespace, status = params
            self.schools[100] = {"id": 100, "name": name, "code": code, "subdomain": subdomain,
                                 "schema_name": namespace, "status": status}
            return [(100,)]
        return None


@pytest.fixture
def mock_probe():
    return MagicMock()


def registry(cursor, probe):
    return SchoolRegistry(cursor, SafeIdentifier("public"), probe=probe)


class TestRegisterSchools:
    """Tests for register_schools()."""

    def test_assigns_namespaces_from_codes(self, recording_cursor, mock_probe):
        """Pending schools get namespaces derived from their codes."""
        db = FakeSchools([
            {"id": 1, "name": "Westfield", "code": "WS"},
            {"id": 2, "name": "North High", "code": None},
        ])

        result = registry(recording_cursor(db), mock_probe).register_schools()

        assert db.schools[1]["schema_name"] == "school_ws"
        assert db.schools[2]["schema_name"] == "school_sch2"
        assert db.schools[2]["code"] == "SCH2"
        assert [t.id for t in result.tenants] == [1, 2]
        assert len(result.registered) == 2

    def test_existing_namespace_is_kept(self, recording_cursor, mock_probe):
        """A school whose code changed keeps its namespace."""
        db = FakeSchools([
            {"id": 1, "name": "Westfield", "code": "WESTFIELD", "schema_name": "school_ws"},
        ])

        result = registry(recording_cursor(db), mock_probe).register_schools()

        assert result.registered == []
        assert result.tenants[0].namespace == SafeIdentifier("school_ws")
        assert db.schools[1]["schema_name"] == "school_ws"

    def test_failed_registration_is_recorded(self, recording_cursor, mock_probe):
        """A school that cannot be updated is a failure, others continue."""
        db = FakeSchools(
            [{"id": 1, "name": "Westfield", "code": "WS"}, {"id": 2, "name": "North", "code": "NH"}],
            failing_ids={1},
        )

        result = registry(recording_cursor(db), mock_probe).register_schools()

        assert [label for label, _ in result.failures] == ["Westfield (WS)"]
        assert [t.id for t in result.tenants] == [2]
        mock_probe.school_registration_failed.assert_called_once()

    def test_creates_default_school_when_empty(self, recording_cursor, mock_probe):
        """A database without schools gets the default school."""
        db = FakeSchools([])

        result = registry(recording_cursor(db), mock_probe).register_schools()

        assert result.created_default
        assert result.tenants[0].namespace == SafeIdentifier("school_default")
        assert db.schools[100]["code"] == "DEFAULT"

    def test_unsafe_code_is_fatal(self, recording_cursor, mock_probe):
        """A code that cannot yield a safe namespace aborts the run."""
        db = FakeSchools([{"id": 1, "name": "Long", "code": "x" * 80}])

        with pytest.raises(InvalidIdentifier):
            registry(recording_cursor(db), mock_probe).register_schools()
