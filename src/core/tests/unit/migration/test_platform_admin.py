"""Unit tests for the platform admin bootstrap."""

import bcrypt

from migration.infrastructure.platform_admin import PlatformAdminBootstrap, hash_password
from shared_kernel.identifiers import SafeIdentifier


class TestHashPassword:
    """Tests for hash_password()."""

    def test_hash_verifies(self):
        """The hash is a bcrypt hash of the password."""
        hashed = hash_password("SuperAdmin123!", rounds=4)
        assert bcrypt.checkpw(b"SuperAdmin123!", hashed.encode())

    def test_salted(self):
        """Two hashes of the same password differ."""
        assert hash_password("pw", rounds=4) != hash_password("pw", rounds=4)


class TestEnsureAdmin:
    """Tests for ensure_admin()."""

    def test_creates_admin_when_none_exists(self, recording_cursor):
        """An empty platform_users table gets the admin."""

        def responder(statement, params):
            if statement.startswith("SELECT EXISTS"):
                return [(False,)]
            return None

        cursor = recording_cursor(responder)
        created = PlatformAdminBootstrap(cursor, SafeIdentifier("public")).ensure_admin(
            "admin@example.com", "pw"
        )

        assert created
        (text, params), = cursor.executed("INSERT INTO")
        assert '"public"."platform_users"' in text
        assert params[0] == "admin@example.com"
        assert params[1].startswith("$2")
        assert params[1] != "pw"

    def test_existing_admin_is_left_alone(self, recording_cursor):
        """Any existing platform user suppresses the bootstrap."""
        cursor = recording_cursor(lambda statement, params: [(True,)])

        created = PlatformAdminBootstrap(cursor, SafeIdentifier("public")).ensure_admin(
            "admin@example.com", "pw"
        )

        assert not created
        assert not cursor.executed("INSERT INTO")
