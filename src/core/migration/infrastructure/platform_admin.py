"""One-time bootstrap of the platform administrator account."""

from __future__ import annotations

from typing import Any

import bcrypt
from psycopg2 import sql

from shared_kernel.identifiers import SafeIdentifier

PLATFORM_USERS = SafeIdentifier("platform_users")
BCRYPT_ROUNDS = 10


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password with bcrypt and a fresh salt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


class PlatformAdminBootstrap:
    """Creates the platform admin only while ``platform_users`` is empty."""

    def __init__(self, cursor: Any, namespace: SafeIdentifier):
        self._cursor = cursor
        self._table = namespace.qualify(PLATFORM_USERS)

    def ensure_admin(self, email: str, password: str, name: str = "Super Admin") -> bool:
        """Create the admin if no platform user exists.

        Returns:
            True if the account was created, False if one already existed.
        """
        self._cursor.execute(
            sql.SQL("SELECT EXISTS (SELECT 1 FROM {table})").format(table=self._table)
        )
        if self._cursor.fetchone()[0]:
            return False

        self._cursor.execute(
            sql.SQL(
                "INSERT INTO {table} (email, password_hash, name, role, is_active) "
                "VALUES (%s, %s, %s, %s, TRUE)"
            ).format(table=self._table),
            (email, hash_password(password), name, "platform_admin"),
        )
        return True
