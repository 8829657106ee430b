"""Dedicated psycopg2 connections for long-running administrative work.

The migration run holds one connection and one transaction for its whole
lifetime, so it bypasses the request pool entirely.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import psycopg2

from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)

if TYPE_CHECKING:
    from psycopg2.extensions import connection as PsycopgConnection

    from infrastructure.settings import DatabaseSettings


class ConnectionFactory:
    """Factory for dedicated (unpooled) PostgreSQL connections."""

    def __init__(
        self,
        settings: DatabaseSettings,
        probe: ConnectionProbe | None = None,
        application_name: str = "school-tenancy",
    ):
        """Initialize the connection factory.

        Args:
            settings: Database connection settings
            probe: Optional observability probe
            application_name: Reported in pg_stat_activity
        """
        self._settings = settings
        self._probe = probe or DefaultConnectionProbe()
        self._application_name = application_name

    def create_connection(self) -> PsycopgConnection:
        """Open a new connection with autocommit disabled.

        psycopg2 starts a transaction implicitly on the first statement, so
        everything executed on the returned connection belongs to one
        transaction until ``commit()`` or ``rollback()``.

        Raises:
            DatabaseConnectionError: If connection cannot be established.
        """
        try:
            conn = psycopg2.connect(
                host=self._settings.host,
                port=self._settings.port,
                dbname=self._settings.database,
                user=self._settings.username,
                password=self._settings.password.get_secret_value(),
                application_name=self._application_name,
            )
            conn.autocommit = False

            self._probe.connection_established(
                host=self._settings.host,
                database=self._settings.database,
            )

            return conn

        except psycopg2.Error as e:
            self._probe.connection_failed(
                host=self._settings.host,
                database=self._settings.database,
                error=e,
            )
            raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

    def close_connection(self, conn: PsycopgConnection) -> None:
        """Close a connection created by this factory."""
        if not conn.closed:
            conn.close()
        self._probe.connection_closed()
