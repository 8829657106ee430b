"""Unit tests for ConnectionFactory."""

from unittest.mock import MagicMock, patch

import psycopg2
import pytest

from infrastructure.database.connection import ConnectionFactory
from infrastructure.database.exceptions import DatabaseConnectionError


@pytest.fixture
def mock_probe():
    return MagicMock()


class TestConnectionFactory:
    """Tests for ConnectionFactory."""

    def test_creates_connection_with_autocommit_disabled(self, mock_db_settings, mock_probe):
        """The migration connection runs everything in one transaction."""
        mock_conn = MagicMock()
        with patch(
            "infrastructure.database.connection.psycopg2.connect",
            return_value=mock_conn,
        ) as connect:
            factory = ConnectionFactory(mock_db_settings, probe=mock_probe)
            conn = factory.create_connection()

        assert conn is mock_conn
        assert mock_conn.autocommit is False
        kwargs = connect.call_args.kwargs
        assert kwargs["host"] == "testhost"
        assert kwargs["dbname"] == "testdb"
        assert kwargs["password"] == "testpass"
        mock_probe.connection_established.assert_called_once_with(
            host="testhost", database="testdb"
        )

    def test_wraps_driver_errors(self, mock_db_settings, mock_probe):
        """Driver failures become DatabaseConnectionError and are observed."""
        with patch(
            "infrastructure.database.connection.psycopg2.connect",
            side_effect=psycopg2.OperationalError("connection refused"),
        ):
            factory = ConnectionFactory(mock_db_settings, probe=mock_probe)
            with pytest.raises(DatabaseConnectionError, match="connection refused"):
                factory.create_connection()

        mock_probe.connection_failed.assert_called_once()

    def test_close_connection(self, mock_db_settings, mock_probe):
        """Open connections are closed."""
        conn = MagicMock()
        conn.closed = 0

        ConnectionFactory(mock_db_settings, probe=mock_probe).close_connection(conn)

        conn.close.assert_called_once()
        mock_probe.connection_closed.assert_called_once()

    def test_close_already_closed_connection(self, mock_db_settings, mock_probe):
        """Closing twice does not call close() again."""
        conn = MagicMock()
        conn.closed = 1

        ConnectionFactory(mock_db_settings, probe=mock_probe).close_connection(conn)

        conn.close.assert_not_called()
