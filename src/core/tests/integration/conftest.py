"""Integration test fixtures for database tests.

These fixtures require a running PostgreSQL instance. The database named
by ``SCHOOL_DB_DATABASE`` is wiped before every test, so point it at a
disposable database.
"""

from collections.abc import Generator
import os

import pytest
from pydantic import SecretStr

from infrastructure.database.connection import ConnectionFactory
from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.settings import DatabaseSettings, MigrationSettings

LEGACY_SCHEMA = """
CREATE TABLE public.schools (
    id SERIAL PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    code VARCHAR(50)
);
CREATE TABLE public.users (
    id SERIAL PRIMARY KEY,
    email VARCHAR(255) NOT NULL UNIQUE,
    password VARCHAR(255),
    name VARCHAR(255),
    role VARCHAR(50),
    school_id INTEGER
);
CREATE TABLE public.students (
    id SERIAL PRIMARY KEY,
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    grade VARCHAR(20),
    school_id INTEGER
);
"""

LEGACY_ROWS = """
INSERT INTO public.schools (id, name, code) VALUES
    (1, 'Westfield', 'WS'),
    (2, 'North High', 'NH'),
    (3, 'Eastside', NULL);
INSERT INTO public.users (id, email, password, name, role, school_id) VALUES
    (1, 'alice@example.com', 'hash-a', 'Alice', 'teacher', 1),
    (2, 'bob@example.com', 'hash-b', 'Bob', 'admin', 2),
    (3, 'carol@example.com', 'hash-c', 'Carol', 'parent', NULL);
INSERT INTO public.students (id, first_name, last_name, grade, school_id) VALUES
    (1, 'Ada', 'Lovelace', '7', 1),
    (5, 'Alan', 'Turing', '8', 1),
    (9, 'Grace', 'Hopper', '9', 1),
    (2, 'Edsger', 'Dijkstra', '7', 2),
    (3, 'Barbara', 'Liskov', '8', 2),
    (4, 'Ken', 'Thompson', '7', 3);
"""


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires database)",
    )


@pytest.fixture(scope="session")
def integration_db_settings() -> DatabaseSettings:
    """Database settings for integration tests.

    Override with environment variables:
        SCHOOL_DB_HOST, SCHOOL_DB_PORT, etc.
    """
    return DatabaseSettings(
        host=os.getenv("SCHOOL_DB_HOST", "localhost"),
        port=int(os.getenv("SCHOOL_DB_PORT", "5432")),
        database=os.getenv("SCHOOL_DB_DATABASE", "schools_test"),
        username=os.getenv("SCHOOL_DB_USERNAME", "schools"),
        password=SecretStr(os.getenv("SCHOOL_DB_PASSWORD", "schools_dev_password")),
        pool_min_connections=1,
        pool_max_connections=1,
    )


@pytest.fixture(scope="session")
def connection_factory(integration_db_settings: DatabaseSettings) -> ConnectionFactory:
    """Connection factory, skipping the integration tests without a database."""
    factory = ConnectionFactory(integration_db_settings)
    try:
        conn = factory.create_connection()
    except DatabaseConnectionError as e:
        pytest.skip(f"PostgreSQL not reachable: {e}")
    factory.close_connection(conn)
    return factory


@pytest.fixture
def admin_connection(connection_factory: ConnectionFactory) -> Generator:
    """Autocommit connection for seeding and assertions."""
    conn = connection_factory.create_connection()
    conn.autocommit = True
    yield conn
    connection_factory.close_connection(conn)


@pytest.fixture
def legacy_database(admin_connection):
    """Reset the database to a shared-table layout with three schools."""
    with admin_connection.cursor() as cursor:
        cursor.execute(
            "SELECT nspname FROM pg_namespace WHERE nspname LIKE 'school\\_%'"
        )
        for (namespace,) in cursor.fetchall():
            cursor.execute(f'DROP SCHEMA "{namespace}" CASCADE')
        cursor.execute("DROP SCHEMA IF EXISTS public CASCADE")
        cursor.execute("CREATE SCHEMA public")
        cursor.execute(LEGACY_SCHEMA)
        cursor.execute(LEGACY_ROWS)
    return admin_connection


@pytest.fixture
def migration_settings(tmp_path) -> MigrationSettings:
    return MigrationSettings(
        log_dir=tmp_path,
        tables=["students", "merits"],
        sequence_tables=["students"],
    )


@pytest.fixture
def fetch(admin_connection):
    """Run a query on the autocommit connection and return all rows."""

    def _fetch(query: str, params=None) -> list[tuple]:
        with admin_connection.cursor() as cursor:
            cursor.execute(query, params)
            return cursor.fetchall()

    return _fetch
