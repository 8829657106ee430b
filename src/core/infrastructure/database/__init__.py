"""Database infrastructure: psycopg2 connections for the migration,
async engines for request handling, and the shared error types."""

from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
    TransactionError,
)

__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
    "TransactionError",
]
