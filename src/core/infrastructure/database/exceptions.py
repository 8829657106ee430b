"""Database-specific exceptions shared by all bounded contexts."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when a database connection cannot be obtained."""

    pass


class TransactionError(DatabaseError):
    """Raised when transaction control (begin, savepoint, rollback) fails."""

    def __init__(self, message: str, statement: str | None = None):
        super().__init__(message)
        self.statement = statement
