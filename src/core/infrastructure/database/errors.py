"""Classification of PostgreSQL errors into benign and unexpected.

Classification prefers the psycopg2 exception class (mapped from SQLSTATE),
then the raw SQLSTATE code, and finally falls back to message text for
drivers or wrappers that lose the code.
"""

from __future__ import annotations

from psycopg2 import errorcodes, errors

_ALREADY_EXISTS_TYPES: tuple[type[BaseException], ...] = (
    errors.DuplicateTable,
    errors.DuplicateObject,
    errors.DuplicateSchema,
    errors.DuplicateFunction,
    errors.DuplicateColumn,
    errors.UniqueViolation,
)
_ALREADY_EXISTS_CODES = frozenset(
    {
        errorcodes.DUPLICATE_TABLE,
        errorcodes.DUPLICATE_OBJECT,
        errorcodes.DUPLICATE_SCHEMA,
        errorcodes.DUPLICATE_FUNCTION,
        errorcodes.DUPLICATE_COLUMN,
        errorcodes.UNIQUE_VIOLATION,
    }
)

_MISSING_TYPES: tuple[type[BaseException], ...] = (
    errors.UndefinedTable,
    errors.UndefinedColumn,
    errors.InvalidSchemaName,
)
_MISSING_CODES = frozenset(
    {
        errorcodes.UNDEFINED_TABLE,
        errorcodes.UNDEFINED_COLUMN,
        errorcodes.INVALID_SCHEMA_NAME,
    }
)


def _message(error: BaseException) -> str:
    return str(error).lower()


def is_already_exists(error: BaseException) -> bool:
    """True for "object already exists" and duplicate-key failures."""
    if isinstance(error, _ALREADY_EXISTS_TYPES):
        return True
    if getattr(error, "pgcode", None) in _ALREADY_EXISTS_CODES:
        return True
    message = _message(error)
    return "already exists" in message or "duplicate" in message


def is_missing_object(error: BaseException) -> bool:
    """True for "table/column/schema does not exist" failures."""
    if isinstance(error, _MISSING_TYPES):
        return True
    if getattr(error, "pgcode", None) in _MISSING_CODES:
        return True
    return "does not exist" in _message(error)


def is_benign(error: BaseException) -> bool:
    """True for failures a re-runnable migration expects to see."""
    return is_already_exists(error) or is_missing_object(error)


def error_summary(error: BaseException) -> str:
    """First line of a driver error message (drops DETAIL/HINT lines)."""
    text = str(error).strip()
    return text.splitlines()[0] if text else type(error).__name__
