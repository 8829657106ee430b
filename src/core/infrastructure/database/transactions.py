"""Savepoint helpers for tolerant statements inside one transaction.

PostgreSQL aborts the whole transaction on the first failing statement.
Statements whose failure is tolerated therefore run under their own
SAVEPOINT, which is rolled back on failure so the enclosing transaction
stays usable.
"""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import psycopg2
from psycopg2 import sql

from infrastructure.database.exceptions import TransactionError

_counter = itertools.count(1)


@contextmanager
def savepoint(cursor: Any, prefix: str = "sp") -> Iterator[None]:
    """Run the enclosed block under a savepoint.

    On success the savepoint is released. On a database error the block's
    effects are rolled back to the savepoint and the error is re-raised for
    the caller to classify.

    Raises:
        TransactionError: If the savepoint itself cannot be rolled back, in
            which case the enclosing transaction is unusable.
    """
    name = sql.Identifier(f"{prefix}_{next(_counter)}")
    cursor.execute(sql.SQL("SAVEPOINT {}").format(name))
    try:
        yield
    except psycopg2.Error:
        try:
            cursor.execute(sql.SQL("ROLLBACK TO SAVEPOINT {}").format(name))
        except psycopg2.Error as e:
            raise TransactionError(
                f"Failed to roll back to savepoint: {e}"
            ) from e
        raise
    else:
        cursor.execute(sql.SQL("RELEASE SAVEPOINT {}").format(name))
