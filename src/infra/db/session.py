from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Protocol


class _ConnLike(Protocol):
    def execute(self, sql: str, *args: Any) -> Any: ...


@contextmanager
def transaction(conn: _ConnLike, *, immediate: bool = True) -> Generator[_ConnLike]:
    """
    Explicit transaction for an autocommit-mode sqlite3 connection.

    ``immediate=True`` takes the write lock up front (BEGIN IMMEDIATE), so
    rows read inside the block cannot change underneath a later write.
    Rolls back and re-raises on any exception.
    """
    conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")
