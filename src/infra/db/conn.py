# filepath: src/infra/db/conn.py
from __future__ import annotations

import sqlite3
from pathlib import Path

from app.settings import get_settings


def get_conn(db_path: str | Path | None = None, *, busy_timeout_ms: int | None = None) -> sqlite3.Connection:
    """
    Open a sqlite3 connection with row_factory set to Row so results
    behave like dicts.

    The connection is in autocommit mode (isolation_level=None); writes are
    grouped with ``infra.db.session.transaction`` which issues BEGIN itself.
    """
    settings = get_settings()
    path = db_path if db_path is not None else settings.db_path
    timeout_ms = busy_timeout_ms if busy_timeout_ms is not None else settings.sqlite_busy_timeout_ms
    conn = sqlite3.connect(
        str(path),
        timeout=timeout_ms / 1000,
        isolation_level=None,
        check_same_thread=False,
    )
    conn.row_factory = sqlite3.Row
    # Apply robust defaults on every connection
    if str(path) != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute(f"PRAGMA busy_timeout={int(timeout_ms)};")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn
