"""
SQLite schema for the per-user checklist aggregate.

Schema
------

checklist_items
    id INTEGER PRIMARY KEY
    user_id  TEXT NOT NULL
    item_id  INTEGER NOT NULL           – catalog item id
    quantity_needed   INTEGER           – sum of this row's contributions
    quantity_acquired INTEGER           – 0 ≤ acquired ≤ needed (CHECK)
    created_at, updated_at TEXT         – ISO-8601 UTC
    UNIQUE(user_id, item_id)

checklist_contributions
    row_id    INTEGER REFERENCES checklist_items(id) ON DELETE CASCADE
    design_id TEXT NOT NULL
    quantity  INTEGER NOT NULL          – > 0 (CHECK)
    added_at  TEXT NOT NULL
    design_title TEXT                   – title seen when the design was added
    position  INTEGER NOT NULL          – keeps contributions in insertion order
    UNIQUE(row_id, design_id)

Deleting an item row cascades to its contributions.
"""

from __future__ import annotations

import sqlite3

SCHEMA_SQL = """
PRAGMA foreign_keys = ON;

CREATE TABLE IF NOT EXISTS checklist_items(
    id                INTEGER PRIMARY KEY,
    user_id           TEXT    NOT NULL,
    item_id           INTEGER NOT NULL,
    quantity_needed   INTEGER NOT NULL CHECK (quantity_needed >= 0),
    quantity_acquired INTEGER NOT NULL DEFAULT 0,
    created_at        TEXT    NOT NULL,
    updated_at        TEXT    NOT NULL,
    UNIQUE(user_id, item_id),
    CHECK (quantity_acquired BETWEEN 0 AND quantity_needed)
);

CREATE TABLE IF NOT EXISTS checklist_contributions(
    row_id       INTEGER NOT NULL REFERENCES checklist_items(id) ON DELETE CASCADE,
    design_id    TEXT    NOT NULL,
    quantity     INTEGER NOT NULL CHECK (quantity > 0),
    added_at     TEXT    NOT NULL,
    design_title TEXT,
    position     INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (row_id, design_id)
);

CREATE INDEX IF NOT EXISTS idx_checklist_items_user     ON checklist_items(user_id);
CREATE INDEX IF NOT EXISTS idx_checklist_contrib_design ON checklist_contributions(design_id);
"""


def init_db(conn: sqlite3.Connection) -> None:
    """(Re)create all tables if they don't already exist."""
    conn.executescript(SCHEMA_SQL)
