from __future__ import annotations

import sqlite3
from functools import partial

from app.settings import Settings, get_settings
from core.services.checklist_service import ChecklistService
from infra.db.checklist_store import SqliteAggregateStore
from infra.db.conn import get_conn
from infra.db.schema import init_db
from infra.gateways import HttpDesignSnapshots, HttpItemCatalog, HttpSessionResolver

# -----------------------------
# Connection helper
# -----------------------------


def _connect(settings: Settings) -> sqlite3.Connection:
    return get_conn(settings.db_path, busy_timeout_ms=settings.sqlite_busy_timeout_ms)


def prepare_database(settings: Settings | None = None) -> None:
    """Create the checklist tables if they are missing."""
    settings = settings or get_settings()
    conn = _connect(settings)
    try:
        init_db(conn)
    finally:
        conn.close()


# -----------------------------
# Factories used by route handlers
# -----------------------------


def get_store(settings: Settings | None = None) -> SqliteAggregateStore:
    settings = settings or get_settings()
    return SqliteAggregateStore(connect=partial(_connect, settings))


def get_design_snapshots(settings: Settings | None = None) -> HttpDesignSnapshots:
    settings = settings or get_settings()
    return HttpDesignSnapshots(
        settings.design_api_url,
        token=settings.api_token,
        timeout=settings.http_timeout,
        max_retries=settings.http_max_retries,
    )


def get_item_catalog(settings: Settings | None = None) -> HttpItemCatalog:
    settings = settings or get_settings()
    return HttpItemCatalog(
        settings.catalog_api_url,
        token=settings.api_token,
        timeout=settings.http_timeout,
        max_retries=settings.http_max_retries,
    )


def get_session_resolver(settings: Settings | None = None) -> HttpSessionResolver:
    settings = settings or get_settings()
    return HttpSessionResolver(settings.auth_api_url, timeout=settings.http_timeout)


def get_checklist_service(settings: Settings | None = None) -> ChecklistService:
    settings = settings or get_settings()
    return ChecklistService(
        store=get_store(settings),
        designs=get_design_snapshots(settings),
        catalog=get_item_catalog(settings),
    )

