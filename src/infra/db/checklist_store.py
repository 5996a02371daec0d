from __future__ import annotations

import sqlite3
from collections import defaultdict
from collections.abc import Callable, Generator, Iterable
from contextlib import closing, contextmanager

from app.adapters import contribution_to_row, format_ts, row_to_aggregate_row
from core.dtos import AggregateRow
from infra.db.repositories.checklist_repo import ChecklistRepo
from infra.db.session import transaction


def _load(repo: ChecklistRepo, item_rows: Iterable) -> list[AggregateRow]:
    items = [dict(r) for r in item_rows]
    by_row: dict[int, list[dict]] = defaultdict(list)
    for c in repo.contributions_for([i["id"] for i in items]):
        by_row[c["row_id"]].append(dict(c))
    return [row_to_aggregate_row(i, by_row[i["id"]]) for i in items]


class _SqliteUserRows:
    """UserRows bound to one open transaction."""

    def __init__(self, repo: ChecklistRepo, user_id: str) -> None:
        self._repo = repo
        self._user_id = user_id

    def get(self, item_id: int) -> AggregateRow | None:
        row = self._repo.get_item(self._user_id, item_id)
        if row is None:
            return None
        return _load(self._repo, [row])[0]

    def all(self) -> list[AggregateRow]:
        return _load(self._repo, self._repo.list_items(self._user_id))

    def with_design(self, design_id: str) -> list[AggregateRow]:
        return _load(self._repo, self._repo.items_with_design(self._user_id, design_id))

    def save(self, row: AggregateRow) -> None:
        if row.user_id != self._user_id:
            raise ValueError(f"row belongs to {row.user_id!r}, not {self._user_id!r}")
        row_id = self._repo.upsert_item(
            user_id=row.user_id,
            item_id=row.item_id,
            quantity_needed=row.quantity_needed,
            quantity_acquired=row.quantity_acquired,
            created_at=format_ts(row.created_at),
            updated_at=format_ts(row.updated_at),
        )
        self._repo.replace_contributions(row_id, [contribution_to_row(c) for c in row.contributions])

    def delete(self, item_ids: Iterable[int]) -> int:
        return self._repo.delete_items(self._user_id, list(item_ids))


class SqliteAggregateStore:
    """
    AggregateStore on SQLite.

    Each unit of work opens its own connection and runs inside one
    BEGIN IMMEDIATE transaction: concurrent writers queue on the write lock
    (up to the busy timeout) and always read the rows they are about to
    rewrite after the previous writer committed.
    """

    def __init__(self, connect: Callable[[], sqlite3.Connection]) -> None:
        self._connect = connect

    @contextmanager
    def unit_of_work(self, user_id: str) -> Generator[_SqliteUserRows]:
        with closing(self._connect()) as conn:
            with transaction(conn, immediate=True):
                yield _SqliteUserRows(ChecklistRepo(conn), user_id)

    def list_rows(self, user_id: str) -> list[AggregateRow]:
        with closing(self._connect()) as conn:
            # One read transaction so items and contributions come from the same snapshot
            with transaction(conn, immediate=False):
                repo = ChecklistRepo(conn)
                return _load(repo, repo.list_items(user_id))

    def design_in_list(self, user_id: str, design_id: str) -> bool:
        with closing(self._connect()) as conn:
            return ChecklistRepo(conn).design_in_list(user_id, design_id)
