"""Process-local AggregateStore: one lock per user, copy-on-commit."""

from __future__ import annotations

import threading
from collections.abc import Generator, Iterable
from contextlib import contextmanager

from core.dtos import AggregateRow


class _MemoryUserRows:
    def __init__(self, rows: dict[int, AggregateRow], user_id: str) -> None:
        self._rows = rows
        self._user_id = user_id

    def get(self, item_id: int) -> AggregateRow | None:
        return self._rows.get(item_id)

    def all(self) -> list[AggregateRow]:
        return [self._rows[k] for k in sorted(self._rows)]

    def with_design(self, design_id: str) -> list[AggregateRow]:
        return [r for r in self.all() if design_id in r.design_ids]

    def save(self, row: AggregateRow) -> None:
        if row.user_id != self._user_id:
            raise ValueError(f"row belongs to {row.user_id!r}, not {self._user_id!r}")
        self._rows[row.item_id] = row

    def delete(self, item_ids: Iterable[int]) -> int:
        removed = 0
        for item_id in item_ids:
            if self._rows.pop(item_id, None) is not None:
                removed += 1
        return removed


class _UserLock:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class InMemoryAggregateStore:
    """
    Serializes each user's mutations behind that user's lock.

    A unit of work edits a private copy of the user's rows; the copy replaces
    the live set only if the block exits cleanly, so a failed mutation leaves
    the previous state untouched. Readers see either the old or the new set,
    never a half-applied one. Users never wait on each other.

    A user's lock lives only while some unit of work holds or waits for it;
    the last one out drops it, together with the user's row set if empty.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, _UserLock] = {}
        self._rows: dict[str, dict[int, AggregateRow]] = {}

    @contextmanager
    def _locked(self, user_id: str) -> Generator[None]:
        with self._guard:
            entry = self._locks.get(user_id)
            if entry is None:
                entry = self._locks[user_id] = _UserLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[user_id]
                    if not self._rows.get(user_id):
                        self._rows.pop(user_id, None)

    @contextmanager
    def unit_of_work(self, user_id: str) -> Generator[_MemoryUserRows]:
        with self._locked(user_id):
            # AggregateRow values are never mutated in place, so a shallow copy is enough
            working = dict(self._rows.get(user_id, {}))
            yield _MemoryUserRows(working, user_id)
            self._rows[user_id] = working

    def list_rows(self, user_id: str) -> list[AggregateRow]:
        current = self._rows.get(user_id, {})
        return [current[k] for k in sorted(current)]

    def design_in_list(self, user_id: str, design_id: str) -> bool:
        return any(design_id in r.design_ids for r in self._rows.get(user_id, {}).values())
