from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from .base import BaseRepo


def _placeholders(values: Sequence[Any]) -> str:
    return ",".join(["?"] * len(values))


class ChecklistRepo(BaseRepo):
    def list_items(self, user_id: str) -> list[dict]:
        """
        All checklist rows for a user.
        Columns: id, user_id, item_id, quantity_needed, quantity_acquired, created_at, updated_at
        """
        return self._all(
            """
            SELECT id, user_id, item_id, quantity_needed, quantity_acquired,
                   created_at, updated_at
            FROM checklist_items
            WHERE user_id = ?
            ORDER BY item_id
            """,
            [user_id],
        )

    def get_item(self, user_id: str, item_id: int) -> dict | None:
        return self._one(
            """
            SELECT id, user_id, item_id, quantity_needed, quantity_acquired,
                   created_at, updated_at
            FROM checklist_items
            WHERE user_id = ? AND item_id = ?
            """,
            [user_id, item_id],
        )

    def items_with_design(self, user_id: str, design_id: str) -> list[dict]:
        return self._all(
            """
            SELECT ci.id, ci.user_id, ci.item_id, ci.quantity_needed, ci.quantity_acquired,
                   ci.created_at, ci.updated_at
            FROM checklist_items ci
            JOIN checklist_contributions cc ON cc.row_id = ci.id
            WHERE ci.user_id = ? AND cc.design_id = ?
            ORDER BY ci.item_id
            """,
            [user_id, design_id],
        )

    def contributions_for(self, row_ids: Sequence[int]) -> list[dict]:
        """
        Contributions for the given item rows, in insertion order.
        Columns: row_id, design_id, quantity, added_at, design_title
        """
        if not row_ids:
            return []
        return self._all(
            f"""
            SELECT row_id, design_id, quantity, added_at, design_title
            FROM checklist_contributions
            WHERE row_id IN ({_placeholders(row_ids)})
            ORDER BY row_id, position
            """,
            list(row_ids),
        )

    def design_in_list(self, user_id: str, design_id: str) -> bool:
        row = self._one(
            """
            SELECT EXISTS (
                SELECT 1
                FROM checklist_contributions cc
                JOIN checklist_items ci ON ci.id = cc.row_id
                WHERE ci.user_id = ? AND cc.design_id = ?
            ) AS present
            """,
            [user_id, design_id],
        )
        return bool(row and row["present"])

    def upsert_item(
        self,
        *,
        user_id: str,
        item_id: int,
        quantity_needed: int,
        quantity_acquired: int,
        created_at: str,
        updated_at: str,
    ) -> int:
        """Insert or update the (user_id, item_id) row and return its id."""
        row = self._one(
            """
            INSERT INTO checklist_items
                (user_id, item_id, quantity_needed, quantity_acquired, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id, item_id) DO UPDATE SET
                quantity_needed   = excluded.quantity_needed,
                quantity_acquired = excluded.quantity_acquired,
                updated_at        = excluded.updated_at
            RETURNING id
            """,
            [user_id, item_id, quantity_needed, quantity_acquired, created_at, updated_at],
        )
        if row is None:
            raise RuntimeError("Expected id after checklist upsert.")
        return int(row["id"])

    def replace_contributions(self, row_id: int, contributions: Iterable[dict[str, Any]]) -> None:
        self._exec("DELETE FROM checklist_contributions WHERE row_id = ?", [row_id])
        self.conn.executemany(
            """
            INSERT INTO checklist_contributions
                (row_id, design_id, quantity, added_at, design_title, position)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    row_id,
                    c["design_id"],
                    c["quantity"],
                    c["added_at"],
                    c.get("design_title"),
                    position,
                )
                for position, c in enumerate(contributions)
            ],
        )

    def delete_items(self, user_id: str, item_ids: Sequence[int]) -> int:
        if not item_ids:
            return 0
        return self._exec(
            f"""
            DELETE FROM checklist_items
            WHERE user_id = ? AND item_id IN ({_placeholders(item_ids)})
            """,
            [user_id, *item_ids],
        )
