from __future__ import annotations

import logging
from collections.abc import Iterable
from contextlib import AbstractContextManager
from typing import Protocol

from core import aggregation as agg
from core.dtos import (
    AddDesignResult,
    AggregateRow,
    ChecklistItem,
    ClearResult,
    DesignGroup,
    DesignSnapshot,
    ItemMetadata,
    ListSummary,
    RemoveDesignResult,
    ToggleResult,
)
from core.enums import MetadataStatus
from core.errors import ItemNotFoundError

logger = logging.getLogger(__name__)


# Keep the store and gateways abstract; infra provides the implementations
class UserRows(Protocol):
    """One user's rows inside a single atomic unit of work."""

    def get(self, item_id: int) -> AggregateRow | None: ...
    def all(self) -> list[AggregateRow]: ...
    def with_design(self, design_id: str) -> list[AggregateRow]: ...
    def save(self, row: AggregateRow) -> None: ...
    def delete(self, item_ids: Iterable[int]) -> int: ...


class AggregateStore(Protocol):
    def unit_of_work(self, user_id: str) -> AbstractContextManager[UserRows]: ...
    def list_rows(self, user_id: str) -> list[AggregateRow]: ...
    def design_in_list(self, user_id: str, design_id: str) -> bool: ...


class DesignSnapshots(Protocol):
    def get_design_items(self, design_id: str) -> DesignSnapshot: ...


class ItemCatalog(Protocol):
    def get_item_metadata(self, item_id: int) -> ItemMetadata | None: ...


def placeholder_name(item_id: int) -> str:
    return f"Decor #{item_id}"


class ChecklistService:
    """
    The cross-design aggregation engine.

    Every multi-row mutation runs inside one ``store.unit_of_work(user_id)``,
    which is atomic per user: either every affected row is written or none
    is. Rows are read inside the same unit that writes them.
    """

    def __init__(
        self,
        store: AggregateStore,
        designs: DesignSnapshots,
        catalog: ItemCatalog,
    ) -> None:
        self._store = store
        self._designs = designs
        self._catalog = catalog

    # ------------------------------------------------------------------ mutations
    def add_design(self, *, user_id: str, design_id: str) -> AddDesignResult:
        # Raises DesignNotFoundError before anything is touched
        snapshot = self._designs.get_design_items(design_id)
        items = agg.normalize_design_items(snapshot.items)
        result = AddDesignResult(design_id=design_id, total_items=len(items))
        if not items:
            logger.info("add_design user=%s design=%s: design has no items", user_id, design_id)
            return result

        with self._store.unit_of_work(user_id) as rows:
            now = agg.utc_now()
            for item in items:
                existing = rows.get(item.item_id)
                if existing is None:
                    rows.save(
                        agg.new_row(
                            user_id=user_id,
                            item_id=item.item_id,
                            design_id=design_id,
                            quantity=item.quantity,
                            now=now,
                            design_title=snapshot.title,
                        )
                    )
                    result.added_count += 1
                    continue

                contributions, changed = agg.merge_contribution(
                    existing.contributions,
                    design_id=design_id,
                    quantity=item.quantity,
                    now=now,
                    design_title=snapshot.title,
                )
                if not changed:
                    result.unchanged_count += 1
                    continue
                rows.save(agg.with_contributions(existing, contributions, now=now))
                result.updated_count += 1

        logger.info(
            "add_design user=%s design=%s added=%d updated=%d unchanged=%d",
            user_id,
            design_id,
            result.added_count,
            result.updated_count,
            result.unchanged_count,
        )
        return result

    def remove_design(self, *, user_id: str, design_id: str) -> RemoveDesignResult:
        result = RemoveDesignResult(design_id=design_id)
        with self._store.unit_of_work(user_id) as rows:
            now = agg.utc_now()
            doomed: list[int] = []
            for row in rows.with_design(design_id):
                contributions, _ = agg.drop_contribution(row.contributions, design_id)
                updated = agg.rebuild_row(row, contributions, now=now)
                if updated is None:
                    doomed.append(row.item_id)
                else:
                    rows.save(updated)
                    result.updated_count += 1
            if doomed:
                result.removed_count = rows.delete(doomed)

        logger.info(
            "remove_design user=%s design=%s removed=%d updated=%d",
            user_id,
            design_id,
            result.removed_count,
            result.updated_count,
        )
        return result

    def set_acquired(self, *, user_id: str, item_id: int, quantity: int) -> AggregateRow:
        with self._store.unit_of_work(user_id) as rows:
            row = rows.get(item_id)
            if row is None:
                raise ItemNotFoundError(item_id)
            target = agg.clamp(quantity, 0, row.quantity_needed)
            if target == row.quantity_acquired:
                return row
            updated = agg.with_acquired(row, target, now=agg.utc_now())
            rows.save(updated)
        logger.info(
            "set_acquired user=%s item=%s acquired=%d (requested %d)",
            user_id,
            item_id,
            target,
            quantity,
        )
        return updated

    def toggle_complete(self, *, user_id: str, item_id: int) -> ToggleResult:
        with self._store.unit_of_work(user_id) as rows:
            row = rows.get(item_id)
            if row is None:
                raise ItemNotFoundError(item_id)
            # Two states only; partial progress is reset, not remembered
            target = 0 if row.is_complete else row.quantity_needed
            rows.save(agg.with_acquired(row, target, now=agg.utc_now()))
        logger.info("toggle_complete user=%s item=%s acquired=%d", user_id, item_id, target)
        return ToggleResult(
            item_id=item_id,
            now_complete=target == row.quantity_needed,
            quantity_acquired=target,
        )

    def remove_item(self, *, user_id: str, item_id: int) -> None:
        with self._store.unit_of_work(user_id) as rows:
            if rows.get(item_id) is None:
                raise ItemNotFoundError(item_id)
            rows.delete([item_id])
        logger.info("remove_item user=%s item=%s", user_id, item_id)

    def clear_completed(self, *, user_id: str) -> ClearResult:
        with self._store.unit_of_work(user_id) as rows:
            done = [r.item_id for r in rows.all() if r.is_complete]
            cleared = rows.delete(done) if done else 0
        logger.info("clear_completed user=%s cleared=%d", user_id, cleared)
        return ClearResult(cleared_count=cleared)

    def clear_all(self, *, user_id: str) -> ClearResult:
        with self._store.unit_of_work(user_id) as rows:
            everything = [r.item_id for r in rows.all()]
            cleared = rows.delete(everything) if everything else 0
        logger.info("clear_all user=%s cleared=%d", user_id, cleared)
        return ClearResult(cleared_count=cleared)

    # ------------------------------------------------------------------ reads
    def is_design_in_list(self, *, user_id: str, design_id: str) -> bool:
        return self._store.design_in_list(user_id, design_id)

    def get_rows(self, *, user_id: str) -> list[AggregateRow]:
        return self._store.list_rows(user_id)

    def get_list(self, *, user_id: str) -> list[ChecklistItem]:
        items = [self._enrich(row) for row in self._store.list_rows(user_id)]
        items.sort(key=lambda i: (i.name.casefold(), i.item_id))
        return items

    def get_summary(self, *, user_id: str) -> ListSummary:
        # Same authoritative rows get_list enriches; the catalog adds nothing to the math
        return agg.summarize(self._store.list_rows(user_id))

    def get_design_groups(self, *, user_id: str) -> list[DesignGroup]:
        return agg.group_by_design(self.get_list(user_id=user_id))

    # ------------------------------------------------------------------ enrichment
    def _lookup(self, item_id: int) -> ItemMetadata | None:
        try:
            return self._catalog.get_item_metadata(item_id)
        except Exception:  # pylint: disable=broad-except
            logger.warning("catalog lookup failed for item %s", item_id, exc_info=True)
            return None

    def _enrich(self, row: AggregateRow) -> ChecklistItem:
        meta = self._lookup(row.item_id)
        base = dict(
            item_id=row.item_id,
            quantity_needed=row.quantity_needed,
            quantity_acquired=row.quantity_acquired,
            is_complete=row.is_complete,
            contributions=row.contributions,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
        if meta is None:
            logger.warning("no catalog entry for item %s; using placeholder", row.item_id)
            return ChecklistItem(
                **base,
                metadata_status=MetadataStatus.PLACEHOLDER,
                name=placeholder_name(row.item_id),
            )
        return ChecklistItem(
            **base,
            metadata_status=MetadataStatus.FOUND,
            name=meta.name or placeholder_name(row.item_id),
            icon_url=meta.icon_url,
            wow_item_id=meta.wow_item_id,
            category=meta.category,
            subcategory=meta.subcategory,
            source=meta.source,
            source_details=meta.source_details,
        )
