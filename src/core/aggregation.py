"""Pure provenance bookkeeping for checklist rows.

Every helper here takes the *current* row state and returns the next one.
``quantity_needed`` is always recomputed as the full sum of the remaining
contributions and ``quantity_acquired`` is clamped into ``[0, needed]``, so
callers never apply deltas to a cached total.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from core.dtos import (
    AggregateRow,
    ChecklistItem,
    Contribution,
    DesignGroup,
    DesignGroupEntry,
    DesignItem,
    ListSummary,
)


def utc_now() -> datetime:
    return datetime.now(UTC)


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def needed_for(contributions: Iterable[Contribution]) -> int:
    return sum(c.quantity for c in contributions)


def normalize_design_items(items: Iterable[DesignItem]) -> list[DesignItem]:
    """
    Collapse a design's item list into one entry per item id.

    Repeated entries for the same item are summed; entries with a
    non-positive quantity are dropped. First-seen order is kept.
    """
    totals: dict[int, int] = {}
    for item in items:
        if item.quantity <= 0:
            continue
        totals[item.item_id] = totals.get(item.item_id, 0) + item.quantity
    return [DesignItem(item_id=i, quantity=q) for i, q in totals.items()]


def merge_contribution(
    contributions: list[Contribution],
    *,
    design_id: str,
    quantity: int,
    now: datetime,
    design_title: str | None = None,
) -> tuple[list[Contribution], bool]:
    """
    Replace this design's contribution quantity, or append a new one.

    Returns ``(contributions, changed)``. An existing contribution with the
    same quantity (and title) is left as-is and reported unchanged.
    """
    merged: list[Contribution] = []
    found = False
    changed = False
    for c in contributions:
        if c.design_id != design_id:
            merged.append(c)
            continue
        found = True
        title = design_title if design_title is not None else c.design_title
        if c.quantity == quantity and c.design_title == title:
            merged.append(c)
        else:
            merged.append(
                Contribution(
                    design_id=design_id,
                    quantity=quantity,
                    added_at=c.added_at,
                    design_title=title,
                )
            )
            changed = True
    if not found:
        merged.append(
            Contribution(
                design_id=design_id,
                quantity=quantity,
                added_at=now,
                design_title=design_title,
            )
        )
        changed = True
    return merged, changed


def drop_contribution(
    contributions: list[Contribution], design_id: str
) -> tuple[list[Contribution], bool]:
    kept = [c for c in contributions if c.design_id != design_id]
    return kept, len(kept) != len(contributions)


def rebuild_row(
    row: AggregateRow,
    contributions: list[Contribution],
    *,
    now: datetime,
    quantity_acquired: int | None = None,
) -> AggregateRow | None:
    """
    Return ``row`` with a new contribution set, or ``None`` when nothing
    contributes to it any more (the row must be deleted).
    """
    if not contributions:
        return None
    return with_contributions(row, contributions, now=now, quantity_acquired=quantity_acquired)


def with_contributions(
    row: AggregateRow,
    contributions: list[Contribution],
    *,
    now: datetime,
    quantity_acquired: int | None = None,
) -> AggregateRow:
    """Like ``rebuild_row`` for a contribution set known to be non-empty."""
    if not contributions:
        raise ValueError(f"item {row.item_id} needs at least one contribution")
    needed = needed_for(contributions)
    acquired = row.quantity_acquired if quantity_acquired is None else quantity_acquired
    return AggregateRow(
        user_id=row.user_id,
        item_id=row.item_id,
        quantity_needed=needed,
        quantity_acquired=clamp(acquired, 0, needed),
        contributions=contributions,
        created_at=row.created_at,
        updated_at=now,
    )


def new_row(
    *,
    user_id: str,
    item_id: int,
    design_id: str,
    quantity: int,
    now: datetime,
    design_title: str | None = None,
) -> AggregateRow:
    return AggregateRow(
        user_id=user_id,
        item_id=item_id,
        quantity_needed=quantity,
        quantity_acquired=0,
        contributions=[
            Contribution(
                design_id=design_id,
                quantity=quantity,
                added_at=now,
                design_title=design_title,
            )
        ],
        created_at=now,
        updated_at=now,
    )


def with_acquired(row: AggregateRow, quantity: int, *, now: datetime) -> AggregateRow:
    return with_contributions(row, row.contributions, now=now, quantity_acquired=quantity)


def summarize(rows: Iterable[AggregateRow | ChecklistItem]) -> ListSummary:
    """Single pass over the rows; works on raw or enriched rows."""
    total_items = 0
    needed = 0
    acquired = 0
    incomplete = 0
    design_ids: set[str] = set()
    for row in rows:
        total_items += 1
        needed += row.quantity_needed
        acquired += row.quantity_acquired
        if row.quantity_acquired < row.quantity_needed:
            incomplete += 1
        design_ids.update(c.design_id for c in row.contributions)
    return ListSummary(
        total_items=total_items,
        total_quantity_needed=needed,
        total_quantity_acquired=acquired,
        incomplete_count=incomplete,
        design_count=len(design_ids),
    )


def design_title(contribution: Contribution) -> str:
    return contribution.design_title or f"Design {contribution.design_id}"


def group_by_design(items: Iterable[ChecklistItem]) -> list[DesignGroup]:
    """
    Re-key every row under each design that contributes to it.

    Groups come out in the order their designs were first added; entries in
    each group keep the order of ``items``.
    """
    groups: dict[str, DesignGroup] = {}
    first_added: dict[str, datetime] = {}
    for item in items:
        for c in item.contributions:
            group = groups.get(c.design_id)
            if group is None:
                group = DesignGroup(design_id=c.design_id, title=design_title(c))
                groups[c.design_id] = group
                first_added[c.design_id] = c.added_at
            elif c.added_at < first_added[c.design_id]:
                first_added[c.design_id] = c.added_at
            group.items.append(
                DesignGroupEntry(
                    item_id=item.item_id,
                    name=item.name,
                    icon_url=item.icon_url,
                    quantity_for_design=c.quantity,
                    quantity_needed=item.quantity_needed,
                    quantity_acquired=item.quantity_acquired,
                    is_complete=item.is_complete,
                )
            )
    return sorted(groups.values(), key=lambda g: (first_added[g.design_id], g.design_id))
