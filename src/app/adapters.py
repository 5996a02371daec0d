from collections.abc import Iterable, Mapping
from datetime import UTC, datetime

from core.dtos import AggregateRow, Contribution, DesignItem, DesignSnapshot, ItemMetadata


def parse_ts(value) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value))
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=UTC)


def format_ts(value: datetime) -> str:
    return value.astimezone(UTC).isoformat()


def _opt_int(value) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _opt_str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def row_to_contribution(row: Mapping) -> Contribution:
    return Contribution(
        design_id=str(row.get("design_id") or ""),
        quantity=int(row.get("quantity") or 0),
        added_at=parse_ts(row.get("added_at")),
        design_title=_opt_str(row.get("design_title")),
    )


def row_to_aggregate_row(row: Mapping, contributions: Iterable[Mapping]) -> AggregateRow:
    return AggregateRow(
        user_id=str(row.get("user_id") or ""),
        item_id=int(row.get("item_id") or 0),
        quantity_needed=int(row.get("quantity_needed") or 0),
        quantity_acquired=int(row.get("quantity_acquired") or 0),
        contributions=[row_to_contribution(c) for c in contributions],
        created_at=parse_ts(row.get("created_at")),
        updated_at=parse_ts(row.get("updated_at")),
    )


def contribution_to_row(c: Contribution) -> dict:
    return {
        "design_id": c.design_id,
        "quantity": c.quantity,
        "added_at": format_ts(c.added_at),
        "design_title": c.design_title,
    }


def payload_to_design_snapshot(design_id: str, payload: Mapping) -> DesignSnapshot:
    """Accepts camelCase (``itemId``) and snake_case (``item_id``) item keys."""
    items = []
    for entry in payload.get("items") or []:
        item_id = entry.get("itemId", entry.get("item_id", entry.get("decorId")))
        if item_id is None:
            continue
        items.append(DesignItem(item_id=int(item_id), quantity=int(entry.get("quantity") or 0)))
    return DesignSnapshot(
        design_id=str(design_id),
        title=str(payload.get("title") or ""),
        items=items,
    )


def payload_to_item_metadata(item_id: int, payload: Mapping) -> ItemMetadata:
    return ItemMetadata(
        item_id=int(item_id),
        name=str(payload.get("name") or ""),
        icon_url=_opt_str(payload.get("iconUrl", payload.get("icon_url"))),
        wow_item_id=_opt_int(payload.get("wowItemId", payload.get("wow_item_id"))),
        category=_opt_str(payload.get("category")),
        subcategory=_opt_str(payload.get("subcategory")),
        source=_opt_str(payload.get("source")),
        source_details=_opt_str(payload.get("sourceDetails", payload.get("source_details"))),
    )
