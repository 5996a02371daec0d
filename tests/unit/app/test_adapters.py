from datetime import UTC, datetime, timedelta, timezone

import pytest

from app import adapters as adapters_mod
from core.dtos import AggregateRow, DesignSnapshot, ItemMetadata


@pytest.mark.parametrize(
    "raw",
    [
        "2026-01-02T03:04:05+00:00",
        "2026-01-02T03:04:05",  # naive text is read as UTC
        datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
    ],
)
def test_parse_ts_is_always_aware(raw):
    ts = adapters_mod.parse_ts(raw)
    assert ts == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)


def test_format_ts_normalizes_to_utc():
    local = datetime(2026, 1, 2, 5, 0, tzinfo=timezone(timedelta(hours=2)))
    assert adapters_mod.format_ts(local) == "2026-01-02T03:00:00+00:00"


def test_row_to_aggregate_row_from_db_dicts():
    row = {
        "id": 1,
        "user_id": "u1",
        "item_id": "42",  # string to exercise int(...) coercion
        "quantity_needed": 3,
        "quantity_acquired": 2,
        "created_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-02T00:00:00+00:00",
    }
    contributions = [
        {"design_id": "a", "quantity": 1, "added_at": "2026-01-01T00:00:00+00:00", "design_title": None},
        {"design_id": "b", "quantity": 2, "added_at": "2026-01-01T00:00:00+00:00", "design_title": "B"},
    ]
    dto = adapters_mod.row_to_aggregate_row(row, contributions)
    assert isinstance(dto, AggregateRow)
    assert dto.item_id == 42
    assert dto.design_ids == ["a", "b"]
    assert dto.contributions[0].design_title is None
    assert dto.contributions[1].design_title == "B"


def test_contribution_round_trips_through_row():
    c = adapters_mod.row_to_contribution(
        {"design_id": "a", "quantity": 5, "added_at": "2026-01-01T00:00:00+00:00", "design_title": "A"}
    )
    assert adapters_mod.row_to_contribution(adapters_mod.contribution_to_row(c)) == c


@pytest.mark.parametrize("key", ["itemId", "item_id", "decorId"])
def test_payload_to_design_snapshot_item_keys(key):
    payload = {"title": "Tavern", "items": [{key: 42, "quantity": 2}, {"quantity": 9}]}
    snap = adapters_mod.payload_to_design_snapshot("d1", payload)
    assert isinstance(snap, DesignSnapshot)
    assert snap.title == "Tavern"
    assert [(i.item_id, i.quantity) for i in snap.items] == [(42, 2)]


def test_payload_to_design_snapshot_defaults():
    snap = adapters_mod.payload_to_design_snapshot("d1", {})
    assert snap.title == ""
    assert snap.items == []


def test_payload_to_item_metadata_camel_and_snake():
    camel = adapters_mod.payload_to_item_metadata(
        7, {"name": "Lantern", "iconUrl": "x.png", "wowItemId": "123", "sourceDetails": "Vendor A"}
    )
    snake = adapters_mod.payload_to_item_metadata(
        7, {"name": "Lantern", "icon_url": "x.png", "wow_item_id": 123, "source_details": "Vendor A"}
    )
    assert isinstance(camel, ItemMetadata)
    assert camel == snake
    assert camel.wow_item_id == 123


def test_payload_to_item_metadata_blank_wow_id():
    meta = adapters_mod.payload_to_item_metadata(7, {"name": "Lantern", "wowItemId": ""})
    assert meta.wow_item_id is None
