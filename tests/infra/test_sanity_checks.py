from core.services.checklist_service import ChecklistService
from scripts import checklist_sanity_checks as sanity

TS = "2026-01-01T00:00:00+00:00"


def _seed_consistent(service, designs):
    designs.put("tavern", {42: 2, 7: 1})
    service.add_design(user_id="u1", design_id="tavern")


def test_clean_database_passes(connect, sqlite_store, designs, catalog, tmp_path, capsys, temp_db_path):
    service = ChecklistService(store=sqlite_store, designs=designs, catalog=catalog)
    _seed_consistent(service, designs)

    conn = connect()
    try:
        results = sanity.run_checks(conn)
    finally:
        conn.close()
    assert all(rows == [] for rows in results.values())

    reports = tmp_path / "reports"
    assert sanity.main(["--db", temp_db_path, "--reports-dir", str(reports)]) == 0
    assert len(list(reports.glob("sanity_*.csv"))) == len(sanity.CHECKS)
    out = capsys.readouterr().out
    assert "All checks passed" in out


def test_drifted_rows_are_reported(conn_rw, tmp_path, temp_db_path):
    # Bypass the engine: a row whose total disagrees with its contributions,
    # and one with nothing contributing to it.
    conn_rw.execute(
        "INSERT INTO checklist_items (id, user_id, item_id, quantity_needed, quantity_acquired, created_at, updated_at)"
        " VALUES (1, 'u1', 42, 5, 0, ?, ?), (2, 'u1', 7, 1, 0, ?, ?)",
        [TS, TS, TS, TS],
    )
    conn_rw.execute(
        "INSERT INTO checklist_contributions (row_id, design_id, quantity, added_at, position)"
        " VALUES (1, 'a', 2, ?, 0)",
        [TS],
    )

    results = sanity.run_checks(conn_rw)
    assert [r["item_id"] for r in results["needed_parity"]] == [7, 42]
    assert results["needed_parity"][1]["delta"] == 3
    assert [r["item_id"] for r in results["orphan_rows"]] == [7]
    assert results["acquired_range"] == []

    reports = tmp_path / "reports"
    assert sanity.main(["--db", temp_db_path, "--reports-dir", str(reports)]) == 1
