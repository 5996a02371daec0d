#!/usr/bin/env python3
"""
Sanity checks for the checklist DB.

Checks:
1) Needed parity:
   checklist_items.quantity_needed  ≟  sum(checklist_contributions.quantity)

2) Acquired range:
   0 ≤ quantity_acquired ≤ quantity_needed

3) Orphans:
   checklist_items rows with no contributions left

Outputs:
- CSVs in data/reports/ with timestamped filenames
- Console rollups for quick verification
- Exit status 1 when any check finds rows

Usage:
  python3 src/scripts/checklist_sanity_checks.py
  python3 src/scripts/checklist_sanity_checks.py --db ./data/checklist.db --reports-dir ./data/reports
"""

import argparse
import csv
import sqlite3
import sys
from datetime import datetime
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from app.settings import get_settings  # noqa: E402

Q_NEEDED_PARITY = """
SELECT ci.user_id, ci.item_id, ci.quantity_needed,
       COALESCE(SUM(cc.quantity), 0) AS contributions_qty,
       ci.quantity_needed - COALESCE(SUM(cc.quantity), 0) AS delta
FROM checklist_items ci
LEFT JOIN checklist_contributions cc ON cc.row_id = ci.id
GROUP BY ci.id
HAVING ci.quantity_needed != COALESCE(SUM(cc.quantity), 0)
ORDER BY ci.user_id, ci.item_id
""".strip()

Q_ACQUIRED_RANGE = """
SELECT user_id, item_id, quantity_needed, quantity_acquired
FROM checklist_items
WHERE quantity_acquired < 0 OR quantity_acquired > quantity_needed
ORDER BY user_id, item_id
""".strip()

Q_ORPHANS = """
SELECT ci.user_id, ci.item_id, ci.quantity_needed, ci.quantity_acquired
FROM checklist_items ci
WHERE NOT EXISTS (SELECT 1 FROM checklist_contributions cc WHERE cc.row_id = ci.id)
ORDER BY ci.user_id, ci.item_id
""".strip()

Q_ROLLUPS = """
SELECT 'users' AS which, COUNT(DISTINCT user_id) AS qty FROM checklist_items
UNION ALL
SELECT 'rows', COUNT(*) FROM checklist_items
UNION ALL
SELECT 'contributions', COUNT(*) FROM checklist_contributions
UNION ALL
SELECT 'quantity_needed', COALESCE(SUM(quantity_needed), 0) FROM checklist_items
UNION ALL
SELECT 'quantity_acquired', COALESCE(SUM(quantity_acquired), 0) FROM checklist_items
""".strip()

CHECKS = [
    ("needed_parity", "quantity_needed ≟ sum(contributions)", Q_NEEDED_PARITY),
    ("acquired_range", "0 ≤ acquired ≤ needed", Q_ACQUIRED_RANGE),
    ("orphan_rows", "rows without contributions", Q_ORPHANS),
]


def run_query(conn: sqlite3.Connection, sql: str):
    conn.row_factory = sqlite3.Row
    return [dict(r) for r in conn.execute(sql).fetchall()]


def write_csv(rows, path: Path):
    if not rows:
        # Write headers anyway for consistency
        path.write_text("")
        return
    with path.open("w", newline="") as f:
        w = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        w.writeheader()
        w.writerows(rows)


def fmt(n):
    return f"{n:,}"


def run_checks(conn: sqlite3.Connection) -> dict[str, list[dict]]:
    """Return {check_name: offending rows} for every check."""
    return {name: run_query(conn, sql) for name, _, sql in CHECKS}


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    ap = argparse.ArgumentParser()
    ap.add_argument("--db", type=Path, default=settings.db_path, help="Path to sqlite DB")
    ap.add_argument(
        "--reports-dir", type=Path, default=settings.reports_dir, help="Directory to write CSV reports"
    )
    args = ap.parse_args(argv)

    reports_dir = args.reports_dir
    reports_dir.mkdir(parents=True, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d-%H%M%S")

    print(f"🔗 DB: {args.db}")
    print(f"🗂  Reports → {reports_dir}\n")

    with sqlite3.connect(args.db) as conn:
        rolls = run_query(conn, Q_ROLLUPS)
        print("=== Rollups ===")
        for r in rolls:
            print(f"{r['which']:>18}: {fmt(r['qty'])}")
        print()

        results = run_checks(conn)

    failed = False
    for i, (name, title, _) in enumerate(CHECKS, start=1):
        rows = results[name]
        out = reports_dir / f"sanity_{name}_{ts}.csv"
        write_csv(rows, out)
        print(f"=== Check #{i}: {title} ===")
        print(f"Mismatched rows: {len(rows)}")
        print(f"CSV: {out}\n")
        failed = failed or bool(rows)

    if failed:
        print("⚠️  Differences detected. See CSVs for details.")
        return 1
    print("✅ All checks passed. No differences found.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
