"""
Seed dim_time rows for a calendar range (idempotent).
"""

from __future__ import annotations

import argparse
from datetime import date

from db.session import session_scope
from etl.calendar import DEFAULT_RANGE_END, DEFAULT_RANGE_START
from etl.scd import seed_time_dimension


def main() -> int:
    parser = argparse.ArgumentParser(description="Populate the time dimension.")
    parser.add_argument("--start", type=date.fromisoformat, default=DEFAULT_RANGE_START)
    parser.add_argument("--end", type=date.fromisoformat, default=DEFAULT_RANGE_END)
    args = parser.parse_args()

    if args.end < args.start:
        parser.error("--end must not be before --start")

    with session_scope() as db:
        inserted = seed_time_dimension(db, args.start, args.end)
        db.commit()

    print(f"Inserted {inserted} dim_time rows for {args.start.isoformat()}..{args.end.isoformat()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
