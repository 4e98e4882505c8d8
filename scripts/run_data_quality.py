"""
Run data-quality checks from CLI and print the report.
"""

from __future__ import annotations

import argparse
import json

from app.config import get_data_quality_settings
from app.services.pipeline_service import run_data_quality_checks


def main() -> int:
    parser = argparse.ArgumentParser(description="Score recent fact rows for data quality.")
    parser.add_argument(
        "--window-days",
        dest="window_days",
        type=int,
        default=None,
        help="Trailing window in days (defaults to DATA_QUALITY_WINDOW_DAYS).",
    )
    args = parser.parse_args()

    report = run_data_quality_checks(args.window_days or get_data_quality_settings().window_days)
    payload = {
        "check_date": report.check_date.isoformat(),
        "window_days": report.window_days,
        "overall_status": report.overall_status,
        "checks": [
            {
                "check_type": check.check_type,
                "score": check.score,
                "threshold": check.threshold,
                "status": check.status,
                "details": check.details,
            }
            for check in report.checks
        ],
    }
    print(json.dumps(payload, indent=2))
    return 0 if report.passed else 2


if __name__ == "__main__":
    raise SystemExit(main())
