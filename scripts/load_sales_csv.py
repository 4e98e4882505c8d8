"""
Load one sales CSV file into the warehouse from the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
from dataclasses import replace
from pathlib import Path

from app.config import get_pipeline_settings
from db.session import SessionLocal
from pipelines.base import Identity, IngestionSource, PipelineError
from pipelines.batch import BatchPipeline


def main() -> int:
    parser = argparse.ArgumentParser(description="Load a retail sales CSV into the star schema.")
    parser.add_argument("path", type=Path, help="CSV file to load.")
    parser.add_argument(
        "--channel",
        dest="channel",
        default=None,
        help="STORE, WAREHOUSE or ONLINE. Inferred from the file when omitted.",
    )
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=None,
        help="Override PIPELINE_BATCH_SIZE for this run.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    settings = get_pipeline_settings()
    if args.batch_size is not None:
        settings = replace(settings, batch_size=max(1, args.batch_size))

    # CLI runs act as an operator: read and write, no analytics.
    identity = Identity.for_role(subject="cli", role="operator")
    source = IngestionSource(
        content=args.path.read_bytes(),
        filename=args.path.name,
        identity=identity,
        channel=args.channel,
    )

    try:
        result = BatchPipeline(SessionLocal).execute(source, config=settings.to_pipeline_config())
    except PipelineError as exc:
        print(json.dumps({"status": "FAILED", "error": str(exc)}, indent=2))
        return 1

    payload = {
        "status": "SUCCESS",
        "run_id": result.run_id,
        "processed": result.processed,
        "succeeded": result.succeeded,
        "failed": result.failed,
        "metadata": result.metadata,
        "rejections": [
            {"row_number": record.row_number, "reason": record.reason}
            for record in result.rejections
        ],
    }
    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
