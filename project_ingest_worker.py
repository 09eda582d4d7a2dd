#!/usr/bin/env python3
"""Agent project ingestion worker.

Runs one scrape-and-reconcile cycle (or scheduled, every N hours):
- Colosseum projects API (preferred)
- HTML listing + detail pages when the API is unavailable

Upserts normalized projects into the agent_projects table.
"""

from __future__ import annotations

import argparse
import logging
import os
import time
from typing import Any, Dict, Optional

import schedule
from dotenv import load_dotenv

from sparkfeed.config import IngestSettings
from sparkfeed.pipeline import build_pipeline

logger = logging.getLogger(__name__)


def run_once(settings: Optional[IngestSettings] = None) -> Dict[str, Any]:
    load_dotenv()
    settings = settings or IngestSettings.from_env()
    pipeline = build_pipeline(settings)
    result = pipeline.update_projects(ensure_schema=settings.ensure_schema)
    if result["success"]:
        print(f"[ingest] success=True new={result['new']} updated={result['updated']}")
    else:
        print(f"[ingest] success=False error={result.get('error')}")
    return result


def run_one(slug: str, settings: Optional[IngestSettings] = None) -> Dict[str, Any]:
    load_dotenv()
    settings = settings or IngestSettings.from_env()
    pipeline = build_pipeline(settings)
    try:
        if settings.ensure_schema:
            pipeline.reconciler.store.ensure_schema()
        project, result = pipeline.refresh_one(slug)
    except Exception as e:
        logger.error(f"Single-project refresh failed for {slug}: {e}", exc_info=True)
        print(f"[ingest] slug={slug} success=False error={e}")
        return {"success": False, "slug": slug, "new": 0, "updated": 0, "error": str(e) or "Unknown error"}
    if project is None:
        print(f"[ingest] slug={slug} not found or failed to scrape")
        return {"success": False, "slug": slug}
    print(f"[ingest] slug={slug} new={result.created} updated={result.updated}")
    return {"success": True, "slug": slug, **result.as_dict()}


def run_scheduled() -> None:
    load_dotenv()
    settings = IngestSettings.from_env()
    # Every 6 hours by default
    schedule.every(settings.refresh_hours).hours.do(run_once)
    logger.info(f"Scheduled agent project refresh every {settings.refresh_hours}h")
    while True:
        schedule.run_pending()
        time.sleep(30)


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Refresh agent projects from Colosseum")
    parser.add_argument(
        "--mode",
        choices=("once", "scheduled", "daemon"),
        default=(os.environ.get("INGEST_MODE") or "once").lower().strip(),
        help="Run a single cycle or keep refreshing on a timer",
    )
    parser.add_argument("--slug", help="Refresh only this project identifier")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    if args.slug:
        return 0 if run_one(args.slug)["success"] else 1
    if args.mode in ("scheduled", "daemon"):
        run_scheduled()
        return 0
    return 0 if run_once()["success"] else 1


if __name__ == "__main__":
    raise SystemExit(main())
