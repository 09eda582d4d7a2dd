"""Wiring for one scrape-and-reconcile run, shared by the web and worker triggers."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from sparkfeed.config import IngestSettings
from sparkfeed.ingestion.ingestors import ColosseumApiIngestor, ColosseumHtmlIngestor
from sparkfeed.ingestion.orchestrator import ProjectScraper
from sparkfeed.ingestion.project_types import CanonicalProject
from sparkfeed.storage.project_store import PostgresProjectStore, ProjectStore, SqliteProjectStore
from sparkfeed.storage.reconcile import ProjectReconciler, UpsertResult

logger = logging.getLogger(__name__)


class ProjectPipeline:
    def __init__(self, scraper: ProjectScraper, reconciler: ProjectReconciler):
        self.scraper = scraper
        self.reconciler = reconciler

    def run(self) -> UpsertResult:
        projects = self.scraper.scrape_projects()
        return self.reconciler.upsert(projects)

    def refresh_one(self, identifier: str) -> Tuple[Optional[CanonicalProject], UpsertResult]:
        logger.info(f"Single-project refresh: {identifier}")
        project = self.scraper.scrape_one_project(identifier)
        if project is None:
            return None, UpsertResult()
        return project, self.reconciler.upsert([project])

    def update_projects(self, *, ensure_schema: bool = False) -> Dict[str, Any]:
        """Full run that never raises; used by the scheduler.

        Schema bootstrap happens inside the guard so a store outage is
        reported like any other failure and the timer keeps running.
        """
        try:
            if ensure_schema:
                self.reconciler.store.ensure_schema()
            result = self.run()
        except Exception as e:
            logger.error(f"Update failed: {e}", exc_info=True)
            return {"success": False, "new": 0, "updated": 0, "error": str(e) or "Unknown error"}
        logger.info(f"Scraping complete: {result.created} new, {result.updated} updated")
        return {"success": True, **result.as_dict()}


def build_store(settings: IngestSettings) -> ProjectStore:
    if settings.store == "postgres":
        return PostgresProjectStore(settings.pg_dsn)
    return SqliteProjectStore(settings.sqlite_path)


def build_pipeline(
    settings: IngestSettings,
    *,
    store: Optional[ProjectStore] = None,
    session: Any = None,
) -> ProjectPipeline:
    api = ColosseumApiIngestor(
        endpoint=settings.api_base,
        detail_base=settings.detail_base,
        user_agent=settings.user_agent,
        timeout=settings.http_timeout,
        session=session,
    )
    html = ColosseumHtmlIngestor(
        listing_url=settings.listing_url,
        detail_base=settings.detail_base,
        user_agent=settings.user_agent,
        timeout=settings.http_timeout,
        session=session,
    )
    return ProjectPipeline(ProjectScraper(api, html), ProjectReconciler(store or build_store(settings)))
