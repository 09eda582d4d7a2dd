"""API-first project scraping with an HTML fallback."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from sparkfeed.extraction.detail_parser import ParseFailure, parse_project_page
from sparkfeed.ingestion.ingestors import ColosseumApiIngestor, ColosseumHtmlIngestor, FetchError
from sparkfeed.ingestion.listing import discover_identifiers
from sparkfeed.ingestion.project_types import CanonicalProject

logger = logging.getLogger(__name__)


class ProjectScraper:
    def __init__(self, api: ColosseumApiIngestor, html: ColosseumHtmlIngestor):
        self.api = api
        self.html = html

    def scrape_projects(self) -> List[CanonicalProject]:
        """API first; any FetchError from it switches to the HTML path once."""
        try:
            projects = self.api.fetch()
        except FetchError as e:
            logger.warning(f"API failed, falling back to HTML scraping: {e}")
            return self.scrape_projects_from_html()
        logger.info(f"API returned {len(projects)} projects")
        return projects

    def scrape_projects_from_html(self) -> List[CanonicalProject]:
        """Listing page, then every discovered identifier in turn.

        A listing fetch failure propagates; per-project failures are skipped.
        """
        logger.info(f"Starting HTML scraping from {self.html.listing_url}")
        listing = self.html.fetch_listing()
        identifiers = discover_identifiers(listing)
        if not identifiers:
            return []
        return self.scrape_known_projects(sorted(identifiers))

    def scrape_known_projects(self, identifiers: Iterable[str]) -> List[CanonicalProject]:
        projects: List[CanonicalProject] = []
        for identifier in identifiers:
            project = self.scrape_one_project(identifier)
            if project is not None:
                projects.append(project)
        logger.info(f"HTML scraping produced {len(projects)} projects")
        return projects

    def scrape_one_project(self, identifier: str) -> Optional[CanonicalProject]:
        """Fetch and parse a single detail page, bypassing discovery."""
        try:
            page = self.html.fetch_detail(identifier)
        except FetchError as e:
            logger.error(f"Failed to fetch {identifier}: {e}")
            return None
        result = parse_project_page(page, identifier, detail_base=self.html.detail_base)
        if isinstance(result, ParseFailure):
            logger.warning(f"Skipping {identifier}: {result.error}")
            return None
        return result
