"""Ingestors for the hackathon project source.

- ColosseumApiIngestor: paginated JSON API (preferred, full details)
- ColosseumHtmlIngestor: raw listing/detail pages for the HTML fallback

Both normalize into CanonicalProject (HTML pages go through the detail parser).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional

import requests

from sparkfeed.config import DEFAULT_API_BASE, DEFAULT_DETAIL_BASE, DEFAULT_LISTING_URL, DEFAULT_USER_AGENT, detail_url
from sparkfeed.extraction.text_utils import generate_slug
from sparkfeed.ingestion.project_types import NO_DESCRIPTION, UNKNOWN_TEAM, CanonicalProject, ProjectStatus

logger = logging.getLogger(__name__)

API_PAGE_SIZE = 100


class FetchError(Exception):
    """Network or HTTP failure while talking to the source."""

    def __init__(self, message: str, *, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


def _as_count(value: Any) -> int:
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def map_api_project(raw: Dict[str, Any], *, detail_base: str = DEFAULT_DETAIL_BASE) -> Optional[CanonicalProject]:
    """Map one API item to a CanonicalProject; None when it has no source slug."""
    source_slug = str(raw.get("slug") or "").strip()
    if not source_slug:
        return None
    name = str(raw.get("name") or "").strip() or source_slug
    owner = str(raw.get("ownerAgentName") or "").strip() or None
    human_votes = _as_count(raw.get("humanUpvotes"))
    agent_votes = _as_count(raw.get("agentUpvotes"))
    return CanonicalProject(
        title=name,
        external_id=source_slug,
        external_url=detail_url(source_slug, detail_base),
        # Our slug follows the display name; the source slug stays the join key.
        slug=generate_slug(name) or generate_slug(source_slug) or source_slug,
        description=str(raw.get("description") or "").strip() or NO_DESCRIPTION,
        team_name=str(raw.get("teamName") or "").strip() or owner or UNKNOWN_TEAM,
        status=ProjectStatus.PUBLISHED if raw.get("status") == "submitted" else ProjectStatus.DRAFT,
        human_votes=human_votes,
        agent_votes=agent_votes,
        total_votes=human_votes + agent_votes,
        repository_url=raw.get("repoLink") or None,
        demo_url=raw.get("presentationLink") or None,
        team_members=(owner,) if owner else None,
    )


@dataclass(frozen=True)
class ColosseumApiIngestor:
    endpoint: str = DEFAULT_API_BASE
    detail_base: str = DEFAULT_DETAIL_BASE
    user_agent: str = DEFAULT_USER_AGENT
    timeout: Optional[float] = None
    # requests.Session-like object; module-level requests when None.
    session: Any = None
    page_size: int = API_PAGE_SIZE

    def fetch(self) -> List[CanonicalProject]:
        """Every project as one list; nothing is returned if any page fails."""
        return list(self.fetch_all())

    def fetch_all(self) -> Iterator[CanonicalProject]:
        """Yield every project, paging from offset 0 on each call.

        Raises FetchError on the first failed page.
        """
        offset = 0
        yielded = 0
        while True:
            data = self._get_page(offset)
            items = data.get("projects") or []
            for raw in items:
                if not isinstance(raw, dict):
                    continue
                project = map_api_project(raw, detail_base=self.detail_base)
                if project is None:
                    logger.warning(f"Skipping API project without slug at offset {offset}: {raw.get('name')!r}")
                    continue
                yielded += 1
                yield project
            logger.info(f"API page offset {offset}: {len(items)} projects (total so far: {yielded})")

            offset += self.page_size
            if data.get("hasMore") is not True or len(items) < self.page_size:
                break
            total_count = data.get("totalCount")
            if isinstance(total_count, int) and offset >= total_count:
                break

    def _get_page(self, offset: int) -> Dict[str, Any]:
        params = {
            "sortBy": "human_upvotes",
            "limit": self.page_size,
            "offset": offset,
            "includeDrafts": "true",
        }
        headers = {"Accept": "application/json", "User-Agent": self.user_agent}
        http = self.session or requests
        try:
            resp = http.get(self.endpoint, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"API request failed at offset {offset}: {e}", url=self.endpoint) from e
        if not 200 <= resp.status_code < 300:
            raise FetchError(
                f"API HTTP {resp.status_code} at offset {offset}",
                url=self.endpoint,
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise FetchError(f"API returned invalid JSON at offset {offset}", url=self.endpoint) from e
        if not isinstance(data, dict):
            raise FetchError(f"API returned unexpected payload at offset {offset}", url=self.endpoint)
        return data


@dataclass(frozen=True)
class ColosseumHtmlIngestor:
    """Raw page fetches for the HTML fallback; parsing lives elsewhere."""

    listing_url: str = DEFAULT_LISTING_URL
    detail_base: str = DEFAULT_DETAIL_BASE
    user_agent: str = DEFAULT_USER_AGENT
    timeout: Optional[float] = None
    session: Any = None

    def fetch_listing(self) -> str:
        return self._get_text(self.listing_url, accept="text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8")

    def fetch_detail(self, identifier: str) -> str:
        return self._get_text(detail_url(identifier, self.detail_base), accept="text/html")

    def _get_text(self, url: str, *, accept: str) -> str:
        headers = {"User-Agent": f"Mozilla/5.0 (compatible; {self.user_agent})", "Accept": accept}
        http = self.session or requests
        try:
            resp = http.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise FetchError(f"Request failed for {url}: {e}", url=url) from e
        if not 200 <= resp.status_code < 300:
            raise FetchError(f"HTTP {resp.status_code} for {url}", url=url, status_code=resp.status_code)
        return resp.text
