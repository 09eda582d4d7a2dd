"""Project identifier discovery from the public listing page."""

from __future__ import annotations

import logging
import re
from typing import Set

logger = logging.getLogger(__name__)

# <a href="./projects/{id}">, "/agent-hackathon/projects/{id}" or the absolute form.
_PROJECT_LINK_RE = re.compile(
    r'href="(?:\./projects/|(?:https?://[^"/]+)?/agent-hackathon/projects/)([^"/?#]+)"',
    re.I,
)
_LOOSE_PROJECT_PATH_RE = re.compile(r"/projects/([a-z0-9-]+)")


def discover_identifiers(html: str) -> Set[str]:
    """Candidate project identifiers linked from a listing page.

    An empty set means nothing to fetch, not a failure.
    """
    found: Set[str] = {m.group(1) for m in _PROJECT_LINK_RE.finditer(html or "")}
    logger.info(f"Found {len(found)} unique project links")
    if found:
        return found

    logger.warning("No project links found; listing markup may have changed, trying loose pattern")
    found = {m.group(1) for m in _LOOSE_PROJECT_PATH_RE.finditer(html or "")}
    logger.info(f"Loose pattern found {len(found)} project identifiers")
    return found
