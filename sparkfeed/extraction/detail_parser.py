"""Heuristic extraction of one project detail page.

The source markup is unversioned, so every field is read by a small extractor
returning None when it finds nothing. `parse_project_page` walks them in
priority order and falls back to sentinels/defaults.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from sparkfeed.config import DEFAULT_DETAIL_BASE, detail_url
from sparkfeed.extraction.text_utils import clean_text, generate_slug, strip_tags
from sparkfeed.ingestion.project_types import (
    NO_DESCRIPTION,
    UNKNOWN_TEAM,
    CanonicalProject,
    ProjectStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParseFailure:
    identifier: str
    error: str


ParseResult = Union[CanonicalProject, ParseFailure]


# -----------------------------
# Title
# -----------------------------
_TITLE_TAG_RE = re.compile(r"<title[^>]*>([^<]+)</title>", re.I)
_H1_RE = re.compile(r"<h1[^>]*>([^<]+)</h1>", re.I)
_TITLE_SUFFIX_RES = (
    re.compile(r"\s*\|\s*Colosseum\s*$", re.I),
    re.compile(r"\s*\|\s*Agent Hackathon\s*$", re.I),
)
_GENERIC_TITLE_RE = re.compile(r"^Project\s*(?:\||$)", re.I)
MAX_H1_TITLE_CHARS = 80


def _strip_title_suffixes(raw: str) -> str:
    t = clean_text(raw)
    for rx in _TITLE_SUFFIX_RES:
        t = rx.sub("", t)
    return t.strip()


def _is_generic_title(raw: str, cleaned: str) -> bool:
    return not cleaned or bool(_GENERIC_TITLE_RE.match(cleaned) or _GENERIC_TITLE_RE.match(clean_text(raw)))


def extract_title(html: str) -> Optional[str]:
    m = _TITLE_TAG_RE.search(html)
    if m:
        cleaned = _strip_title_suffixes(m.group(1))
        if not _is_generic_title(m.group(1), cleaned):
            return cleaned
    for h1 in _H1_RE.finditer(html):
        cleaned = _strip_title_suffixes(h1.group(1))
        if len(cleaned) < MAX_H1_TITLE_CHARS and not _is_generic_title(h1.group(1), cleaned):
            return cleaned
    return None


# -----------------------------
# Description
# -----------------------------
MIN_DESCRIPTION_CHARS = 30
_DESC_HEADING = r"Description[^<]*(?:</(?:span|strong|em|b)>\s*)*</h[1-6][^>]*>"
_DESC_BLOCK_RE = re.compile(
    _DESC_HEADING + r"(.*?)(?=Links|Team Members|</section|</article|##\s*Links)",
    re.I | re.S,
)
_DESC_DIV_RE = re.compile(_DESC_HEADING + r".*?<div[^>]*>(.*?)</div>", re.I | re.S)
_DESC_P_RE = re.compile(_DESC_HEADING + r".*?<p[^>]*>(.*?)</p>", re.I | re.S)


def extract_description(html: str) -> Optional[str]:
    for rx in (_DESC_BLOCK_RE, _DESC_DIV_RE, _DESC_P_RE):
        m = rx.search(html)
        if not m:
            continue
        text = strip_tags(m.group(1))
        if len(text) >= MIN_DESCRIPTION_CHARS:
            return text
    return None


# -----------------------------
# Team
# -----------------------------
# Identifier-safe charset keeps tag/category text out of the capture.
_BY_TEAM_RE = re.compile(r"\bby\s+([A-Za-z0-9_-]+)(?=\s*\||\s*Team:|['\s<]|$)", re.I)
_TEAM_LABEL_RE = re.compile(r"Team:\s*([A-Za-z0-9_-]+)(?:'s Team)?", re.I)


def extract_team_name(html: str) -> Optional[str]:
    for rx in (_BY_TEAM_RE, _TEAM_LABEL_RE):
        m = rx.search(html)
        if m:
            return m.group(1)
    return None


_MEMBER_JOINED_RE = re.compile(r"([A-Za-z0-9_-]+)\s*Joined\s*(\d{1,2}/\d{1,2}/\d{4})")
MAX_MEMBER_NAME_CHARS = 50


def extract_team_members(html: str) -> List[str]:
    members: List[str] = []
    for m in _MEMBER_JOINED_RE.finditer(strip_tags(html)):
        name = clean_text(m.group(1))
        if 0 < len(name) < MAX_MEMBER_NAME_CHARS:
            members.append(f"{name} — Joined {m.group(2)}")
    return members


# -----------------------------
# Votes
# -----------------------------
_VOTE_TRIPLE_RE = re.compile(r"(?<!\d)(\d+)\s+(\d+)\s+(\d+)")
MAX_VOTE_COUNT = 1000


def collect_vote_triples(html: str) -> List[Tuple[int, int, int]]:
    """All (a, b, c) runs of small integers, in document order."""
    triples: List[Tuple[int, int, int]] = []
    for m in _VOTE_TRIPLE_RE.finditer(html):
        a, b, c = (int(m.group(i)) for i in (1, 2, 3))
        if a <= MAX_VOTE_COUNT and b <= MAX_VOTE_COUNT and c <= MAX_VOTE_COUNT:
            triples.append((a, b, c))
    return triples


def extract_vote_counts(html: str) -> Optional[Tuple[int, int, int]]:
    """(human, agent, total) from the last triple on the page.

    Vote widgets render after the content, so the final triple is the counter.
    A duplicated final render keeps the larger total.
    """
    triples = collect_vote_triples(html)
    if not triples:
        return None
    human, agent, total = triples[-1]
    if len(triples) >= 2 and triples[-1] == triples[-2]:
        total = max(total, triples[-2][2])
    return human, agent, total


# -----------------------------
# Status / categories
# -----------------------------
def extract_status(html: str) -> ProjectStatus:
    # Coarse: any "draft" on the page flags the project.
    return ProjectStatus.DRAFT if "draft" in html.lower() else ProjectStatus.PUBLISHED


KNOWN_CATEGORIES = (
    "Trading",
    "DeFi",
    "AI",
    "NFT",
    "Gaming",
    "Social",
    "Infrastructure",
    "DAO",
    "Payments",
    "New Markets",
)


def extract_categories(html: str, vocabulary: Tuple[str, ...] = KNOWN_CATEGORIES) -> List[str]:
    found: List[str] = []
    seen = set()
    for name in vocabulary:
        rx = re.compile(r"\b" + r"\s+".join(re.escape(p) for p in name.split()) + r"\b", re.I)
        if name.lower() not in seen and rx.search(html):
            seen.add(name.lower())
            found.append(name)
    return found


# -----------------------------
# Links / token
# -----------------------------
_REPO_RE = re.compile(r'href="(https://github\.com[^"]+)"', re.I)
_DEMO_AFTER_LABEL_RE = re.compile(r'Technical\s*Demo.{0,500}?href="(https?://[^"]+)"', re.I | re.S)
_DEMO_BEFORE_LABEL_RE = re.compile(r'href="(https?://[^"]+)"[^>]*>\s*(?:<[^>]+>\s*)*Technical\s*Demo', re.I)
_TOKEN_RE = re.compile(r"\$([A-Za-z0-9]+)\s*:\s*([1-9A-HJ-NP-Za-km-z]{32,44})(?![1-9A-HJ-NP-Za-km-z])")


def extract_repository_url(html: str) -> Optional[str]:
    m = _REPO_RE.search(html)
    return m.group(1) if m else None


def extract_demo_url(html: str) -> Optional[str]:
    """Demo link next to a "Technical Demo" label.

    Both shapes (label then href, href then label) are tried and the one that
    starts earliest in the page wins, rather than always preferring label
    then href.
    """
    matches = [m for m in (_DEMO_AFTER_LABEL_RE.search(html), _DEMO_BEFORE_LABEL_RE.search(html)) if m]
    if not matches:
        return None
    return min(matches, key=lambda m: m.start()).group(1)


def extract_token_address(html: str) -> Optional[str]:
    m = _TOKEN_RE.search(html)
    if not m:
        return None
    return f"${m.group(1)}: {m.group(2)}"


# -----------------------------
# Page
# -----------------------------
def parse_project_page(html: str, identifier: str, *, detail_base: str = DEFAULT_DETAIL_BASE) -> ParseResult:
    """Build a CanonicalProject from one detail page; never raises."""
    try:
        if not identifier or not identifier.strip():
            raise ValueError("empty identifier")
        html = html or ""
        title = extract_title(html) or identifier
        description = extract_description(html) or NO_DESCRIPTION
        team_name = extract_team_name(html) or UNKNOWN_TEAM
        human_votes, agent_votes, total_votes = extract_vote_counts(html) or (0, 0, 0)
        categories = extract_categories(html)
        members = extract_team_members(html)
        if not members and team_name != UNKNOWN_TEAM:
            members = [team_name]

        project = CanonicalProject(
            title=title,
            external_id=identifier,
            external_url=detail_url(identifier, detail_base),
            slug=generate_slug(title) or generate_slug(identifier) or identifier,
            description=description,
            team_name=team_name,
            status=extract_status(html),
            human_votes=human_votes,
            agent_votes=agent_votes,
            total_votes=total_votes,
            categories=tuple(categories) or None,
            repository_url=extract_repository_url(html),
            demo_url=extract_demo_url(html),
            team_members=tuple(members) or None,
            token_address=extract_token_address(html),
        )
    except Exception as e:
        logger.error(f"Failed to parse project page for {identifier}: {e}", exc_info=True)
        return ParseFailure(identifier=identifier, error=str(e))

    logger.info(
        f"Parsed {identifier}: title={project.title!r} team={project.team_name} "
        f"votes={human_votes}h/{agent_votes}a/{total_votes}t description_chars={len(description)}"
    )
    return project
