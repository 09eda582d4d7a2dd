"""Text helpers shared by the listing/detail parsers."""

from __future__ import annotations

import html
import re
import uuid

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    """Decode HTML entities and collapse whitespace runs."""
    if not text:
        return ""
    return _WS_RE.sub(" ", html.unescape(text)).strip()


def strip_tags(fragment: str) -> str:
    """Drop markup from an HTML fragment and return normalized text."""
    if not fragment:
        return ""
    return clean_text(_TAG_RE.sub(" ", fragment))


def generate_slug(title: str) -> str:
    """URL slug from a display title.

    - Lowercase
    - Drop punctuation (keeps word chars, whitespace and hyphens)
    - Collapse whitespace/underscore/hyphen runs to a single hyphen
    """
    s = (title or "").lower().strip()
    s = re.sub(r"[^\w\s-]", "", s)
    s = re.sub(r"[\s_-]+", "-", s)
    return s.strip("-")


def generate_row_id() -> str:
    return str(uuid.uuid4())
