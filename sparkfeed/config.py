"""Runtime settings for the ingestion pipeline (env driven)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

DEFAULT_API_BASE = "https://agents.colosseum.com/api/projects/current"
DEFAULT_LISTING_URL = "https://colosseum.com/agent-hackathon/projects"
DEFAULT_DETAIL_BASE = "https://colosseum.com/agent-hackathon/projects"
DEFAULT_USER_AGENT = "SparkBot/1.0"
DEFAULT_SQLITE_PATH = "data/agent_projects.db"
DEFAULT_PG_DSN = "dbname=spark user=spark password=sparkpass host=localhost port=5432"


def detail_url(identifier: str, base: str = DEFAULT_DETAIL_BASE) -> str:
    return f"{base.rstrip('/')}/{identifier}"


def _optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or not str(raw).strip():
        return None
    try:
        return float(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class IngestSettings:
    api_base: str = DEFAULT_API_BASE
    listing_url: str = DEFAULT_LISTING_URL
    detail_base: str = DEFAULT_DETAIL_BASE
    user_agent: str = DEFAULT_USER_AGENT
    # None keeps the HTTP client's default (no timeout).
    http_timeout: Optional[float] = None
    store: str = "sqlite"
    sqlite_path: str = DEFAULT_SQLITE_PATH
    pg_dsn: str = DEFAULT_PG_DSN
    refresh_hours: int = 6
    ensure_schema: bool = True
    cors_origins: Tuple[str, ...] = field(default_factory=lambda: ("http://localhost:5173",))

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "IngestSettings":
        e = os.environ if env is None else env
        origins = tuple(
            o.strip() for o in (e.get("CORS_ORIGINS") or "http://localhost:5173").split(",") if o.strip()
        )
        try:
            refresh_hours = max(1, int(e.get("SPARKFEED_REFRESH_HOURS", "6")))
        except ValueError:
            refresh_hours = 6
        return cls(
            api_base=e.get("SPARKFEED_API_BASE", DEFAULT_API_BASE),
            listing_url=e.get("SPARKFEED_LISTING_URL", DEFAULT_LISTING_URL),
            detail_base=e.get("SPARKFEED_DETAIL_BASE", DEFAULT_DETAIL_BASE),
            user_agent=e.get("SPARKFEED_USER_AGENT", DEFAULT_USER_AGENT),
            http_timeout=_optional_float(e.get("SPARKFEED_HTTP_TIMEOUT")),
            store=(e.get("SPARKFEED_STORE") or "sqlite").strip().lower(),
            sqlite_path=e.get("SQLITE_PATH", DEFAULT_SQLITE_PATH),
            pg_dsn=e.get("PG_DSN", DEFAULT_PG_DSN),
            refresh_hours=refresh_hours,
            ensure_schema=(e.get("SPARKFEED_ENSURE_SCHEMA") or "true").strip().lower() in ("1", "true", "yes"),
            cors_origins=origins,
        )
