"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

NO_DESCRIPTION = "No description available"
UNKNOWN_TEAM = "Unknown Team"


class ProjectStatus(str, Enum):
    PUBLISHED = "Published"
    DRAFT = "Draft"


@dataclass(frozen=True)
class CanonicalProject:
    """Normalized hackathon project, whichever source strategy produced it.

    `external_id` is the source's own key and the reconciliation join key.
    `slug` is derived from the title and only made unique at insert time.
    """

    title: str
    external_id: str
    external_url: str
    slug: str
    description: str = NO_DESCRIPTION
    team_name: str = UNKNOWN_TEAM
    status: ProjectStatus = ProjectStatus.PUBLISHED
    human_votes: int = 0
    agent_votes: int = 0
    total_votes: int = 0
    categories: Optional[Tuple[str, ...]] = None
    repository_url: Optional[str] = None
    demo_url: Optional[str] = None
    team_members: Optional[Tuple[str, ...]] = None
    token_address: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        for key in ("categories", "team_members"):
            if d[key] is not None:
                d[key] = list(d[key])
        return d
