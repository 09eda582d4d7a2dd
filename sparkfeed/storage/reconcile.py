"""Insert-or-update of scraped projects keyed by their external id."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

from sparkfeed.extraction.text_utils import generate_row_id, generate_slug
from sparkfeed.ingestion.project_types import CanonicalProject
from sparkfeed.storage.project_store import ProjectStore, SchemaDriftError, StatementVariant

logger = logging.getLogger(__name__)


@dataclass
class UpsertResult:
    created: int = 0
    updated: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"new": self.created, "updated": self.updated}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProjectReconciler:
    """Idempotent upsert of a project batch.

    Each record is handled on its own: a failing record is logged and skipped.
    Writes try the FULL column set and drop to LEGACY on schema drift; once a
    drift is seen the rest of the batch stays on LEGACY.
    """

    def __init__(self, store: ProjectStore, *, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.clock = clock or _utcnow

    def upsert(self, projects: Sequence[CanonicalProject]) -> UpsertResult:
        logger.info(f"Upserting {len(projects)} projects")
        result = UpsertResult()
        variant = StatementVariant.FULL

        with self.store.connection() as conn:
            for project in projects:
                if not project.external_id:
                    logger.warning(f"Dropping project without external id: {project.title!r}")
                    continue
                try:
                    now = self.clock()
                    existing = self.store.find_by_external_id(conn, project.external_id)
                    if existing:
                        variant = self._write_with_fallback(
                            variant,
                            lambda v: self.store.update_project(conn, project, variant=v, now=now),
                        )
                        result.updated += 1
                        logger.info(f"Updated {project.external_id} ({project.title})")
                    else:
                        slug = self._resolve_slug(conn, project)
                        row_id = generate_row_id()
                        variant = self._write_with_fallback(
                            variant,
                            lambda v: self.store.insert_project(
                                conn, project, row_id=row_id, slug=slug, variant=v, now=now
                            ),
                        )
                        result.created += 1
                        logger.info(f"Inserted {project.external_id} as {slug}")
                except Exception as e:
                    logger.error(f"Failed to upsert project {project.external_id}: {e}", exc_info=True)

        logger.info(f"Upsert complete: {result.created} new, {result.updated} updated")
        return result

    def _write_with_fallback(
        self, variant: StatementVariant, write: Callable[[StatementVariant], None]
    ) -> StatementVariant:
        try:
            write(variant)
            return variant
        except SchemaDriftError as e:
            if variant is StatementVariant.LEGACY:
                raise
            logger.warning(f"Store schema is behind ({e}); retrying with legacy columns")
            write(StatementVariant.LEGACY)
            return StatementVariant.LEGACY

    def _resolve_slug(self, conn, project: CanonicalProject) -> str:
        base = project.slug or generate_slug(project.external_id) or project.external_id
        slug = base
        counter = 1
        while self.store.slug_exists(conn, slug):
            slug = f"{base}-{counter}"
            counter += 1
        return slug
