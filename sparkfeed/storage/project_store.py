"""SQL adapters for the agent_projects table (SQLite and Postgres).

Every write exists in two column sets: FULL (current schema) and LEGACY
(columns present since the first release). Driver errors are classified here
so callers only ever see SchemaDriftError or PersistenceError.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from sparkfeed.ingestion.project_types import CanonicalProject
from sparkfeed.storage.project_schema import ensure_postgres_schema, ensure_sqlite_schema

TABLE = "agent_projects"


class PersistenceError(Exception):
    """Store failure for a single statement."""


class SchemaDriftError(PersistenceError):
    """The running schema lacks a column this statement writes."""


class StatementVariant(str, Enum):
    FULL = "full"
    LEGACY = "legacy"


UPDATE_COLUMNS: Dict[StatementVariant, Tuple[str, ...]] = {
    StatementVariant.FULL: (
        "description",
        "human_votes",
        "agent_votes",
        "total_votes",
        "categories",
        "repository_url",
        "demo_url",
        "team_members",
        "token_address",
        "scraped_at",
        "updated_at",
    ),
    StatementVariant.LEGACY: (
        "description",
        "human_votes",
        "agent_votes",
        "total_votes",
        "scraped_at",
        "updated_at",
    ),
}

_LEGACY_INSERT_COLUMNS = (
    "id",
    "title",
    "slug",
    "description",
    "team_name",
    "status",
    "human_votes",
    "agent_votes",
    "total_votes",
    "external_url",
    "external_id",
    "scraped_at",
    "created_at",
    "updated_at",
)

INSERT_COLUMNS: Dict[StatementVariant, Tuple[str, ...]] = {
    StatementVariant.FULL: _LEGACY_INSERT_COLUMNS
    + ("categories", "repository_url", "demo_url", "team_members", "token_address"),
    StatementVariant.LEGACY: _LEGACY_INSERT_COLUMNS,
}


class ProjectStore:
    """Base adapter; subclasses provide the connection and error mapping."""

    placeholder: str = "?"

    def connection(self):
        """Context manager yielding an autocommit DB-API connection."""
        raise NotImplementedError

    def ensure_schema(self, *, legacy: bool = False) -> None:
        raise NotImplementedError

    def classify_error(self, exc: Exception) -> PersistenceError:
        raise NotImplementedError

    def _json(self, values: Optional[Sequence[str]]) -> Any:
        return json.dumps(list(values or []))

    def _timestamp(self, dt: datetime) -> Any:
        return dt.isoformat()

    # --- statements ---
    def _execute(self, conn: Any, sql: str, params: Sequence[Any]) -> Any:
        try:
            cur = conn.cursor()
            cur.execute(sql, tuple(params))
            return cur
        except PersistenceError:
            raise
        except Exception as e:
            raise self.classify_error(e) from e

    def find_by_external_id(self, conn: Any, external_id: str) -> Optional[Dict[str, Any]]:
        cur = self._execute(
            conn,
            f"SELECT id, slug, title, external_id FROM {TABLE} WHERE external_id = {self.placeholder}",
            (external_id,),
        )
        row = cur.fetchone()
        return dict(row) if row else None

    def slug_exists(self, conn: Any, slug: str) -> bool:
        cur = self._execute(conn, f"SELECT id FROM {TABLE} WHERE slug = {self.placeholder}", (slug,))
        return cur.fetchone() is not None

    def update_project(self, conn: Any, project: CanonicalProject, *, variant: StatementVariant, now: datetime) -> None:
        columns = UPDATE_COLUMNS[variant]
        values = self._row_values(project, now=now)
        assignments = ", ".join(f"{c} = {self.placeholder}" for c in columns)
        self._execute(
            conn,
            f"UPDATE {TABLE} SET {assignments} WHERE external_id = {self.placeholder}",
            [values[c] for c in columns] + [project.external_id],
        )

    def insert_project(
        self,
        conn: Any,
        project: CanonicalProject,
        *,
        row_id: str,
        slug: str,
        variant: StatementVariant,
        now: datetime,
    ) -> None:
        columns = INSERT_COLUMNS[variant]
        values = self._row_values(project, now=now, row_id=row_id, slug=slug)
        self._execute(
            conn,
            f"INSERT INTO {TABLE} ({', '.join(columns)}) VALUES ({', '.join([self.placeholder] * len(columns))})",
            [values[c] for c in columns],
        )

    def _row_values(
        self,
        project: CanonicalProject,
        *,
        now: datetime,
        row_id: Optional[str] = None,
        slug: Optional[str] = None,
    ) -> Dict[str, Any]:
        ts = self._timestamp(now)
        return {
            "id": row_id,
            "title": project.title,
            "slug": slug or project.slug,
            "description": project.description,
            "team_name": project.team_name,
            "status": project.status.value,
            "human_votes": project.human_votes,
            "agent_votes": project.agent_votes,
            "total_votes": project.total_votes,
            "external_url": project.external_url,
            "external_id": project.external_id,
            "categories": self._json(project.categories),
            "repository_url": project.repository_url,
            "demo_url": project.demo_url,
            "team_members": self._json(project.team_members),
            "token_address": project.token_address,
            "scraped_at": ts,
            "created_at": ts,
            "updated_at": ts,
        }


class SqliteProjectStore(ProjectStore):
    placeholder = "?"

    def __init__(self, db_path: str):
        self.db_path = db_path

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            # Autocommit: each statement is its own transaction.
            conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=30.0)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open SQLite database {self.db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def ensure_schema(self, *, legacy: bool = False) -> None:
        ensure_sqlite_schema(self.db_path, legacy=legacy)

    def classify_error(self, exc: Exception) -> PersistenceError:
        msg = str(exc)
        if isinstance(exc, sqlite3.OperationalError) and ("no such column" in msg or "has no column named" in msg):
            return SchemaDriftError(msg)
        return PersistenceError(msg)


class PostgresProjectStore(ProjectStore):
    placeholder = "%s"

    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    @contextmanager
    def connection(self) -> Iterator[psycopg.Connection]:
        try:
            conn = psycopg.connect(self.pg_dsn, autocommit=True, row_factory=dict_row)
        except psycopg.Error as e:
            raise PersistenceError(f"Cannot connect to Postgres: {e}") from e
        with conn:
            yield conn

    def ensure_schema(self, *, legacy: bool = False) -> None:
        ensure_postgres_schema(self.pg_dsn, legacy=legacy)

    def classify_error(self, exc: Exception) -> PersistenceError:
        if isinstance(exc, pg_errors.UndefinedColumn):
            return SchemaDriftError(str(exc))
        return PersistenceError(str(exc))

    def _json(self, values: Optional[Sequence[str]]) -> Any:
        return Jsonb(list(values or []))

    def _timestamp(self, dt: datetime) -> Any:
        return dt
