"""Schema bootstrap for the agent_projects table.

Idempotent (CREATE IF NOT EXISTS / add-missing-column). `legacy=True` creates
only the oldest column set, which is what older deployments still run.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import List, Tuple

import psycopg

logger = logging.getLogger(__name__)

SQLITE_BASE_TABLE = """
CREATE TABLE IF NOT EXISTS agent_projects (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  slug TEXT NOT NULL UNIQUE,
  description TEXT,
  team_name TEXT,
  status TEXT NOT NULL DEFAULT 'Published',
  human_votes INTEGER NOT NULL DEFAULT 0,
  agent_votes INTEGER NOT NULL DEFAULT 0,
  total_votes INTEGER NOT NULL DEFAULT 0,
  external_url TEXT,
  external_id TEXT NOT NULL UNIQUE,
  scraped_at TEXT,
  created_at TEXT,
  updated_at TEXT
)
"""

# Columns added after the first release (table, column, definition).
SQLITE_COLUMNS_TO_ADD: List[Tuple[str, str, str]] = [
    ("agent_projects", "categories", "TEXT DEFAULT '[]'"),
    ("agent_projects", "repository_url", "TEXT"),
    ("agent_projects", "demo_url", "TEXT"),
    ("agent_projects", "team_members", "TEXT DEFAULT '[]'"),
    ("agent_projects", "token_address", "TEXT"),
]

POSTGRES_BASE_TABLE = """
CREATE TABLE IF NOT EXISTS agent_projects (
  id TEXT PRIMARY KEY,
  title TEXT NOT NULL,
  slug TEXT NOT NULL UNIQUE,
  description TEXT,
  team_name TEXT,
  status TEXT NOT NULL DEFAULT 'Published',
  human_votes INTEGER NOT NULL DEFAULT 0,
  agent_votes INTEGER NOT NULL DEFAULT 0,
  total_votes INTEGER NOT NULL DEFAULT 0,
  external_url TEXT,
  external_id TEXT NOT NULL UNIQUE,
  scraped_at TIMESTAMPTZ,
  created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
  updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

POSTGRES_COLUMN_STATEMENTS: List[str] = [
    "ALTER TABLE agent_projects ADD COLUMN IF NOT EXISTS categories JSONB NOT NULL DEFAULT '[]'::jsonb;",
    "ALTER TABLE agent_projects ADD COLUMN IF NOT EXISTS repository_url TEXT;",
    "ALTER TABLE agent_projects ADD COLUMN IF NOT EXISTS demo_url TEXT;",
    "ALTER TABLE agent_projects ADD COLUMN IF NOT EXISTS team_members JSONB NOT NULL DEFAULT '[]'::jsonb;",
    "ALTER TABLE agent_projects ADD COLUMN IF NOT EXISTS token_address TEXT;",
    "CREATE INDEX IF NOT EXISTS idx_agent_projects_total_votes ON agent_projects (total_votes DESC);",
]


def ensure_sqlite_schema(db_path: str, *, legacy: bool = False) -> None:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute(SQLITE_BASE_TABLE)
        if not legacy:
            for table, column, definition in SQLITE_COLUMNS_TO_ADD:
                try:
                    cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {definition}")
                    logger.info(f"Added missing {column} column to {table}")
                except sqlite3.OperationalError:
                    # Column already exists
                    pass
        conn.commit()
    finally:
        conn.close()


def ensure_postgres_schema(pg_dsn: str, *, legacy: bool = False) -> None:
    stmts = [POSTGRES_BASE_TABLE] + ([] if legacy else POSTGRES_COLUMN_STATEMENTS)
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)
