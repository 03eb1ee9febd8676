"""SQLite connection and schema helpers."""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

SCHEMA = """
CREATE TABLE IF NOT EXISTS papers (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    author      TEXT NOT NULL,
    abstract    TEXT NOT NULL,
    cid         TEXT NOT NULL,
    version     INTEGER NOT NULL DEFAULT 1,
    timestamp   TEXT NOT NULL,
    parent_cid  TEXT,
    parent_id   TEXT,
    file_size   INTEGER,
    file_type   TEXT,
    keywords    TEXT NOT NULL DEFAULT '[]',
    doi         TEXT,
    is_verified INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_papers_timestamp ON papers(timestamp);
CREATE INDEX IF NOT EXISTS idx_papers_cid ON papers(cid);
CREATE INDEX IF NOT EXISTS idx_papers_author ON papers(author);

CREATE TABLE IF NOT EXISTS pdp_proofs (
    id          TEXT PRIMARY KEY,
    paper_id    TEXT NOT NULL,
    cid         TEXT NOT NULL,
    proof       TEXT NOT NULL UNIQUE,
    timestamp   TEXT NOT NULL,
    is_valid    INTEGER NOT NULL,
    FOREIGN KEY (paper_id) REFERENCES papers(id)
);

CREATE INDEX IF NOT EXISTS idx_proofs_paper ON pdp_proofs(paper_id);
"""

DEFAULT_DB_PATH = "data/catalog.db"


def format_timestamp(value: datetime) -> str:
    """Fixed-width UTC ISO-8601 so lexical order in SQLite equals time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def casefold_contains(haystack: str | None, needle: str | None) -> int:
    """SQL function: 1 if needle occurs in haystack ignoring case (Unicode-aware)."""
    if haystack is None or needle is None:
        return 0
    return 1 if needle.casefold() in haystack.casefold() else 0


async def _init_connection(db: aiosqlite.Connection) -> None:
    await db.execute("PRAGMA journal_mode = WAL")
    await db.execute("PRAGMA synchronous = NORMAL")
    await db.execute("PRAGMA foreign_keys = ON")
    await db.execute("PRAGMA temp_store = MEMORY")
    await db.create_function("casefold_contains", 2, casefold_contains, deterministic=True)


async def _ensure_column(db: aiosqlite.Connection, table: str, column: str, ddl: str) -> None:
    cursor = await db.execute(f"PRAGMA table_info({table})")
    existing = {row[1] for row in await cursor.fetchall()}
    if column not in existing:
        await db.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")


async def run_migrations(db: aiosqlite.Connection) -> None:
    await db.executescript(SCHEMA)
    # Databases created before version links were stored by id
    await _ensure_column(db, "papers", "parent_id", "TEXT")
    await db.execute("CREATE INDEX IF NOT EXISTS idx_papers_parent ON papers(parent_id)")
    await db.commit()


@asynccontextmanager
async def get_db(db_path: str = DEFAULT_DB_PATH) -> AsyncIterator[aiosqlite.Connection]:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    db = await aiosqlite.connect(db_path)
    try:
        db.row_factory = aiosqlite.Row
        await _init_connection(db)
        await run_migrations(db)
        yield db
    finally:
        await db.close()
