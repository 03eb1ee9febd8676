from datetime import datetime, timedelta, timezone

import aiosqlite
import pytest

from scholarvault.db.database import casefold_contains, format_timestamp, get_db


@pytest.mark.asyncio
async def test_database_migrations_create_tables(tmp_path) -> None:
    db_path = tmp_path / "catalog.db"
    async with get_db(str(db_path)) as db:
        assert isinstance(db, aiosqlite.Connection)
        cursor = await db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        names = {row[0] for row in await cursor.fetchall()}
    assert {"papers", "pdp_proofs"} <= names


@pytest.mark.asyncio
async def test_migrations_are_idempotent(tmp_path) -> None:
    db_path = str(tmp_path / "twice.db")
    async with get_db(db_path):
        pass
    async with get_db(db_path) as db:
        cursor = await db.execute("SELECT COUNT(*) FROM papers")
        row = await cursor.fetchone()
        assert row[0] == 0


@pytest.mark.asyncio
async def test_get_db_creates_parent_directory(tmp_path) -> None:
    db_path = tmp_path / "nested" / "dir" / "catalog.db"
    async with get_db(str(db_path)):
        pass
    assert db_path.exists()


@pytest.mark.asyncio
async def test_casefold_contains_registered_as_sql_function(tmp_path) -> None:
    async with get_db(str(tmp_path / "fn.db")) as db:
        cursor = await db.execute("SELECT casefold_contains('Straße Networks', 'STRASSE')")
        row = await cursor.fetchone()
        assert row[0] == 1
        cursor = await db.execute("SELECT casefold_contains('100% pure', '_')")
        row = await cursor.fetchone()
        assert row[0] == 0


def test_casefold_contains_handles_nulls() -> None:
    assert casefold_contains(None, "x") == 0
    assert casefold_contains("x", None) == 0
    assert casefold_contains("Quantum", "quant") == 1


def test_format_timestamp_is_fixed_width_utc() -> None:
    naive = datetime(2024, 1, 2, 3, 4, 5)
    aware = datetime(2024, 1, 2, 5, 4, 5, 123456, tzinfo=timezone(timedelta(hours=2)))
    assert format_timestamp(naive) == "2024-01-02T03:04:05.000000+00:00"
    assert format_timestamp(aware) == "2024-01-02T03:04:05.123456+00:00"
    assert len(format_timestamp(naive)) == len(format_timestamp(aware))


@pytest.mark.asyncio
async def test_migrations_add_parent_id_to_existing_papers_table(tmp_path) -> None:
    db_path = str(tmp_path / "old.db")
    async with aiosqlite.connect(db_path) as db:
        await db.execute(
            """
            CREATE TABLE papers (
                id TEXT PRIMARY KEY, title TEXT NOT NULL, author TEXT NOT NULL,
                abstract TEXT NOT NULL, cid TEXT NOT NULL, version INTEGER NOT NULL DEFAULT 1,
                timestamp TEXT NOT NULL, parent_cid TEXT, file_size INTEGER, file_type TEXT,
                keywords TEXT NOT NULL DEFAULT '[]', doi TEXT,
                is_verified INTEGER NOT NULL DEFAULT 0
            )
            """
        )
        await db.commit()

    async with get_db(db_path) as db:
        cursor = await db.execute("PRAGMA table_info(papers)")
        columns = {row[1] for row in await cursor.fetchall()}
    assert "parent_id" in columns
