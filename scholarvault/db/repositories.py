"""Typed repository for paper and proof persistence."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional, Tuple

import aiosqlite

from scholarvault.db.database import format_timestamp
from scholarvault.models import PaperRecord, ProofRecord, SearchFilters

_PAPER_COLUMNS = (
    "id, title, author, abstract, cid, version, timestamp, parent_cid, parent_id, "
    "file_size, file_type, keywords, doi, is_verified"
)


def _decode_keywords(raw: Any) -> List[str]:
    if not raw:
        return []
    if isinstance(raw, list):
        return [str(k) for k in raw]
    try:
        decoded = json.loads(raw)
    except (TypeError, json.JSONDecodeError):
        return []
    return [str(k) for k in decoded] if isinstance(decoded, list) else []


def _row_to_paper(row: aiosqlite.Row) -> PaperRecord:
    """Convert a papers table row to PaperRecord."""
    return PaperRecord(
        id=str(row["id"]),
        title=str(row["title"]),
        author=str(row["author"]),
        abstract=str(row["abstract"]),
        cid=str(row["cid"]),
        version=int(row["version"]),
        timestamp=datetime.fromisoformat(str(row["timestamp"])),
        parent_cid=str(row["parent_cid"]) if row["parent_cid"] else None,
        parent_id=str(row["parent_id"]) if row["parent_id"] else None,
        file_size=int(row["file_size"]) if row["file_size"] is not None else None,
        file_type=str(row["file_type"]) if row["file_type"] else None,
        keywords=_decode_keywords(row["keywords"]),
        doi=str(row["doi"]) if row["doi"] else None,
        is_verified=bool(row["is_verified"]),
    )


def _row_to_proof(row: aiosqlite.Row) -> ProofRecord:
    return ProofRecord(
        id=str(row["id"]),
        paper_id=str(row["paper_id"]),
        cid=str(row["cid"]),
        proof=str(row["proof"]),
        timestamp=datetime.fromisoformat(str(row["timestamp"])),
        is_valid=bool(row["is_valid"]),
    )


def _build_where(filters: SearchFilters) -> Tuple[str, list[Any]]:
    """Build the WHERE clause for a search. All filters AND; query ORs across fields."""
    clauses: list[str] = []
    params: list[Any] = []
    query = (filters.query or "").strip()
    if query:
        clauses.append(
            "(casefold_contains(title, ?) = 1"
            " OR casefold_contains(abstract, ?) = 1"
            " OR casefold_contains(author, ?) = 1)"
        )
        params.extend([query, query, query])
    author = (filters.author or "").strip()
    if author:
        clauses.append("casefold_contains(author, ?) = 1")
        params.append(author)
    if filters.verified is not None:
        clauses.append("is_verified = ?")
        params.append(1 if filters.verified else 0)
    if filters.date_from is not None:
        clauses.append("timestamp >= ?")
        params.append(format_timestamp(filters.date_from))
    if filters.date_to is not None:
        clauses.append("timestamp <= ?")
        params.append(format_timestamp(filters.date_to))
    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


class CatalogRepository:
    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def create_paper(self, paper: PaperRecord) -> PaperRecord:
        await self.db.execute(
            f"""
            INSERT INTO papers ({_PAPER_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                paper.id,
                paper.title,
                paper.author,
                paper.abstract,
                paper.cid,
                paper.version,
                format_timestamp(paper.timestamp),
                paper.parent_cid,
                paper.parent_id,
                paper.file_size,
                paper.file_type,
                json.dumps(paper.keywords),
                paper.doi,
                1 if paper.is_verified else 0,
            ),
        )
        await self.db.commit()
        return paper

    async def get_paper(self, paper_id: str) -> Optional[PaperRecord]:
        cursor = await self.db.execute(
            f"SELECT {_PAPER_COLUMNS} FROM papers WHERE id = ?",
            (paper_id,),
        )
        row = await cursor.fetchone()
        return _row_to_paper(row) if row is not None else None

    async def find_predecessor(self, paper: PaperRecord) -> Optional[PaperRecord]:
        """Resolve a parent for records stored without parent_id.

        Matches the parent CID at the previous version number, created no later
        than the child. Among duplicates the most recent candidate wins.
        """
        if not paper.parent_cid or paper.version <= 1:
            return None
        cursor = await self.db.execute(
            f"""
            SELECT {_PAPER_COLUMNS} FROM papers
            WHERE cid = ? AND version = ? AND id != ? AND timestamp <= ?
            ORDER BY timestamp DESC, rowid DESC
            LIMIT 1
            """,
            (paper.parent_cid, paper.version - 1, paper.id, format_timestamp(paper.timestamp)),
        )
        row = await cursor.fetchone()
        return _row_to_paper(row) if row is not None else None

    async def search_papers(self, filters: SearchFilters) -> Tuple[List[PaperRecord], int]:
        """Return (page of papers, total matches). Newest first, later insert wins ties."""
        where, params = _build_where(filters)
        cursor = await self.db.execute(
            f"""
            SELECT {_PAPER_COLUMNS} FROM papers
            {where}
            ORDER BY timestamp DESC, rowid DESC
            LIMIT ? OFFSET ?
            """,
            (*params, filters.limit, filters.offset),
        )
        rows = await cursor.fetchall()
        cursor = await self.db.execute(f"SELECT COUNT(*) FROM papers {where}", tuple(params))
        total_row = await cursor.fetchone()
        total = int(total_row[0]) if total_row is not None else 0
        return [_row_to_paper(row) for row in rows], total

    async def record_verification(self, proof: ProofRecord) -> ProofRecord:
        """Set the paper's verification flag and append the proof in one transaction."""
        try:
            await self.db.execute(
                "UPDATE papers SET is_verified = ? WHERE id = ?",
                (1 if proof.is_valid else 0, proof.paper_id),
            )
            await self.db.execute(
                """
                INSERT INTO pdp_proofs (id, paper_id, cid, proof, timestamp, is_valid)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    proof.id,
                    proof.paper_id,
                    proof.cid,
                    proof.proof,
                    format_timestamp(proof.timestamp),
                    1 if proof.is_valid else 0,
                ),
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return proof

    async def list_proofs(self, paper_id: str) -> List[ProofRecord]:
        cursor = await self.db.execute(
            """
            SELECT id, paper_id, cid, proof, timestamp, is_valid
            FROM pdp_proofs
            WHERE paper_id = ?
            ORDER BY timestamp ASC, rowid ASC
            """,
            (paper_id,),
        )
        rows = await cursor.fetchall()
        return [_row_to_proof(row) for row in rows]

    async def count_proofs(self, paper_id: str) -> int:
        cursor = await self.db.execute(
            "SELECT COUNT(*) FROM pdp_proofs WHERE paper_id = ?",
            (paper_id,),
        )
        row = await cursor.fetchone()
        return int(row[0]) if row is not None else 0
