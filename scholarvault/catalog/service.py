"""Catalog service: validated ingestion, search, version chains and downloads.

The service holds no state of its own. Each instance wraps one repository
connection and the shared storage handle for the duration of a request.
"""

from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass
from typing import List, Optional

from scholarvault.db.repositories import CatalogRepository
from scholarvault.errors import (
    NotFound,
    PersistenceFailure,
    StorageError,
    StorageUnavailable,
    ValidationError,
)
from scholarvault.models import (
    PaperPage,
    PaperRecord,
    SearchFilters,
    StorageFailureReason,
    UploadMetadata,
)
from scholarvault.storage.base import StoredObject
from scholarvault.storage.client import StorageHandle
from scholarvault.utils.logging_config import get_logger
from scholarvault.utils.structured_log import log_ingest, log_orphaned_content

logger = get_logger(__name__)

_REQUIRED_FIELDS = ("title", "author", "abstract")


@dataclass
class DownloadedPaper:
    content: bytes
    cid: str
    size: int
    file_type: str
    filename: str


def validate_upload(content: Optional[bytes], metadata: UploadMetadata) -> None:
    """Raise ValidationError listing every missing field."""
    fields: list[dict[str, str]] = []
    if not content:
        fields.append({"field": "file", "message": "File content is required"})
    for name in _REQUIRED_FIELDS:
        value = getattr(metadata, name) or ""
        if not value.strip():
            fields.append({"field": name, "message": f"{name.capitalize()} is required"})
    if fields:
        missing = ", ".join(f["field"] for f in fields)
        raise ValidationError(f"Missing required fields: {missing}", fields)


def _clean_keywords(keywords: Optional[List[str]]) -> List[str]:
    return [k.strip() for k in (keywords or []) if k and k.strip()]


def download_filename(paper: PaperRecord) -> str:
    """Filesystem-safe name derived from the title and MIME type (PDF if unknown)."""
    stem = re.sub(r"[^a-z0-9]", "_", paper.title, flags=re.IGNORECASE) or "paper"
    extension = mimetypes.guess_extension(paper.file_type) if paper.file_type else None
    return f"{stem}{extension or '.pdf'}"


class CatalogService:
    def __init__(self, repository: CatalogRepository, storage: StorageHandle):
        self.repository = repository
        self.storage = storage

    async def _store_content(self, content: bytes) -> StoredObject:
        store = await self.storage.store()
        try:
            return await store.put(content)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageUnavailable(
                f"Upload failed: {exc}", reason=StorageFailureReason.BACKEND
            ) from exc

    async def _persist(self, paper: PaperRecord) -> PaperRecord:
        try:
            saved = await self.repository.create_paper(paper)
        except Exception as exc:
            # Content is already stored and stays orphaned; no compensating delete.
            logger.error("Metadata write failed; content %s is orphaned: %s", paper.cid, exc)
            log_orphaned_content(paper.cid, str(exc))
            raise PersistenceFailure(
                f"Failed to save paper metadata: {exc}", orphaned_cid=paper.cid
            ) from exc
        log_ingest(saved.id, saved.cid, saved.version, saved.parent_cid)
        return saved

    def _build_record(
        self,
        stored: StoredObject,
        metadata: UploadMetadata,
        file_type: Optional[str],
        parent: Optional[PaperRecord] = None,
    ) -> PaperRecord:
        return PaperRecord(
            title=metadata.title.strip(),
            author=metadata.author.strip(),
            abstract=metadata.abstract.strip(),
            cid=stored.cid,
            version=parent.version + 1 if parent else 1,
            parent_cid=parent.cid if parent else None,
            parent_id=parent.id if parent else None,
            file_size=stored.size,
            file_type=file_type or None,
            keywords=_clean_keywords(metadata.keywords),
            doi=(metadata.doi or "").strip() or None,
            is_verified=False,
        )

    async def ingest(
        self,
        content: bytes,
        metadata: UploadMetadata,
        file_type: Optional[str] = None,
    ) -> PaperRecord:
        """Store content, then persist version 1 of a new paper."""
        validate_upload(content, metadata)
        stored = await self._store_content(content)
        paper = await self._persist(self._build_record(stored, metadata, file_type))
        logger.info("Ingested paper %s (%s)", paper.id, paper.cid)
        return paper

    async def create_version(
        self,
        parent_id: str,
        content: bytes,
        metadata: UploadMetadata,
        file_type: Optional[str] = None,
    ) -> PaperRecord:
        """Persist a new record that supersedes parent_id. The parent is not modified."""
        parent = await self.get_by_id(parent_id)
        validate_upload(content, metadata)
        stored = await self._store_content(content)
        paper = await self._persist(self._build_record(stored, metadata, file_type, parent=parent))
        logger.info("Created version %d of paper %s as %s", paper.version, parent.id, paper.id)
        return paper

    async def get_by_id(self, paper_id: str) -> PaperRecord:
        paper = await self.repository.get_paper(paper_id)
        if paper is None:
            raise NotFound("Paper not found")
        return paper

    async def search(self, filters: SearchFilters) -> PaperPage:
        papers, total = await self.repository.search_papers(filters)
        return PaperPage(papers=papers, total=total, page=filters.page, limit=filters.limit)

    async def _parent_of(self, paper: PaperRecord) -> Optional[PaperRecord]:
        if paper.parent_id:
            return await self.repository.get_paper(paper.parent_id)
        return await self.repository.find_predecessor(paper)

    async def version_history(self, paper_id: str) -> List[PaperRecord]:
        """Walk parent links from paper_id back to the first version, newest first."""
        current = await self.get_by_id(paper_id)
        chain = [current]
        seen = {current.id}
        while current.version > 1:
            parent = await self._parent_of(current)
            if parent is None or parent.id in seen:
                break
            chain.append(parent)
            seen.add(parent.id)
            current = parent
        return chain

    async def download(self, paper_id: str) -> DownloadedPaper:
        paper = await self.get_by_id(paper_id)
        store = await self.storage.store()
        try:
            content = await store.get(paper.cid)
        except StorageError:
            raise
        except Exception as exc:
            raise StorageUnavailable(
                f"Download failed: {exc}", reason=StorageFailureReason.BACKEND
            ) from exc
        return DownloadedPaper(
            content=content,
            cid=paper.cid,
            size=len(content),
            file_type=paper.file_type or "application/pdf",
            filename=download_filename(paper),
        )
