"""Paper, proof and search models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from scholarvault.models.enums import VerificationReason


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class PaperRecord(BaseModel):
    """One version of a research paper.

    The CID never changes on a record. A revision is a new record whose
    parent_cid points at the CID of the version it replaces and whose
    parent_id names that record, since identical bytes can share a CID.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str
    author: str
    abstract: str
    cid: str = Field(alias="CID")
    version: int = Field(default=1, ge=1)
    timestamp: datetime = Field(default_factory=utcnow)
    parent_cid: Optional[str] = Field(default=None, alias="parentCID")
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    file_size: Optional[int] = Field(default=None, ge=0, alias="fileSize")
    file_type: Optional[str] = Field(default=None, alias="fileType")
    keywords: List[str] = Field(default_factory=list)
    doi: Optional[str] = None
    is_verified: bool = Field(default=False, alias="isVerified")

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class UploadMetadata(BaseModel):
    """Client-supplied metadata for an upload. Checked by the catalog service."""

    title: str = ""
    author: str = ""
    abstract: str = ""
    keywords: Optional[List[str]] = None
    doi: Optional[str] = None


class ProofRecord(BaseModel):
    """Append-only record of a single verification attempt."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    paper_id: str = Field(alias="paperId")
    cid: str = Field(alias="CID")
    proof: str
    timestamp: datetime = Field(default_factory=utcnow)
    is_valid: bool = Field(alias="isValid")

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class SearchFilters(BaseModel):
    query: Optional[str] = None
    author: Optional[str] = None
    verified: Optional[bool] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PaperPage(BaseModel):
    papers: List[PaperRecord]
    total: int
    page: int
    limit: int

    def to_api(self) -> dict[str, Any]:
        return {
            "papers": [paper.to_api() for paper in self.papers],
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
        }


class VerificationOutcome(BaseModel):
    is_valid: bool
    message: str
    reason: VerificationReason

    def to_api(self) -> dict[str, Any]:
        return {"isValid": self.is_valid, "message": self.message, "reason": self.reason.value}
