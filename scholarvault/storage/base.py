"""Content store protocol."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class StoredObject:
    """Result of a successful upload."""

    cid: str
    size: int
    provider: str
    deal_id: Optional[str] = None


class ContentStore(Protocol):
    name: str

    async def put(self, content: bytes) -> StoredObject:
        """Store bytes and return their content identifier."""

    async def get(self, cid: str) -> bytes:
        """Fetch the bytes stored under cid."""

    async def exists(self, cid: str) -> bool:
        """Return True if cid is currently retrievable, False if definitively missing.

        Raises StorageError when the check itself cannot be performed.
        """

    async def close(self) -> None:
        """Release network resources."""
