"""In-process content store for development and tests."""

from __future__ import annotations

import hashlib

from scholarvault.errors import StorageUnavailable
from scholarvault.models import StorageFailureReason
from scholarvault.storage.base import StoredObject


def content_address(content: bytes) -> str:
    return "bafk" + hashlib.sha256(content).hexdigest()


class MemoryContentStore:
    """Content-addressed dict. Set ``available = False`` to simulate an outage."""

    name = "memory"

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}
        self.available = True

    def _check_available(self) -> None:
        if not self.available:
            raise StorageUnavailable(
                "In-memory store is offline", reason=StorageFailureReason.CONNECTIVITY
            )

    async def put(self, content: bytes) -> StoredObject:
        self._check_available()
        cid = content_address(content)
        self._objects[cid] = bytes(content)
        return StoredObject(cid=cid, size=len(content), provider=self.name)

    async def get(self, cid: str) -> bytes:
        self._check_available()
        try:
            return self._objects[cid]
        except KeyError:
            raise StorageUnavailable(
                f"Content not found: {cid}", reason=StorageFailureReason.BACKEND
            ) from None

    async def exists(self, cid: str) -> bool:
        self._check_available()
        return cid in self._objects

    def forget(self, cid: str) -> None:
        """Drop stored bytes, as if the provider lost them."""
        self._objects.pop(cid, None)

    async def close(self) -> None:
        return None
