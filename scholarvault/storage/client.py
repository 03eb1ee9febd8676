"""Process-wide storage handle with an explicit open/close lifecycle.

One configured backend connection is reused across requests. The handle is
created and owned by the application lifespan and passed to the services that
need it.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from scholarvault.models import StorageBackend, StorageConfig
from scholarvault.storage.base import ContentStore
from scholarvault.storage.http_store import GatewayContentStore
from scholarvault.storage.memory import MemoryContentStore
from scholarvault.utils.logging_config import get_logger

logger = get_logger(__name__)


def build_content_store(config: StorageConfig) -> ContentStore:
    """Construct the configured backend. Credentials are checked on first call, not here."""
    if config.backend == StorageBackend.MEMORY:
        return MemoryContentStore()
    return GatewayContentStore(config)


class StorageHandle:
    def __init__(self, config: StorageConfig, store: Optional[ContentStore] = None):
        self.config = config
        self._store = store
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._store is not None

    @property
    def backend_name(self) -> str:
        return self._store.name if self._store is not None else self.config.backend.value

    async def open(self) -> ContentStore:
        async with self._lock:
            if self._store is None:
                self._store = build_content_store(self.config)
                logger.info("Opened %s content store", self._store.name)
            return self._store

    async def store(self) -> ContentStore:
        """Return the backend, opening it on first use."""
        if self._store is not None:
            return self._store
        return await self.open()

    async def close(self) -> None:
        async with self._lock:
            if self._store is not None:
                await self._store.close()
                logger.info("Closed %s content store", self._store.name)
            self._store = None
