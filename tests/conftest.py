"""
Pytest configuration and fixtures.
"""

from typing import AsyncIterator

import pytest
import pytest_asyncio

from scholarvault.db.database import get_db
from scholarvault.db.repositories import CatalogRepository
from scholarvault.models import StorageBackend, StorageConfig, UploadMetadata
from scholarvault.storage.client import StorageHandle
from scholarvault.storage.memory import MemoryContentStore


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "catalog.db")


@pytest.fixture
def memory_store() -> MemoryContentStore:
    return MemoryContentStore()


@pytest.fixture
def storage_handle(memory_store) -> StorageHandle:
    return StorageHandle(StorageConfig(backend=StorageBackend.MEMORY), store=memory_store)


@pytest_asyncio.fixture
async def repository(db_path) -> AsyncIterator[CatalogRepository]:
    async with get_db(db_path) as db:
        yield CatalogRepository(db)


@pytest.fixture
def sample_metadata() -> UploadMetadata:
    """Metadata for a typical upload."""
    return UploadMetadata(
        title="Quantum Resistance in Lattice Cryptography",
        author="Ada Lovelace",
        abstract="We survey post-quantum lattice schemes and their resistance to known attacks.",
        keywords=["post-quantum", " lattices ", ""],
        doi="10.1000/qr-lattice",
    )
