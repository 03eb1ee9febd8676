"""Content-addressed storage clients."""

from scholarvault.storage.base import ContentStore, StoredObject
from scholarvault.storage.client import StorageHandle, build_content_store
from scholarvault.storage.http_store import GatewayContentStore
from scholarvault.storage.memory import MemoryContentStore

__all__ = [
    "ContentStore",
    "GatewayContentStore",
    "MemoryContentStore",
    "StorageHandle",
    "StoredObject",
    "build_content_store",
]
