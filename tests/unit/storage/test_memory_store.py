import pytest

from scholarvault.errors import StorageUnavailable
from scholarvault.models import StorageFailureReason
from scholarvault.storage.memory import MemoryContentStore, content_address


def test_content_address_is_deterministic() -> None:
    assert content_address(b"abc") == content_address(b"abc")
    assert content_address(b"abc") != content_address(b"abd")
    assert content_address(b"abc").startswith("bafk")


@pytest.mark.asyncio
async def test_put_get_exists() -> None:
    store = MemoryContentStore()
    stored = await store.put(b"paper body")

    assert stored.size == len(b"paper body")
    assert stored.provider == "memory"
    assert await store.exists(stored.cid)
    assert await store.get(stored.cid) == b"paper body"


@pytest.mark.asyncio
async def test_forget_makes_content_missing() -> None:
    store = MemoryContentStore()
    stored = await store.put(b"lost")
    store.forget(stored.cid)

    assert not await store.exists(stored.cid)
    with pytest.raises(StorageUnavailable) as excinfo:
        await store.get(stored.cid)
    assert excinfo.value.reason == StorageFailureReason.BACKEND


@pytest.mark.asyncio
async def test_unavailable_store_raises_connectivity() -> None:
    store = MemoryContentStore()
    store.available = False

    with pytest.raises(StorageUnavailable) as excinfo:
        await store.put(b"x")
    assert excinfo.value.reason == StorageFailureReason.CONNECTIVITY
