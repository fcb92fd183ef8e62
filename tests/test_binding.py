import asyncio
import logging

from nexus.backends import MemoryBackend
from nexus.binding import Binding
from nexus.models import StorageKey, Theme
from nexus.store import TypedStore


class SlowBackend(MemoryBackend):
    """Reads wait until released so tests can act mid-load."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.release = asyncio.Event()

    async def get(self, keys=None):
        await self.release.wait()
        return await super().get(keys)


class FailingWriteBackend(MemoryBackend):
    async def set(self, items):
        raise OSError("quota exceeded")


async def test_initial_load():
    store = TypedStore(MemoryBackend({"theme": "light"}))
    binding = Binding(store, StorageKey.THEME)
    seen = []
    binding.subscribe(seen.append)

    assert binding.loading is True
    assert binding.value is None

    binding.mount()
    await binding.wait_loaded()

    assert binding.loading is False
    assert binding.value == Theme.LIGHT
    assert seen == [Theme.LIGHT]


async def test_mount_reads_once():
    calls = []

    class CountingBackend(MemoryBackend):
        async def get(self, keys=None):
            calls.append(keys)
            return await super().get(keys)

    binding = Binding(TypedStore(CountingBackend()), StorageKey.NOTES)
    binding.mount()
    binding.mount()
    await binding.wait_loaded()
    assert len(calls) == 1


async def test_unmount_discards_pending_load():
    backend = SlowBackend({"notes": "stored"})
    binding = Binding(TypedStore(backend), StorageKey.NOTES)
    seen = []
    binding.subscribe(seen.append)

    task = binding.mount()
    binding.unmount()
    backend.release.set()
    await task

    assert binding.value is None
    assert seen == []


async def test_write_is_visible_before_durable_write_resolves():
    class GatedWriteBackend(MemoryBackend):
        def __init__(self):
            super().__init__()
            self.release = asyncio.Event()

        async def set(self, items):
            await self.release.wait()
            await super().set(items)

    backend = GatedWriteBackend()
    store = TypedStore(backend)
    binding = Binding(store, StorageKey.NOTES)
    binding.mount()
    await binding.wait_loaded()

    seen = []
    binding.subscribe(seen.append)
    write = asyncio.ensure_future(binding.set("draft"))
    await asyncio.sleep(0)

    assert binding.value == "draft"
    assert seen == ["draft"]
    assert await store.get(StorageKey.NOTES) == ""

    backend.release.set()
    await write
    assert await store.get(StorageKey.NOTES) == "draft"


async def test_write_during_load_is_not_clobbered():
    backend = SlowBackend({"notes": "old"})
    binding = Binding(TypedStore(backend), StorageKey.NOTES)
    task = binding.mount()

    await binding.set("new")
    backend.release.set()
    await task

    assert binding.value == "new"
    assert binding.loading is False


async def test_siblings_are_not_notified(store):
    first = Binding(store, StorageKey.THEME)
    second = Binding(store, StorageKey.THEME)
    first.mount()
    second.mount()
    await asyncio.gather(first.wait_loaded(), second.wait_loaded())

    await first.set(Theme.LIGHT)
    assert second.value == Theme.DARK

    await second.reload()
    assert second.value == Theme.LIGHT


async def test_concurrent_writers_last_write_wins(store):
    first = Binding(store, StorageKey.NOTES)
    second = Binding(store, StorageKey.NOTES)
    await first.set("from first")
    await second.set("from second")
    assert await store.get(StorageKey.NOTES) == "from second"


async def test_backend_failure_is_logged_not_rolled_back(caplog):
    binding = Binding(TypedStore(FailingWriteBackend()), StorageKey.NOTES)
    binding.mount()
    await binding.wait_loaded()

    with caplog.at_level(logging.ERROR, logger="nexus.binding"):
        await binding.set("kept locally")

    assert binding.value == "kept locally"
    assert "Error saving" in caplog.text


async def test_unsubscribe(store):
    binding = Binding(store, StorageKey.DRAG_ENABLED)
    seen = []
    unsubscribe = binding.subscribe(seen.append)
    binding.mount()
    await binding.wait_loaded()
    unsubscribe()
    await binding.set(False)
    assert seen == [True]
