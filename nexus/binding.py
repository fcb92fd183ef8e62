"""
Per-key reactive binding over the typed store.

A binding holds a disposable local copy of one key. Observers registered with
``subscribe`` are called synchronously with the loaded value and with every
local write; sibling bindings on the same key are not notified.
"""

import asyncio
import logging
from typing import Any, Callable, List, Optional

from nexus.models import StorageKey
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

Observer = Callable[[Any], None]


class Binding:
    """(value, writer, loading) for one storage key."""

    def __init__(self, store: TypedStore, key: StorageKey | str):
        self._store = store
        self.key = StorageKey(key)
        self._value: Any = None
        self._loading = True
        self._mounted = False
        self._written = False
        self._observers: List[Observer] = []
        self._load_task: Optional[asyncio.Task] = None

    @property
    def value(self) -> Any:
        return self._value

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def mounted(self) -> bool:
        return self._mounted

    # ── Lifecycle ─────────────────────────────────────

    def mount(self) -> asyncio.Task:
        """Start the single initial read. Must be called inside a running loop."""
        if self._load_task is not None:
            return self._load_task
        self._mounted = True
        self._load_task = asyncio.get_running_loop().create_task(self._load())
        return self._load_task

    async def wait_loaded(self) -> Any:
        if self._load_task is None:
            self.mount()
        await self._load_task
        return self._value

    def unmount(self):
        """Tear down: any pending load result is discarded."""
        self._mounted = False
        self._observers.clear()

    async def _load(self):
        try:
            value = await self._store.get(self.key)
        except Exception as e:
            logger.error(f"[{self.key.value}] Error loading: {e}")
            if self._mounted:
                self._loading = False
                self._notify()
            return

        if not self._mounted:
            logger.debug(f"[{self.key.value}] Binding unmounted, discarding loaded value")
            return
        # A local write during the load is newer than what was read.
        if not self._written:
            self._value = value
        self._loading = False
        self._notify()

    async def reload(self) -> Any:
        """Explicit fresh read, e.g. before composing a partial update."""
        value = await self._store.get(self.key)
        if self._mounted:
            self._value = value
            # newer than any initial load still in flight
            self._written = True
            self._loading = False
            self._notify()
        return value

    # ── Observers ─────────────────────────────────────

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self):
        for observer in list(self._observers):
            try:
                observer(self._value)
            except Exception as e:
                logger.error(f"[{self.key.value}] Observer failed: {e}", exc_info=True)

    # ── Writer ────────────────────────────────────────

    async def set(self, value: Any) -> None:
        """
        Optimistically replace the local value, notify observers, then write
        through the store. Backend failures are logged, not rolled back.
        """
        value = self._store.validate(self.key, value)
        self._value = value
        self._written = True
        if self._mounted:
            self._notify()

        try:
            await self._store.set(self.key, value)
        except Exception as e:
            logger.error(f"[{self.key.value}] Error saving: {e}")
