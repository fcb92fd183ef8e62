"""
Free-text notes with debounced saving.
"""

import logging

from nexus.debounce import Debouncer
from nexus.models import StorageKey
from nexus.store import TypedStore

logger = logging.getLogger(__name__)


class NotesEditor:
    """Local text is updated on every edit; the store sees one write per quiet window."""

    def __init__(self, store: TypedStore, delay: float = 0.5):
        self._store = store
        self.text = ""
        self.saving = False
        self._debouncer = Debouncer(self._save, delay=delay)

    async def load(self) -> str:
        self.text = await self._store.get(StorageKey.NOTES)
        return self.text

    def edit(self, text: str):
        self.text = text
        self._debouncer.push(text)

    @property
    def dirty(self) -> bool:
        return self._debouncer.pending

    async def _save(self, text: str):
        self.saving = True
        try:
            await self._store.set(StorageKey.NOTES, text)
            logger.debug(f"Notes saved ({len(text)} chars)")
        finally:
            self.saving = False

    async def flush(self):
        await self._debouncer.flush()

    def close(self):
        """Editor torn down: the pending edit is discarded."""
        self._debouncer.cancel()
