"""
每日名言：从内置列表随机挑选，缓存 1 小时。
"""

import json
import logging
import random
import time
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import BaseModel

from nexus.models import QuoteCacheEntry, StorageKey
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

QUOTE_TTL = 60 * 60  # seconds
_BUNDLED_QUOTES = Path(__file__).resolve().parent.parent / "data" / "quotes.json"


class QuoteError(Exception):
    """没有可用的名言。"""


class Quote(BaseModel):
    quote: str
    author: str


def load_quotes(path: str | Path | None = None) -> List[Quote]:
    path = Path(path) if path else _BUNDLED_QUOTES
    with open(path, "r", encoding="utf-8") as f:
        return [Quote(**item) for item in json.load(f)]


def is_fresh(entry: QuoteCacheEntry, now: float, ttl: float = QUOTE_TTL) -> bool:
    return bool(entry.quote) and now - entry.fetched_at < ttl


class QuoteService:

    def __init__(
        self,
        store: TypedStore,
        quotes: Optional[List[Quote]] = None,
        ttl: float = QUOTE_TTL,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
    ):
        self._store = store
        self.quotes = quotes if quotes is not None else load_quotes()
        self.ttl = ttl
        self._clock = clock
        self._rng = rng or random.Random()

    def pick(self) -> Quote:
        if not self.quotes:
            raise QuoteError("quote list is empty")
        return self._rng.choice(self.quotes)

    async def current(self) -> QuoteCacheEntry:
        """缓存未过期则直接返回，否则换一条。"""
        entry = await self._store.get(StorageKey.QUOTE_CACHE)
        if is_fresh(entry, self._clock(), self.ttl):
            return entry
        return await self.refresh()

    async def refresh(self) -> QuoteCacheEntry:
        picked = self.pick()
        entry = QuoteCacheEntry(quote=picked.quote, author=picked.author, fetched_at=self._clock())
        await self._store.set(StorageKey.QUOTE_CACHE, entry)
        logger.debug(f"新名言: {picked.author}")
        return entry
