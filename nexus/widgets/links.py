"""
Quick links: add, edit, delete and drag-and-drop reorder.

Every mutation goes through the dense reindex so orders stay 0..n-1.
"""

import logging
import uuid
from typing import List, Optional
from urllib.parse import urlencode, urlparse

from nexus import ordering
from nexus.models import QuickLink, StorageKey
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

FAVICON_SERVICE = "https://www.google.com/s2/favicons"


def normalize_url(url: str) -> str:
    url = url.strip()
    if not url.startswith(("http://", "https://")):
        url = "https://" + url
    return url


def favicon_url(url: str) -> Optional[str]:
    host = urlparse(url).hostname
    if not host:
        return None
    return f"{FAVICON_SERVICE}?{urlencode({'domain': host, 'sz': 64})}"


class QuickLinks:

    def __init__(self, store: TypedStore):
        self._store = store

    async def items(self) -> List[QuickLink]:
        links = await self._store.get(StorageKey.QUICK_LINKS)
        return ordering.ordered(links)

    async def _save(self, links: List[QuickLink]) -> List[QuickLink]:
        await self._store.set(StorageKey.QUICK_LINKS, links)
        return links

    async def add(self, title: str, url: str) -> Optional[QuickLink]:
        title, url = title.strip(), url.strip()
        if not title or not url:
            return None
        url = normalize_url(url)
        link = QuickLink(id=uuid.uuid4().hex, title=title, url=url, favicon=favicon_url(url))
        links = ordering.insert_item(await self.items(), link)
        await self._save(links)
        return links[-1]

    async def update(self, link_id: str, title: str, url: str) -> Optional[QuickLink]:
        url = normalize_url(url)
        updated = None
        links = []
        for link in await self.items():
            if link.id == link_id:
                link = link.model_copy(update={"title": title.strip(), "url": url, "favicon": favicon_url(url)})
                updated = link
            links.append(link)
        if updated is not None:
            await self._save(links)
        return updated

    async def delete(self, link_id: str) -> bool:
        links = await self.items()
        remaining = ordering.remove_item(links, link_id)
        if len(remaining) == len(links):
            return False
        await self._save(remaining)
        return True

    async def move(self, dragged_id: str, target_id: str) -> List[QuickLink]:
        links = await self.items()
        moved = ordering.move_item(links, dragged_id, target_id)
        if moved != links:
            await self._save(moved)
        return moved
