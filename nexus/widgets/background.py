"""
Background: daily photo refresh and the overlay derived from settings.
"""

import logging
import time
from datetime import date
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import quote

from nexus.models import BackgroundSettings, BackgroundType, StorageKey
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

PHOTO_SERVICE = "https://source.unsplash.com/1920x1080/"
DEFAULT_QUERY = "nature,landscape"


def photo_url(query: str, now: float) -> str:
    # The timestamp defeats the service's caching so each refresh is a new photo.
    return f"{PHOTO_SERVICE}?{quote(query or DEFAULT_QUERY, safe=',')}&t={int(now * 1000)}"


def needs_new_photo(settings: BackgroundSettings, today: str) -> bool:
    return settings.last_unsplash_date != today or not settings.last_unsplash_url


def overlay_opacity(settings: BackgroundSettings) -> float:
    """Darkening overlay: opacity 100 means none, 0 means fully covered."""
    return (100 - settings.opacity) / 100


def css_background(settings: BackgroundSettings, photo: Optional[str] = None) -> dict:
    style = {"backgroundSize": "cover", "backgroundPosition": "center"}
    if settings.blur:
        style["filter"] = f"blur({settings.blur}px)"
    if settings.type == BackgroundType.SOLID:
        style["backgroundColor"] = settings.solid_color
    elif settings.type == BackgroundType.UNSPLASH and photo:
        style["backgroundImage"] = f"url({photo})"
    else:
        start, end = settings.gradient_start, settings.gradient_end
        angle = settings.gradient_angle if settings.type == BackgroundType.GRADIENT else 135
        style["backgroundImage"] = f"linear-gradient({angle}deg, {start}, {end})"
    return style


class BackgroundService:

    def __init__(
        self,
        store: TypedStore,
        clock: Callable[[], float] = time.time,
        on_update: Optional[Callable[[], Awaitable[Any]]] = None,
    ):
        self._store = store
        self._clock = clock
        # awaited after a new photo is persisted
        self._on_update = on_update

    async def current_photo(self, today: Optional[str] = None) -> Optional[str]:
        """
        Photo URL for a photo background, fetching a new one at most once per
        calendar day. Returns None for solid and gradient backgrounds.
        """
        settings: BackgroundSettings = await self._store.get(StorageKey.BACKGROUND_SETTINGS)
        if settings.type != BackgroundType.UNSPLASH:
            return None

        today = today or date.today().isoformat()
        if not needs_new_photo(settings, today):
            return settings.last_unsplash_url

        url = photo_url(settings.unsplash_query, self._clock())
        updated = settings.model_copy(update={"last_unsplash_url": url, "last_unsplash_date": today})
        await self._store.set(StorageKey.BACKGROUND_SETTINGS, updated)
        logger.info(f"Background photo refreshed for {today}")
        if self._on_update is not None:
            await self._on_update()
        return url
