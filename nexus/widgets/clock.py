"""
Clock formatting for the local zone and any configured IANA time zones.
"""

import logging
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from nexus.models import ClockSettings, StorageKey
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

LOCAL = "local"


def localize(now: datetime, timezone: str) -> Optional[datetime]:
    if timezone == LOCAL:
        return now.astimezone()
    try:
        return now.astimezone(ZoneInfo(timezone))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown time zone {timezone!r}")
        return None


def format_clock(now: datetime, settings: ClockSettings) -> str:
    if settings.use_24_hour:
        return now.strftime("%H:%M")
    return now.strftime("%I:%M %p").lstrip("0")


def world_clock(now: datetime, timezones: List[str], settings: ClockSettings) -> List[dict]:
    """One row per configured zone; unknown zones are skipped."""
    rows = []
    for tz in timezones:
        local = localize(now, tz)
        if local is None:
            continue
        rows.append({"timezone": tz, "time": format_clock(local, settings), "date": local.date().isoformat()})
    return rows


def is_known_zone(timezone: str) -> bool:
    if timezone == LOCAL:
        return True
    try:
        ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


class WorldClock:
    """The persisted list of extra time zones shown beside the local clock."""

    def __init__(self, store: TypedStore):
        self._store = store

    async def zones(self) -> List[str]:
        return await self._store.get(StorageKey.TIMEZONES)

    async def add(self, timezone: str) -> List[str]:
        """Append a zone; a zone already in the list is ignored."""
        timezone = timezone.strip()
        if not is_known_zone(timezone):
            raise ValueError(f"unknown time zone: {timezone!r}")
        zones = await self.zones()
        if timezone in zones:
            return zones
        zones = [*zones, timezone]
        await self._store.set(StorageKey.TIMEZONES, zones)
        return zones

    async def remove(self, timezone: str) -> bool:
        zones = await self.zones()
        remaining = [tz for tz in zones if tz != timezone]
        if len(remaining) == len(zones):
            return False
        await self._store.set(StorageKey.TIMEZONES, remaining)
        return True

    async def rows(self, now: Optional[datetime] = None) -> List[dict]:
        settings = await self._store.get(StorageKey.CLOCK_SETTINGS)
        now = now or datetime.now().astimezone()
        return world_clock(now, await self.zones(), settings)
