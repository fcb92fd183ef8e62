"""
Weather cache policy.

The cache is a flat map ``"{location}|{units}" -> WeatherCacheEntry`` so every
location/units combination expires independently.
"""

from typing import Dict, Optional

from nexus.models import Units, WeatherCacheEntry, WeatherData

WEATHER_CACHE_TTL = 10 * 60  # seconds

WeatherCache = Dict[str, WeatherCacheEntry]


def cache_key(location: str, units: Units | str) -> str:
    return f"{location}|{Units(units).value}"


def lookup(
    cache: WeatherCache,
    location: str,
    units: Units | str,
    now: float,
    ttl: float = WEATHER_CACHE_TTL,
) -> Optional[WeatherData]:
    """Return the cached payload on a hit, None on a miss."""
    units = Units(units)
    entry = cache.get(cache_key(location, units))
    if entry is None:
        return None
    if entry.units != units:
        return None
    if now - entry.timestamp >= ttl:
        return None
    return entry.data


def store(
    cache: WeatherCache,
    location: str,
    units: Units | str,
    payload: WeatherData,
    now: float,
) -> WeatherCache:
    """Upsert the entry for (location, units); returns a new map."""
    units = Units(units)
    updated = dict(cache)
    updated[cache_key(location, units)] = WeatherCacheEntry(data=payload, timestamp=now, units=units)
    return updated
