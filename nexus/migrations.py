"""
Schema migrations for persisted records.

Each migration is a pure function ``raw -> (record, changed)`` applied to the
JSON payload right after it is read and before validation. The store persists
the upgraded payload when ``changed`` is true.
"""

from typing import Any, Callable, Dict, Tuple

from nexus.models import StorageKey

Migration = Callable[[Any], Tuple[Any, bool]]


def migrate_weather_settings(raw: Any) -> Tuple[Any, bool]:
    """Upgrade the single-``location`` weather record to the ``locations`` list."""
    if not isinstance(raw, dict) or "locations" in raw:
        return raw, False

    record = {k: v for k, v in raw.items() if k != "location"}
    legacy = raw.get("location")
    if isinstance(legacy, str) and legacy.strip():
        record["locations"] = [legacy]
    else:
        record["locations"] = []
    record["currentLocationIndex"] = 0
    return record, True


MIGRATIONS: Dict[StorageKey, Migration] = {
    StorageKey.WEATHER_SETTINGS: migrate_weather_settings,
}


def apply_migrations(key: StorageKey, raw: Any) -> Tuple[Any, bool]:
    migration = MIGRATIONS.get(key)
    if migration is None:
        return raw, False
    return migration(raw)
