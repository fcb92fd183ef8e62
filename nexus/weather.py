"""
天气：OpenWeatherMap 数据拉取，以及带缓存策略的天气服务和位置管理。
拉取失败时返回错误状态，不自动重试。
"""

import logging
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

import httpx
from jsonpath_ng.ext import parse as jp_parse
from pydantic import BaseModel

from nexus import weather_cache
from nexus.config_loader import WeatherConfig
from nexus.models import ForecastDay, StorageKey, Units, WeatherData, WeatherSettings
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

FETCH_ERROR_MESSAGE = "Failed to load weather. Check your API key and location."

# 字段名 -> JSONPath
_CURRENT_FIELDS = {
    "temp": "$.main.temp",
    "description": "$.weather[0].description",
    "icon": "$.weather[0].icon",
    "humidity": "$.main.humidity",
    "wind_speed": "$.wind.speed",
    "city": "$.name",
}

_FORECAST_FIELDS = {
    "dt": "$.dt",
    "temp": "$.main.temp",
    "icon": "$.weather[0].icon",
}


class WeatherFetchError(Exception):
    """天气数据拉取失败。"""


def _extract(data: Any, fields: dict[str, str]) -> dict[str, Any]:
    result = {}
    for name, expr in fields.items():
        matches = jp_parse(expr).find(data)
        result[name] = matches[0].value if matches else None
    return result


def parse_current(data: dict) -> dict[str, Any]:
    """解析当前天气响应。缺少字段时抛出 WeatherFetchError。"""
    values = _extract(data, _CURRENT_FIELDS)
    missing = [k for k, v in values.items() if v is None]
    if missing:
        raise WeatherFetchError(f"天气响应缺少字段: {missing}")
    return {
        "temp": round(float(values["temp"])),
        "description": str(values["description"]),
        "icon": str(values["icon"]),
        "humidity": int(values["humidity"]),
        "wind_speed": round(float(values["wind_speed"])),
        "city": str(values["city"]),
    }


def parse_forecast(data: dict, days: int = 5) -> list[ForecastDay]:
    """每 8 条（3 小时一条）取一条，最多 days 天。"""
    entries = data.get("list") or []
    forecast = []
    for entry in entries[::8][:days]:
        values = _extract(entry, _FORECAST_FIELDS)
        if values["dt"] is None or values["temp"] is None:
            continue
        forecast.append(ForecastDay(
            date=datetime.fromtimestamp(values["dt"]).strftime("%a"),
            temp=round(float(values["temp"])),
            icon=str(values["icon"] or ""),
        ))
    return forecast


class OpenWeatherProvider:
    """当前天气 + 5 天预报。"""

    def __init__(self, config: WeatherConfig | None = None, client: httpx.AsyncClient | None = None):
        self.config = config or WeatherConfig()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def fetch(self, location: str, api_key: str, units: Units | str) -> WeatherData:
        params = {"q": location, "units": Units(units).value, "appid": api_key}
        client = self._get_client()

        try:
            current_resp = await client.get(f"{self.config.base_url}/weather", params=params)
        except httpx.HTTPError as e:
            raise WeatherFetchError(f"请求天气失败: {e}") from e
        if current_resp.status_code != 200:
            raise WeatherFetchError(f"天气接口返回 {current_resp.status_code}")

        try:
            current = parse_current(current_resp.json())
        except ValueError as e:
            raise WeatherFetchError(f"天气响应无法解析: {e}") from e

        # 预报失败不影响当前天气
        forecast: list[ForecastDay] = []
        try:
            forecast_resp = await client.get(f"{self.config.base_url}/forecast", params=params)
            if forecast_resp.status_code == 200:
                forecast = parse_forecast(forecast_resp.json())
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"[{location}] 预报拉取失败: {e}")

        return WeatherData(**current, forecast=forecast)

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


# ── 服务层 ────────────────────────────────────────────

class WeatherStatus(str, Enum):
    READY = "ready"
    ERROR = "error"
    NEEDS_SETUP = "needs_setup"


class WeatherReport(BaseModel):
    status: WeatherStatus
    location: Optional[str] = None
    units: Units = Units.METRIC
    data: Optional[WeatherData] = None
    from_cache: bool = False
    error: Optional[str] = None


class WeatherService:
    """读取天气设置，先查缓存，未命中时拉取并写回缓存。"""

    def __init__(
        self,
        store: TypedStore,
        provider: OpenWeatherProvider,
        ttl: float = weather_cache.WEATHER_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ):
        self._store = store
        self._provider = provider
        self.ttl = ttl
        self._clock = clock

    async def current(self, force: bool = False) -> WeatherReport:
        settings: WeatherSettings = await self._store.get(StorageKey.WEATHER_SETTINGS)
        location = settings.current_location
        if not settings.api_key or not location:
            return WeatherReport(status=WeatherStatus.NEEDS_SETUP, units=settings.units)

        now = self._clock()
        if not force:
            cache = await self._store.get(StorageKey.WEATHER_CACHE)
            hit = weather_cache.lookup(cache, location, settings.units, now, ttl=self.ttl)
            if hit is not None:
                logger.debug(f"[{location}] 命中天气缓存")
                return WeatherReport(
                    status=WeatherStatus.READY, location=location, units=settings.units,
                    data=hit, from_cache=True,
                )

        try:
            data = await self._provider.fetch(location, settings.api_key, settings.units)
        except WeatherFetchError as e:
            logger.error(f"[{location}] 天气拉取失败: {e}")
            return WeatherReport(
                status=WeatherStatus.ERROR, location=location, units=settings.units,
                error=FETCH_ERROR_MESSAGE,
            )

        # 写回前重新读取，尽量不覆盖其他组合的新条目
        cache = await self._store.get(StorageKey.WEATHER_CACHE)
        cache = weather_cache.store(cache, location, settings.units, data, now)
        await self._store.set(StorageKey.WEATHER_CACHE, cache)
        logger.info(f"[{location}] 天气已更新 ({settings.units.value})")
        return WeatherReport(status=WeatherStatus.READY, location=location, units=settings.units, data=data)

    # ── 设置 ──────────────────────────────────────────

    async def _update(self, **changes) -> WeatherSettings:
        settings: WeatherSettings = await self._store.get(StorageKey.WEATHER_SETTINGS)
        updated = WeatherSettings.model_validate({**settings.model_dump(), **changes})
        await self._store.set(StorageKey.WEATHER_SETTINGS, updated)
        return updated

    async def set_api_key(self, api_key: str) -> WeatherSettings:
        return await self._update(api_key=api_key.strip())

    async def set_units(self, units: Units | str) -> WeatherSettings:
        return await self._update(units=Units(units))

    async def add_location(self, location: str) -> WeatherSettings:
        """追加位置并切换到该位置；空白或重复的位置被忽略。"""
        settings: WeatherSettings = await self._store.get(StorageKey.WEATHER_SETTINGS)
        location = location.strip()
        if not location or location in settings.locations:
            return settings
        locations = [*settings.locations, location]
        return await self._update(locations=locations, current_location_index=len(locations) - 1)

    async def remove_location(self, index: int) -> WeatherSettings:
        settings: WeatherSettings = await self._store.get(StorageKey.WEATHER_SETTINGS)
        if not 0 <= index < len(settings.locations):
            raise IndexError(f"location index {index} out of range")
        locations = [loc for i, loc in enumerate(settings.locations) if i != index]
        current = settings.current_location_index
        if index < current:
            current -= 1
        elif index == current:
            current = min(current, max(len(locations) - 1, 0))
        return await self._update(locations=locations, current_location_index=current)

    async def select_location(self, index: int) -> WeatherSettings:
        settings: WeatherSettings = await self._store.get(StorageKey.WEATHER_SETTINGS)
        if not 0 <= index < len(settings.locations):
            raise IndexError(f"location index {index} out of range")
        return await self._update(current_location_index=index)
