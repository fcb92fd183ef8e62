"""
类型化存储：定义每个 key 的 schema 和默认值，
在后端之上提供带默认值回退、迁移和读修复的 get / set / get_all / clear_all。
"""

import logging
from typing import Any, Callable, Dict, List

from pydantic import TypeAdapter, ValidationError

from nexus.backends import KeyValueBackend
from nexus.migrations import apply_migrations
from nexus.models import (
    BackgroundSettings,
    ClockSettings,
    FontSettings,
    PomodoroSettings,
    PomodoroStats,
    QuickLink,
    QuoteCacheEntry,
    StorageKey,
    Theme,
    Todo,
    WeatherCacheEntry,
    WeatherSettings,
    WidgetLayout,
)

logger = logging.getLogger(__name__)


class RecordSchema:
    """单个 key 的类型适配器和默认值工厂。"""

    def __init__(self, type_: Any, default: Callable[[], Any]):
        self.adapter = TypeAdapter(type_)
        self.default = default

    def validate(self, raw: Any) -> Any:
        return self.adapter.validate_python(raw)

    def dump(self, value: Any) -> Any:
        return self.adapter.dump_python(value, mode="json", by_alias=True)


def _default_quick_links() -> List[QuickLink]:
    return [
        QuickLink(id="1", title="Google", url="https://google.com", order=0),
        QuickLink(id="2", title="GitHub", url="https://github.com", order=1),
        QuickLink(id="3", title="YouTube", url="https://youtube.com", order=2),
    ]


SCHEMA: Dict[StorageKey, RecordSchema] = {
    StorageKey.TODOS: RecordSchema(List[Todo], list),
    StorageKey.QUICK_LINKS: RecordSchema(List[QuickLink], _default_quick_links),
    StorageKey.NOTES: RecordSchema(str, str),
    StorageKey.POMODORO_SETTINGS: RecordSchema(PomodoroSettings, PomodoroSettings),
    StorageKey.POMODORO_STATS: RecordSchema(PomodoroStats, PomodoroStats),
    StorageKey.WIDGET_LAYOUT: RecordSchema(WidgetLayout, WidgetLayout),
    StorageKey.BACKGROUND_SETTINGS: RecordSchema(BackgroundSettings, BackgroundSettings),
    StorageKey.FONT_SETTINGS: RecordSchema(FontSettings, FontSettings),
    StorageKey.WEATHER_SETTINGS: RecordSchema(WeatherSettings, WeatherSettings),
    StorageKey.WEATHER_CACHE: RecordSchema(Dict[str, WeatherCacheEntry], dict),
    StorageKey.TIMEZONES: RecordSchema(List[str], lambda: ["local"]),
    StorageKey.THEME: RecordSchema(Theme, lambda: Theme.DARK),
    StorageKey.CLOCK_SETTINGS: RecordSchema(ClockSettings, ClockSettings),
    StorageKey.DRAG_ENABLED: RecordSchema(bool, lambda: True),
    StorageKey.QUOTE_CACHE: RecordSchema(QuoteCacheEntry, QuoteCacheEntry),
}


def default_for(key: StorageKey | str) -> Any:
    """返回 key 的默认值（每次调用都是新对象）。"""
    return SCHEMA[StorageKey(key)].default()


class TypedStore:
    """
    schema 感知的存储层。
    不在内存中缓存：每次读取都直接访问后端。
    """

    def __init__(self, backend: KeyValueBackend):
        self.backend = backend

    # ── 读取 ──────────────────────────────────────────

    async def get(self, key: StorageKey | str) -> Any:
        """读取 key 的值；不存在或损坏时返回默认值，从不抛出。"""
        key = StorageKey(key)
        try:
            stored = await self.backend.get([key.value])
        except Exception as e:
            logger.warning(f"[{key.value}] 后端读取失败，使用默认值: {e}")
            return default_for(key)

        if key.value not in stored:
            return default_for(key)
        return await self._decode(key, stored[key.value])

    async def get_all(self) -> Dict[StorageKey, Any]:
        """返回完整快照：已持久化的值覆盖默认值。"""
        try:
            stored = await self.backend.get(None)
        except Exception as e:
            logger.warning(f"后端读取失败，返回全部默认值: {e}")
            stored = {}

        snapshot = {}
        for key in StorageKey:
            if key.value in stored:
                snapshot[key] = await self._decode(key, stored[key.value])
            else:
                snapshot[key] = default_for(key)
        return snapshot

    async def _decode(self, key: StorageKey, raw: Any) -> Any:
        raw, migrated = apply_migrations(key, raw)
        try:
            value = SCHEMA[key].validate(raw)
        except ValidationError as e:
            logger.warning(f"[{key.value}] 存储值无效，使用默认值: {e.error_count()} 个错误")
            return default_for(key)

        if migrated:
            try:
                await self.backend.set({key.value: SCHEMA[key].dump(value)})
                logger.info(f"[{key.value}] 旧格式记录已迁移")
            except Exception as e:
                logger.error(f"[{key.value}] 迁移结果写回失败: {e}")
        return value

    # ── 写入 ──────────────────────────────────────────

    def validate(self, key: StorageKey | str, value: Any) -> Any:
        """按 schema 校验值，失败时抛出 ValidationError。"""
        return SCHEMA[StorageKey(key)].validate(value)

    def dump(self, key: StorageKey | str, value: Any) -> Any:
        """转换为可 JSON 序列化的持久化格式。"""
        return SCHEMA[StorageKey(key)].dump(value)

    async def set(self, key: StorageKey | str, value: Any) -> None:
        """整体覆盖写入 key 的值。"""
        key = StorageKey(key)
        value = self.validate(key, value)
        await self.backend.set({key.value: self.dump(key, value)})
        logger.debug(f"[{key.value}] 已保存")

    # ── 管理 ──────────────────────────────────────────

    async def clear_all(self) -> None:
        """删除所有持久化数据，之后的读取都回到默认值。"""
        await self.backend.clear()
        logger.info("所有存储数据已清除")
