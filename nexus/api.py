"""
FastAPI 路由：向展现层暴露存储、设置和各组件操作。
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, HTTPException
from pydantic import BaseModel, Field, ValidationError

from nexus.models import (
    BackgroundSettings,
    ClockSettings,
    FontSettings,
    StorageKey,
    Theme,
    Units,
)
from nexus import ordering
from nexus.contrast import use_light_text
from nexus.widgets.background import css_background, overlay_opacity
from nexus.widgets.pomodoro import TimerMode

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# 这些全局引用会在 main.py 中注入
_store = None
_settings = None
_weather = None
_quotes = None
_todos = None
_links = None
_notes = None
_pomodoro = None
_background = None
_world_clock = None


def init_api(store, settings, weather, quotes, todos, links, notes, pomodoro, background, world_clock):
    """注入全局依赖（由 main.py 调用）。"""
    global _store, _settings, _weather, _quotes, _todos, _links, _notes, _pomodoro, _background, _world_clock
    _store = store
    _settings = settings
    _weather = weather
    _quotes = quotes
    _todos = todos
    _links = links
    _notes = notes
    _pomodoro = pomodoro
    _background = background
    _world_clock = world_clock


def _key(key: str) -> StorageKey:
    try:
        return StorageKey(key)
    except ValueError:
        raise HTTPException(404, f"未知的存储 key '{key}'")


def _dump(key: StorageKey, value: Any) -> Any:
    return _store.dump(key, value)


# ── 存储 ──────────────────────────────────────────────

@router.get("/storage")
async def get_all_storage() -> dict[str, Any]:
    """获取完整快照（持久化值覆盖默认值）。"""
    snapshot = await _store.get_all()
    return {key.value: _dump(key, value) for key, value in snapshot.items()}


@router.get("/storage/{key}")
async def get_storage(key: str) -> Any:
    storage_key = _key(key)
    return _dump(storage_key, await _store.get(storage_key))


@router.put("/storage/{key}")
async def put_storage(key: str, value: Any = Body(...)) -> Any:
    storage_key = _key(key)
    try:
        await _store.set(storage_key, value)
    except ValidationError as e:
        raise HTTPException(422, e.errors(include_url=False, include_context=False))
    # 设置类 key 需要同步到设置聚合器
    await _settings.reload(storage_key)
    return _dump(storage_key, await _store.get(storage_key))


@router.delete("/storage")
async def clear_storage() -> dict:
    await _store.clear_all()
    await _settings.reload()
    return {"message": "已清除所有数据"}


# ── 设置 ──────────────────────────────────────────────

@router.get("/settings")
async def get_settings() -> dict[str, Any]:
    snapshot = _settings.snapshot()
    data = snapshot.model_dump(mode="json", by_alias=True)
    data["document"] = _settings.document.to_dict()
    return data


class ThemeUpdate(BaseModel):
    theme: Theme


@router.put("/settings/theme")
async def put_theme(body: ThemeUpdate) -> dict[str, Any]:
    await _settings.set_theme(body.theme)
    return await get_settings()


@router.put("/settings/fonts")
async def put_fonts(body: FontSettings) -> dict[str, Any]:
    await _settings.set_font_settings(body)
    return await get_settings()


@router.put("/settings/background")
async def put_background(body: BackgroundSettings) -> dict[str, Any]:
    await _settings.set_background_settings(body)
    return await get_settings()


@router.put("/settings/clock")
async def put_clock(body: ClockSettings) -> dict[str, Any]:
    await _settings.set_clock_settings(body)
    return await get_settings()


class DragUpdate(BaseModel):
    enabled: bool


@router.put("/settings/drag")
async def put_drag(body: DragUpdate) -> dict[str, Any]:
    await _settings.set_drag_enabled(body.enabled)
    return await get_settings()


# ── 组件布局 ──────────────────────────────────────────

class SwapRequest(BaseModel):
    a: str
    b: str


async def _current_layout():
    binding = _settings.bindings[StorageKey.WIDGET_LAYOUT]
    return await binding.reload()


@router.get("/layout")
async def get_layout(visible_only: bool = True) -> list[dict[str, Any]]:
    """按显示顺序返回组件列表。"""
    layout = await _current_layout()
    return [
        {"widget": key, "visible": slot.visible, "order": slot.order}
        for key, slot in ordering.sorted_widgets(layout, visible_only=visible_only)
    ]


@router.post("/layout/swap")
async def swap_layout(body: SwapRequest) -> Any:
    layout = await _current_layout()
    try:
        layout = ordering.swap_widgets(layout, body.a, body.b)
    except ordering.LayoutError as e:
        raise HTTPException(400, str(e))
    await _settings.set_widget_layout(layout)
    return _dump(StorageKey.WIDGET_LAYOUT, layout)


@router.post("/layout/{widget}/toggle")
async def toggle_layout(widget: str) -> Any:
    layout = await _current_layout()
    try:
        layout = ordering.toggle_widget(layout, widget)
    except ordering.LayoutError as e:
        raise HTTPException(400, str(e))
    await _settings.set_widget_layout(layout)
    return _dump(StorageKey.WIDGET_LAYOUT, layout)


# ── 快捷链接 ──────────────────────────────────────────

class LinkBody(BaseModel):
    title: str
    url: str


class MoveRequest(BaseModel):
    dragged_id: str
    target_id: str


@router.get("/links")
async def list_links() -> Any:
    return _dump(StorageKey.QUICK_LINKS, await _links.items())


@router.post("/links", status_code=201)
async def add_link(body: LinkBody) -> Any:
    link = await _links.add(body.title, body.url)
    if link is None:
        raise HTTPException(400, "标题和 URL 不能为空")
    return link.model_dump(mode="json", by_alias=True)


@router.put("/links/{link_id}")
async def update_link(link_id: str, body: LinkBody) -> Any:
    link = await _links.update(link_id, body.title, body.url)
    if link is None:
        raise HTTPException(404, f"链接 '{link_id}' 不存在")
    return link.model_dump(mode="json", by_alias=True)


@router.delete("/links/{link_id}")
async def delete_link(link_id: str) -> dict:
    if not await _links.delete(link_id):
        raise HTTPException(404, f"链接 '{link_id}' 不存在")
    return {"message": "已删除", "id": link_id}


@router.post("/links/move")
async def move_link(body: MoveRequest) -> Any:
    return _dump(StorageKey.QUICK_LINKS, await _links.move(body.dragged_id, body.target_id))


# ── 待办 ──────────────────────────────────────────────

class TodoBody(BaseModel):
    text: str
    category: Optional[str] = None


@router.get("/todos/counts")
async def todo_counts() -> dict:
    completed, total = await _todos.counts()
    return {"completed": completed, "total": total}


@router.get("/todos")
async def list_todos() -> Any:
    return _dump(StorageKey.TODOS, await _todos.items())


@router.post("/todos", status_code=201)
async def add_todo(body: TodoBody) -> Any:
    try:
        todo = await _todos.add(body.text, body.category)
    except ValueError as e:
        raise HTTPException(400, str(e))
    if todo is None:
        raise HTTPException(400, "待办内容不能为空")
    return todo.model_dump(mode="json", by_alias=True)


@router.post("/todos/{todo_id}/toggle")
async def toggle_todo(todo_id: str) -> dict:
    if not await _todos.toggle(todo_id):
        raise HTTPException(404, f"待办 '{todo_id}' 不存在")
    return {"message": "已更新", "id": todo_id}


@router.delete("/todos/{todo_id}")
async def delete_todo(todo_id: str) -> dict:
    if not await _todos.delete(todo_id):
        raise HTTPException(404, f"待办 '{todo_id}' 不存在")
    return {"message": "已删除", "id": todo_id}


# ── 笔记 ──────────────────────────────────────────────

class NotesBody(BaseModel):
    text: str


@router.get("/notes")
async def get_notes() -> dict:
    if not _notes.dirty:
        await _notes.load()
    return {"text": _notes.text, "saving": _notes.saving, "dirty": _notes.dirty}


@router.put("/notes")
async def put_notes(body: NotesBody) -> dict:
    """本地立即更新，持久化写入经过防抖。"""
    _notes.edit(body.text)
    return {"text": _notes.text, "dirty": _notes.dirty}


# ── 番茄钟 ────────────────────────────────────────────

@router.post("/pomodoro/complete")
async def complete_pomodoro() -> Any:
    stats = await _pomodoro.complete_work_session()
    return _dump(StorageKey.POMODORO_STATS, stats)


class AdvanceRequest(BaseModel):
    mode: TimerMode
    sessions_completed: int = Field(default=0, ge=0)


@router.post("/pomodoro/advance")
async def advance_pomodoro(body: AdvanceRequest) -> dict[str, Any]:
    """计时结束：工作阶段计入统计，并返回下一阶段。"""
    result = await _pomodoro.advance(body.mode, body.sessions_completed)
    stats = result["stats"]
    return {
        "mode": result["mode"].value,
        "seconds": result["seconds"],
        "display": result["display"],
        "sessionsCompleted": result["sessions_completed"],
        "stats": _dump(StorageKey.POMODORO_STATS, stats) if stats is not None else None,
    }


@router.post("/pomodoro/sound")
async def toggle_pomodoro_sound() -> Any:
    settings = await _pomodoro.toggle_sound()
    return _dump(StorageKey.POMODORO_SETTINGS, settings)


# ── 名言 ──────────────────────────────────────────────

@router.get("/quote")
async def get_quote() -> Any:
    entry = await _quotes.current()
    return _dump(StorageKey.QUOTE_CACHE, entry)


@router.post("/quote/refresh")
async def refresh_quote() -> Any:
    entry = await _quotes.refresh()
    return _dump(StorageKey.QUOTE_CACHE, entry)


# ── 天气 ──────────────────────────────────────────────

class LocationBody(BaseModel):
    location: str


class UnitsBody(BaseModel):
    units: Units


class ApiKeyBody(BaseModel):
    api_key: str


@router.get("/weather")
async def get_weather(refresh: bool = False) -> dict[str, Any]:
    report = await _weather.current(force=refresh)
    return report.model_dump(mode="json", by_alias=True)


@router.post("/weather/locations")
async def add_weather_location(body: LocationBody) -> Any:
    settings = await _weather.add_location(body.location)
    return _dump(StorageKey.WEATHER_SETTINGS, settings)


@router.delete("/weather/locations/{index}")
async def remove_weather_location(index: int) -> Any:
    try:
        settings = await _weather.remove_location(index)
    except IndexError as e:
        raise HTTPException(404, str(e))
    return _dump(StorageKey.WEATHER_SETTINGS, settings)


@router.post("/weather/locations/{index}/select")
async def select_weather_location(index: int) -> Any:
    try:
        settings = await _weather.select_location(index)
    except IndexError as e:
        raise HTTPException(404, str(e))
    return _dump(StorageKey.WEATHER_SETTINGS, settings)


@router.put("/weather/units")
async def put_weather_units(body: UnitsBody) -> Any:
    return _dump(StorageKey.WEATHER_SETTINGS, await _weather.set_units(body.units))


@router.put("/weather/api-key")
async def put_weather_api_key(body: ApiKeyBody) -> Any:
    return _dump(StorageKey.WEATHER_SETTINGS, await _weather.set_api_key(body.api_key))


# ── 背景 ──────────────────────────────────────────────

@router.get("/background")
async def get_background() -> dict[str, Any]:
    photo = await _background.current_photo()
    settings = await _store.get(StorageKey.BACKGROUND_SETTINGS)
    return {
        "photoUrl": photo,
        "style": css_background(settings, photo),
        "overlayOpacity": overlay_opacity(settings),
        "useLightText": use_light_text(settings),
    }


# ── 时钟 ──────────────────────────────────────────────

class TimezoneBody(BaseModel):
    timezone: str


@router.get("/clock")
async def get_clock() -> dict[str, Any]:
    return {"zones": await _world_clock.rows()}


@router.post("/clock/timezones")
async def add_timezone(body: TimezoneBody) -> list[str]:
    try:
        return await _world_clock.add(body.timezone)
    except ValueError as e:
        raise HTTPException(400, str(e))


@router.delete("/clock/timezones/{timezone:path}")
async def remove_timezone(timezone: str) -> dict:
    if not await _world_clock.remove(timezone):
        raise HTTPException(404, f"时区 '{timezone}' 不在列表中")
    return {"message": "已删除", "timezone": timezone}
