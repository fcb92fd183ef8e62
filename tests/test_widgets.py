import random
from datetime import datetime, timezone

import pytest

from nexus.models import (
    BackgroundSettings,
    BackgroundType,
    ClockSettings,
    PomodoroSettings,
    PomodoroStats,
    QuoteCacheEntry,
    StorageKey,
)
from nexus.widgets.background import BackgroundService, css_background, overlay_opacity
from nexus.widgets.clock import WorldClock, format_clock, world_clock
from nexus.widgets.links import QuickLinks, favicon_url, normalize_url
from nexus.widgets.pomodoro import (
    PomodoroTracker,
    TimerMode,
    format_time,
    next_phase,
    record_session,
)
from nexus.widgets.quotes import Quote, QuoteError, QuoteService, is_fresh, load_quotes
from nexus.widgets.todos import TodoList


# ── Todos ─────────────────────────────────────────────

async def test_todos_prepend_and_toggle(store, clock):
    todos = TodoList(store, clock=clock)
    first = await todos.add("write report", category="work")
    second = await todos.add("  buy milk  ")

    items = await todos.items()
    assert [t.text for t in items] == ["buy milk", "write report"]
    assert items[1].category == "work"
    assert first.created_at == clock.now

    assert await todos.toggle(first.id) is True
    assert await todos.counts() == (1, 2)
    assert await todos.delete(second.id) is True
    assert await todos.counts() == (1, 1)


async def test_todos_ignore_blank_and_unknown_ids(store):
    todos = TodoList(store)
    assert await todos.add("   ") is None
    assert await todos.toggle("missing") is False
    assert await todos.delete("missing") is False
    assert await store.get(StorageKey.TODOS) == []


async def test_todos_reject_unknown_category(store):
    with pytest.raises(ValueError):
        await TodoList(store).add("task", category="someday")


# ── Quick links ───────────────────────────────────────

def test_normalize_url():
    assert normalize_url("example.com") == "https://example.com"
    assert normalize_url(" http://example.com ") == "http://example.com"


def test_favicon_url():
    assert favicon_url("https://docs.python.org/3/") == "https://www.google.com/s2/favicons?domain=docs.python.org&sz=64"
    assert favicon_url("https://") is None


async def test_links_start_with_defaults(store):
    links = await QuickLinks(store).items()
    assert [link.title for link in links] == ["Google", "GitHub", "YouTube"]


async def test_links_stay_dense(store):
    links = QuickLinks(store)
    added = await links.add("Docs", "docs.python.org")
    assert added.order == 3
    assert added.url == "https://docs.python.org"
    assert added.favicon is not None

    await links.delete("2")
    items = await links.move(added.id, "1")
    assert [link.title for link in items] == ["Docs", "Google", "YouTube"]
    assert [link.order for link in items] == [0, 1, 2]

    stored = await store.get(StorageKey.QUICK_LINKS)
    assert [link.order for link in stored] == [0, 1, 2]


async def test_links_update(store):
    links = QuickLinks(store)
    updated = await links.update("1", "Search", "duckduckgo.com")
    assert updated.title == "Search"
    assert updated.url == "https://duckduckgo.com"
    assert await links.update("missing", "x", "y.com") is None


async def test_links_reject_blank_fields(store):
    assert await QuickLinks(store).add("", "example.com") is None
    assert await QuickLinks(store).add("Title", "  ") is None


# ── Pomodoro ──────────────────────────────────────────

def test_record_session_same_day_increments():
    stats = PomodoroStats(total_sessions=10, today_sessions=2, last_session_date="2026-03-01")
    updated = record_session(stats, "2026-03-01")
    assert (updated.total_sessions, updated.today_sessions) == (11, 3)


def test_record_session_new_day_resets_to_one():
    stats = PomodoroStats(total_sessions=10, today_sessions=6, last_session_date="2026-03-01")
    updated = record_session(stats, "2026-03-02")
    assert (updated.total_sessions, updated.today_sessions) == (11, 1)
    assert updated.last_session_date == "2026-03-02"


def test_every_fourth_session_earns_long_break():
    settings = PomodoroSettings()
    assert next_phase(TimerMode.WORK, 0, settings) == (TimerMode.BREAK, 5 * 60, 1)
    assert next_phase(TimerMode.WORK, 3, settings) == (TimerMode.LONG_BREAK, 15 * 60, 4)
    assert next_phase(TimerMode.LONG_BREAK, 4, settings) == (TimerMode.WORK, 25 * 60, 4)


def test_format_time():
    assert format_time(25 * 60) == "25:00"
    assert format_time(61) == "01:01"
    assert format_time(-5) == "00:00"


async def test_tracker_persists_stats_and_sound(store):
    tracker = PomodoroTracker(store)
    await tracker.complete_work_session("2026-03-01")
    stats = await tracker.complete_work_session("2026-03-01")
    assert stats.today_sessions == 2
    assert await store.get(StorageKey.POMODORO_STATS) == stats

    settings = await tracker.toggle_sound()
    assert settings.sound_enabled is False


# ── Quotes ────────────────────────────────────────────

def test_bundled_quotes_load():
    quotes = load_quotes()
    assert quotes
    assert all(q.quote and q.author for q in quotes)


def test_is_fresh_boundary():
    entry = QuoteCacheEntry(quote="q", author="a", fetched_at=1000.0)
    assert is_fresh(entry, 1000.0 + 3599) is True
    assert is_fresh(entry, 1000.0 + 3600) is False
    assert is_fresh(QuoteCacheEntry(), 0.0) is False


async def test_quote_cached_for_an_hour(store, clock):
    quotes = [Quote(quote=f"quote {i}", author=f"author {i}") for i in range(5)]
    service = QuoteService(store, quotes, clock=clock, rng=random.Random(7))

    first = await service.current()
    clock.advance(30 * 60)
    assert await service.current() == first

    clock.advance(31 * 60)
    later = await service.current()
    assert later.fetched_at == clock.now


async def test_quote_empty_list_raises(store):
    with pytest.raises(QuoteError):
        await QuoteService(store, quotes=[]).current()


# ── Background ────────────────────────────────────────

async def test_photo_refreshed_once_per_day(store, clock):
    await store.set(StorageKey.BACKGROUND_SETTINGS, BackgroundSettings(type=BackgroundType.UNSPLASH))
    service = BackgroundService(store, clock=clock)

    first = await service.current_photo("2026-03-01")
    clock.advance(3600)
    assert await service.current_photo("2026-03-01") == first

    clock.advance(3600)
    second = await service.current_photo("2026-03-02")
    assert second != first

    settings = await store.get(StorageKey.BACKGROUND_SETTINGS)
    assert settings.last_unsplash_url == second
    assert settings.last_unsplash_date == "2026-03-02"


async def test_no_photo_for_gradient(store):
    assert await BackgroundService(store).current_photo("2026-03-01") is None


def test_css_background():
    assert css_background(BackgroundSettings(type=BackgroundType.SOLID, solid_color="#123456"))["backgroundColor"] == "#123456"
    gradient = css_background(BackgroundSettings(blur=4))
    assert gradient["backgroundImage"] == "linear-gradient(135deg, #0f0c29, #302b63)"
    assert gradient["filter"] == "blur(4px)"
    assert overlay_opacity(BackgroundSettings(opacity=70)) == pytest.approx(0.3)


# ── Clock ─────────────────────────────────────────────

NOON_UTC = datetime(2026, 3, 1, 13, 5, tzinfo=timezone.utc)


def test_format_clock_12_and_24_hour():
    assert format_clock(NOON_UTC, ClockSettings(use_24_hour=True)) == "13:05"
    assert format_clock(NOON_UTC, ClockSettings(use_24_hour=False)) == "1:05 PM"


def test_world_clock_skips_unknown_zones():
    rows = world_clock(NOON_UTC, ["Asia/Tokyo", "Mars/Olympus"], ClockSettings())
    assert rows == [{"timezone": "Asia/Tokyo", "time": "22:05", "date": "2026-03-01"}]


async def test_world_clock_add_dedup_and_remove(store):
    clock = WorldClock(store)
    assert await clock.zones() == ["local"]
    assert await clock.add(" Europe/Paris ") == ["local", "Europe/Paris"]
    assert await clock.add("Europe/Paris") == ["local", "Europe/Paris"]
    with pytest.raises(ValueError):
        await clock.add("Mars/Olympus")

    assert await clock.remove("Europe/Paris") is True
    assert await clock.remove("Europe/Paris") is False
    assert await store.get(StorageKey.TIMEZONES) == ["local"]


async def test_world_clock_rows_follow_clock_settings(store):
    clock = WorldClock(store)
    await clock.add("Asia/Tokyo")
    await store.set(StorageKey.CLOCK_SETTINGS, ClockSettings(use_24_hour=False))

    rows = await clock.rows(NOON_UTC)
    assert rows[1] == {"timezone": "Asia/Tokyo", "time": "10:05 PM", "date": "2026-03-01"}


# ── Pomodoro phase advance ────────────────────────────

async def test_advance_after_work_records_session(store):
    tracker = PomodoroTracker(store)
    result = await tracker.advance(TimerMode.WORK, 0, today="2026-03-01")
    assert result["mode"] == TimerMode.BREAK
    assert result["display"] == "05:00"
    assert result["sessions_completed"] == 1
    assert result["stats"].today_sessions == 1


async def test_advance_after_break_returns_to_work_without_counting(store):
    tracker = PomodoroTracker(store)
    await store.set(StorageKey.POMODORO_SETTINGS, PomodoroSettings(work_duration=50))
    result = await tracker.advance(TimerMode.BREAK, 2)
    assert (result["mode"], result["seconds"], result["sessions_completed"]) == (TimerMode.WORK, 50 * 60, 2)
    assert result["stats"] is None
    assert (await store.get(StorageKey.POMODORO_STATS)).total_sessions == 0


async def test_photo_refresh_notifies_listener_once(store, clock):
    calls = []

    async def on_update():
        calls.append(clock.now)

    await store.set(StorageKey.BACKGROUND_SETTINGS, BackgroundSettings(type=BackgroundType.UNSPLASH))
    service = BackgroundService(store, clock=clock, on_update=on_update)
    await service.current_photo("2026-03-01")
    await service.current_photo("2026-03-01")
    assert len(calls) == 1
