"""
Pomodoro: phase transitions and daily session statistics.
"""

from datetime import date
from enum import Enum
from typing import Optional, Tuple

from nexus.models import PomodoroSettings, PomodoroStats, StorageKey
from nexus.store import TypedStore


class TimerMode(str, Enum):
    WORK = "work"
    BREAK = "break"
    LONG_BREAK = "longBreak"


def phase_seconds(mode: TimerMode, settings: PomodoroSettings) -> int:
    minutes = {
        TimerMode.WORK: settings.work_duration,
        TimerMode.BREAK: settings.break_duration,
        TimerMode.LONG_BREAK: settings.long_break_duration,
    }[mode]
    return minutes * 60


def next_phase(mode: TimerMode, sessions_completed: int, settings: PomodoroSettings) -> Tuple[TimerMode, int, int]:
    """
    Phase that follows ``mode`` finishing.

    Returns (next mode, its length in seconds, sessions completed so far).
    Every ``sessions_until_long_break``-th work session earns a long break.
    """
    if mode != TimerMode.WORK:
        return TimerMode.WORK, phase_seconds(TimerMode.WORK, settings), sessions_completed

    sessions_completed += 1
    if sessions_completed % settings.sessions_until_long_break == 0:
        following = TimerMode.LONG_BREAK
    else:
        following = TimerMode.BREAK
    return following, phase_seconds(following, settings), sessions_completed


def record_session(stats: PomodoroStats, today: str) -> PomodoroStats:
    if stats.last_session_date == today:
        today_sessions = stats.today_sessions + 1
    else:
        today_sessions = 1
    return PomodoroStats(
        total_sessions=stats.total_sessions + 1,
        today_sessions=today_sessions,
        last_session_date=today,
    )


def format_time(seconds: int) -> str:
    minutes, secs = divmod(max(seconds, 0), 60)
    return f"{minutes:02d}:{secs:02d}"


class PomodoroTracker:

    def __init__(self, store: TypedStore):
        self._store = store

    async def complete_work_session(self, today: Optional[str] = None) -> PomodoroStats:
        today = today or date.today().isoformat()
        stats = await self._store.get(StorageKey.POMODORO_STATS)
        updated = record_session(stats, today)
        await self._store.set(StorageKey.POMODORO_STATS, updated)
        return updated

    async def advance(self, mode: TimerMode, sessions_completed: int, today: Optional[str] = None) -> dict:
        """
        Timer reached zero in ``mode``: count a finished work session, then
        report the phase to start next.
        """
        settings = await self._store.get(StorageKey.POMODORO_SETTINGS)
        stats = None
        if mode == TimerMode.WORK:
            stats = await self.complete_work_session(today)
        following, seconds, sessions_completed = next_phase(mode, sessions_completed, settings)
        return {
            "mode": following,
            "seconds": seconds,
            "display": format_time(seconds),
            "sessions_completed": sessions_completed,
            "stats": stats,
        }

    async def toggle_sound(self) -> PomodoroSettings:
        settings = await self._store.get(StorageKey.POMODORO_SETTINGS)
        updated = settings.model_copy(update={"sound_enabled": not settings.sound_enabled})
        await self._store.set(StorageKey.POMODORO_SETTINGS, updated)
        return updated
