"""
Settings aggregator: composes the settings bindings into one snapshot,
applies the theme and font side effects, and derives text contrast.

One aggregator instance is created by the app and passed to whatever needs
settings; consumers call ``subscribe`` to receive every new snapshot.
"""

import asyncio
import logging
from typing import Callable, Dict, List, Optional, Set

from nexus.binding import Binding
from nexus.contrast import use_light_text
from nexus.document import DocumentRoot, system_color_scheme
from nexus.fonts import FontLoader, apply_font_settings
from nexus.models import (
    BackgroundSettings,
    ClockSettings,
    FontSettings,
    Record,
    StorageKey,
    Theme,
    WidgetLayout,
)
from nexus.store import TypedStore

logger = logging.getLogger(__name__)

SETTINGS_KEYS = (
    StorageKey.THEME,
    StorageKey.FONT_SETTINGS,
    StorageKey.BACKGROUND_SETTINGS,
    StorageKey.WIDGET_LAYOUT,
    StorageKey.CLOCK_SETTINGS,
    StorageKey.DRAG_ENABLED,
)


class SettingsSnapshot(Record):
    """What every widget sees. Fields are None only while loading."""
    theme: Theme = Theme.DARK
    font_settings: Optional[FontSettings] = None
    background_settings: Optional[BackgroundSettings] = None
    widget_layout: Optional[WidgetLayout] = None
    clock_settings: Optional[ClockSettings] = None
    drag_enabled: bool = True
    use_light_text: bool = True
    is_loading: bool = True


class SettingsAggregator:

    def __init__(
        self,
        store: TypedStore,
        fonts: FontLoader,
        document: DocumentRoot | None = None,
        color_scheme: Callable[[], str] = system_color_scheme,
    ):
        self.fonts = fonts
        self.document = document or DocumentRoot()
        self._color_scheme = color_scheme
        self.bindings: Dict[StorageKey, Binding] = {key: Binding(store, key) for key in SETTINGS_KEYS}
        self._subscribers: List[Callable[[SettingsSnapshot], None]] = []
        self._fonts_initialized = False
        self._font_generation = 0
        self._tasks: Set[asyncio.Task] = set()
        self._started = False

        self.bindings[StorageKey.THEME].subscribe(self._on_theme)
        self.bindings[StorageKey.FONT_SETTINGS].subscribe(self._on_font_settings)
        for key in (StorageKey.BACKGROUND_SETTINGS, StorageKey.WIDGET_LAYOUT,
                    StorageKey.CLOCK_SETTINGS, StorageKey.DRAG_ENABLED):
            self.bindings[key].subscribe(lambda _value: self._publish())

    # ── Lifecycle ─────────────────────────────────────

    def start(self):
        """Mount every binding and start font initialization."""
        if self._started:
            return
        self._started = True
        for binding in self.bindings.values():
            binding.mount()
        self._spawn(self._init_fonts())

    async def wait_ready(self):
        """Wait until ``is_loading`` turns false and pending font work settles."""
        self.start()
        await asyncio.gather(*(b.wait_loaded() for b in self.bindings.values()))
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def reload(self, *keys: StorageKey):
        """
        Re-read the given settings keys (all of them by default) after a
        write that bypassed the setters. Side effects run as for a local write.
        """
        for key in keys or SETTINGS_KEYS:
            binding = self.bindings.get(StorageKey(key))
            if binding is not None:
                await binding.reload()

    async def stop(self):
        for binding in self.bindings.values():
            binding.unmount()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._subscribers.clear()

    def _spawn(self, coro):
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ── Read side ─────────────────────────────────────

    @property
    def is_loading(self) -> bool:
        return not self._fonts_initialized or any(b.loading for b in self.bindings.values())

    @property
    def use_light_text(self) -> bool:
        background = self.bindings[StorageKey.BACKGROUND_SETTINGS].value
        if background is None:
            return True
        return use_light_text(background)

    def snapshot(self) -> SettingsSnapshot:
        values = {key: b.value for key, b in self.bindings.items()}
        drag_enabled = values[StorageKey.DRAG_ENABLED]
        return SettingsSnapshot(
            theme=values[StorageKey.THEME] or Theme.DARK,
            font_settings=values[StorageKey.FONT_SETTINGS],
            background_settings=values[StorageKey.BACKGROUND_SETTINGS],
            widget_layout=values[StorageKey.WIDGET_LAYOUT],
            clock_settings=values[StorageKey.CLOCK_SETTINGS],
            drag_enabled=True if drag_enabled is None else drag_enabled,
            use_light_text=self.use_light_text,
            is_loading=self.is_loading,
        )

    def subscribe(self, callback: Callable[[SettingsSnapshot], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _publish(self):
        snapshot = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Settings subscriber failed: {e}", exc_info=True)

    # ── Side effects ──────────────────────────────────

    def _on_theme(self, theme: Optional[Theme]):
        if theme is not None:
            self.document.remove_class("light", "dark")
            if theme == Theme.SYSTEM:
                resolved = self._color_scheme()
            else:
                resolved = theme.value
            self.document.add_class(resolved)
            logger.debug(f"Theme applied: {theme.value} -> {resolved}")
        self._publish()

    def _on_font_settings(self, settings: Optional[FontSettings]):
        if settings is not None and self._fonts_initialized:
            self._schedule_font_apply(settings)
        self._publish()

    async def _init_fonts(self):
        try:
            await self.fonts.init_fonts()
        finally:
            self._fonts_initialized = True
        current = self.bindings[StorageKey.FONT_SETTINGS].value
        if current is not None:
            self._schedule_font_apply(current)
        self._publish()

    def _schedule_font_apply(self, settings: FontSettings):
        self._font_generation += 1
        self._spawn(self._apply_fonts(settings, self._font_generation))

    async def _apply_fonts(self, settings: FontSettings, generation: int):
        await self.fonts.load_fonts(settings.families())
        if generation != self._font_generation:
            # Superseded by a newer font change.
            return
        apply_font_settings(self.document, settings)
        self._publish()

    # ── Writers ───────────────────────────────────────

    async def set_theme(self, theme: Theme | str):
        await self.bindings[StorageKey.THEME].set(theme)

    async def set_font_settings(self, settings: FontSettings):
        await self.bindings[StorageKey.FONT_SETTINGS].set(settings)

    async def set_background_settings(self, settings: BackgroundSettings):
        await self.bindings[StorageKey.BACKGROUND_SETTINGS].set(settings)

    async def set_widget_layout(self, layout: WidgetLayout):
        await self.bindings[StorageKey.WIDGET_LAYOUT].set(layout)

    async def set_clock_settings(self, settings: ClockSettings):
        await self.bindings[StorageKey.CLOCK_SETTINGS].set(settings)

    async def set_drag_enabled(self, enabled: bool):
        await self.bindings[StorageKey.DRAG_ENABLED].set(enabled)
