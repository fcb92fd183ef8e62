"""
Data models for every record persisted by the start page.

Records are stored as JSON with camelCase field names; the models expose
snake_case attributes and accept either form on input.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class Record(BaseModel):
    """Base for persisted records (camelCase on the wire)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Enums ──────────────────────────────────────────────

class StorageKey(str, Enum):
    TODOS = "todos"
    QUICK_LINKS = "quickLinks"
    NOTES = "notes"
    POMODORO_SETTINGS = "pomodoroSettings"
    POMODORO_STATS = "pomodoroStats"
    WIDGET_LAYOUT = "widgetLayout"
    BACKGROUND_SETTINGS = "backgroundSettings"
    FONT_SETTINGS = "fontSettings"
    WEATHER_SETTINGS = "weatherSettings"
    WEATHER_CACHE = "weatherCache"
    TIMEZONES = "timezones"
    THEME = "theme"
    CLOCK_SETTINGS = "clockSettings"
    DRAG_ENABLED = "dragEnabled"
    QUOTE_CACHE = "quoteCache"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"
    SYSTEM = "system"


class BackgroundType(str, Enum):
    SOLID = "solid"
    GRADIENT = "gradient"
    UNSPLASH = "unsplash"


class TextColorMode(str, Enum):
    AUTO = "auto"
    LIGHT = "light"
    DARK = "dark"


class FontScale(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class FontWeight(str, Enum):
    LIGHT = "light"
    REGULAR = "regular"
    MEDIUM = "medium"
    BOLD = "bold"


class Units(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class WidgetKey(str, Enum):
    CLOCK = "clock"
    WEATHER = "weather"
    TODOS = "todos"
    POMODORO = "pomodoro"
    NOTES = "notes"
    QUICK_LINKS = "quickLinks"


# ── Widget records ─────────────────────────────────────

class Todo(Record):
    id: str
    text: str
    completed: bool = False
    category: Optional[str] = None
    created_at: float = Field(default=0.0, description="POSIX seconds")


class QuickLink(Record):
    id: str
    title: str
    url: str
    favicon: Optional[str] = None
    order: int = 0


class PomodoroSettings(Record):
    work_duration: int = Field(default=25, ge=1, description="Minutes")
    break_duration: int = Field(default=5, ge=1, description="Minutes")
    long_break_duration: int = Field(default=15, ge=1, description="Minutes")
    sessions_until_long_break: int = Field(default=4, ge=1)
    sound_enabled: bool = True


class PomodoroStats(Record):
    total_sessions: int = 0
    today_sessions: int = 0
    last_session_date: str = Field(default="", description="ISO calendar day")


class WidgetSlot(Record):
    visible: bool = True
    order: int = 0


class WidgetLayout(Record):
    """Visibility and sort position for each widget on the grid."""
    clock: WidgetSlot = Field(default_factory=lambda: WidgetSlot(order=0))
    weather: WidgetSlot = Field(default_factory=lambda: WidgetSlot(order=1))
    todos: WidgetSlot = Field(default_factory=lambda: WidgetSlot(order=2))
    pomodoro: WidgetSlot = Field(default_factory=lambda: WidgetSlot(order=3))
    notes: WidgetSlot = Field(default_factory=lambda: WidgetSlot(order=4))
    quick_links: WidgetSlot = Field(default_factory=lambda: WidgetSlot(order=5))

    @model_validator(mode="after")
    def check_orders_distinct(self) -> "WidgetLayout":
        orders = [slot.order for slot in self.slots().values()]
        if len(set(orders)) != len(orders):
            raise ValueError(f"widget orders must be distinct, got {orders}")
        return self

    def slots(self) -> Dict[str, WidgetSlot]:
        """Slots keyed by widget key (`quickLinks`, not `quick_links`)."""
        return {WidgetKey(to_camel(name)).value: getattr(self, name) for name in type(self).model_fields}


class BackgroundSettings(Record):
    type: BackgroundType = BackgroundType.GRADIENT
    unsplash_query: str = "nature,landscape"
    solid_color: str = "#1a1a2e"
    gradient_start: str = "#0f0c29"
    gradient_end: str = "#302b63"
    gradient_angle: int = 135
    blur: int = Field(default=0, ge=0, le=20)
    opacity: int = Field(default=100, ge=0, le=100)
    last_unsplash_url: Optional[str] = None
    last_unsplash_date: Optional[str] = None
    text_color: TextColorMode = TextColorMode.AUTO


class FontSettings(Record):
    heading_font: str = "Space Grotesk"
    body_font: str = "Inter"
    mono_font: str = "JetBrains Mono"
    scale: FontScale = FontScale.MEDIUM
    weight: FontWeight = FontWeight.REGULAR

    def families(self) -> List[str]:
        return [self.heading_font, self.body_font, self.mono_font]


class WeatherSettings(Record):
    api_key: str = ""
    locations: List[str] = Field(default_factory=list)
    current_location_index: int = 0
    units: Units = Units.METRIC

    @model_validator(mode="after")
    def clamp_location_index(self) -> "WeatherSettings":
        # Out-of-range index is repaired rather than rejected so the
        # configured locations survive.
        if not 0 <= self.current_location_index < max(len(self.locations), 1):
            self.current_location_index = 0
        return self

    @property
    def current_location(self) -> Optional[str]:
        if not self.locations:
            return None
        return self.locations[self.current_location_index]


class ClockSettings(Record):
    use_24_hour: bool = Field(default=True, alias="use24Hour")


# ── External data ──────────────────────────────────────

class ForecastDay(Record):
    date: str
    temp: int
    icon: str


class WeatherData(Record):
    temp: int
    description: str
    icon: str
    humidity: int
    wind_speed: int
    city: str
    forecast: List[ForecastDay] = Field(default_factory=list)


class WeatherCacheEntry(Record):
    data: WeatherData
    timestamp: float = Field(description="POSIX seconds of the fetch")
    units: Units


class QuoteCacheEntry(Record):
    quote: str = ""
    author: str = ""
    fetched_at: float = Field(default=0.0, description="POSIX seconds")
