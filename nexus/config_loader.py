"""
配置加载器：将 YAML 配置文件解析为 Pydantic 模型。
"""

import logging
import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ── 存储配置 ──────────────────────────────────────────

class StorageConfig(BaseModel):
    backend: Literal["tinydb", "local", "memory"] = "tinydb"
    data_dir: str = Field(default_factory=lambda: str(Path(os.getenv("NEXUS_ROOT", ".")) / "data"))
    tinydb_file: str = "storage.json"
    local_file: str = "local_storage.json"
    prefix: str = "nexus_"  # 本地字符串存储的命名空间前缀


# ── 外部数据 ──────────────────────────────────────────

class WeatherConfig(BaseModel):
    base_url: str = "https://api.openweathermap.org/data/2.5"
    timeout: float = 10.0
    cache_ttl_seconds: float = 600.0  # 10 分钟


class FontsConfig(BaseModel):
    css_url: str = "https://fonts.googleapis.com/css2"
    weights: str = "300;400;500;600;700"
    timeout: float = 10.0
    defaults: list[str] = Field(default_factory=lambda: ["Inter", "Space Grotesk", "JetBrains Mono"])


class QuotesConfig(BaseModel):
    ttl_seconds: float = 3600.0  # 1 小时
    file: Optional[str] = None  # 默认使用内置 quotes.json


class NotesConfig(BaseModel):
    debounce_seconds: float = 0.5


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8400
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5173"])


# ── 顶层配置 ──────────────────────────────────────────

class AppConfig(BaseModel):
    storage: StorageConfig = Field(default_factory=StorageConfig)
    weather: WeatherConfig = Field(default_factory=WeatherConfig)
    fonts: FontsConfig = Field(default_factory=FontsConfig)
    quotes: QuotesConfig = Field(default_factory=QuotesConfig)
    notes: NotesConfig = Field(default_factory=NotesConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: str = "INFO"


_CONFIG_SEARCH_PATHS = [
    "config/config.yaml",
    "config.yaml",
]


def find_config_file() -> Path | None:
    """Find the config file under NEXUS_ROOT."""
    base = Path(os.getenv("NEXUS_ROOT", "."))
    for p in _CONFIG_SEARCH_PATHS:
        path = base / p
        if path.is_file():
            return path
    return None


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    读取并校验配置。找不到配置文件或文件为空时返回默认配置。
    """
    if path is None:
        path = find_config_file()
    if path is None:
        logger.info("未找到配置文件，使用默认配置")
        return AppConfig()

    path = Path(path)
    with open(path, "r", encoding="utf-8") as fp:
        raw = yaml.safe_load(fp) or {}
    logger.info(f"已加载配置文件: {path}")
    return AppConfig.model_validate(raw)
