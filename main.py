"""
Nexus 起始页主入口：启动 FastAPI 后端服务。
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from nexus import api
from nexus.backends import create_backend
from nexus.config_loader import AppConfig, load_config
from nexus.fonts import FontLoader
from nexus.models import StorageKey
from nexus.settings import SettingsAggregator
from nexus.store import TypedStore
from nexus.weather import OpenWeatherProvider, WeatherService
from nexus.widgets.background import BackgroundService
from nexus.widgets.clock import WorldClock
from nexus.widgets.links import QuickLinks
from nexus.widgets.notes import NotesEditor
from nexus.widgets.pomodoro import PomodoroTracker
from nexus.widgets.quotes import QuoteService, load_quotes
from nexus.widgets.todos import TodoList

# 日志配置
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan 事件处理：启动时加载设置，关闭时保存未写入的笔记。"""
    settings = app.state.settings
    notes = app.state.notes

    settings.start()
    await notes.load()
    logger.info("设置绑定已挂载")

    yield  # 应用运行中

    logger.info("正在关闭...")
    await notes.flush()
    notes.close()
    await settings.stop()
    await app.state.fonts.aclose()
    await app.state.weather_provider.aclose()


def create_app(config: AppConfig | None = None) -> FastAPI:
    """创建并配置 FastAPI 应用。"""
    if config is None:
        config = load_config()
    logging.getLogger().setLevel(config.log_level.upper())

    app = FastAPI(
        title="Nexus Start Page API",
        description="Persistence and settings API for the start page widgets",
        version="0.1.0",
        lifespan=lifespan,
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── 初始化核心组件 ────────────────────────────────────────
    backend = create_backend(config.storage)
    logger.info(f"存储后端: {backend.name}")
    store = TypedStore(backend)

    fonts = FontLoader(config.fonts)
    settings = SettingsAggregator(store, fonts)

    weather_provider = OpenWeatherProvider(config.weather)
    weather = WeatherService(store, weather_provider, ttl=config.weather.cache_ttl_seconds)
    quotes = QuoteService(store, load_quotes(config.quotes.file), ttl=config.quotes.ttl_seconds)
    notes = NotesEditor(store, delay=config.notes.debounce_seconds)

    # 注入依赖到 API 模块
    api.init_api(
        store=store,
        settings=settings,
        weather=weather,
        quotes=quotes,
        todos=TodoList(store),
        links=QuickLinks(store),
        notes=notes,
        pomodoro=PomodoroTracker(store),
        background=BackgroundService(
            store, on_update=lambda: settings.reload(StorageKey.BACKGROUND_SETTINGS),
        ),
        world_clock=WorldClock(store),
    )

    # 注册 API 路由
    app.include_router(api.router)

    # 将组件存到 app.state，供 lifespan 访问
    app.state.config = config
    app.state.store = store
    app.state.settings = settings
    app.state.fonts = fonts
    app.state.notes = notes
    app.state.weather_provider = weather_provider

    return app


def main():
    """主入口。"""
    config = load_config()
    port = int(sys.argv[1]) if len(sys.argv) > 1 else config.server.port

    logger.info(f"🚀 启动 Nexus 后端 (port={port})...")

    app = create_app(config)

    uvicorn.run(
        app,
        host=config.server.host,
        port=port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
