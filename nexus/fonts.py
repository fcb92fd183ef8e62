"""
字体加载：从 Google Fonts 拉取字体族 CSS，并把字体设置应用到 DocumentRoot。
单个字体失败不会影响其他字体。
"""

import asyncio
import logging
from typing import Iterable

import httpx

from nexus.config_loader import FontsConfig
from nexus.document import DocumentRoot
from nexus.models import FontScale, FontSettings, FontWeight

logger = logging.getLogger(__name__)

FONT_SCALES = {
    FontScale.SMALL: 0.875,
    FontScale.MEDIUM: 1,
    FontScale.LARGE: 1.125,
}

FONT_WEIGHTS = {
    FontWeight.LIGHT: "300",
    FontWeight.REGULAR: "400",
    FontWeight.MEDIUM: "500",
    FontWeight.BOLD: "600",
}


class FontLoadError(Exception):
    """字体加载失败。"""


class FontLoader:
    """按字体族名异步加载字体样式表，已加载的字体不会重复请求。"""

    def __init__(self, config: FontsConfig | None = None, client: httpx.AsyncClient | None = None):
        self.config = config or FontsConfig()
        self._client = client
        self._owns_client = client is None
        self.loaded: set[str] = set()
        self.stylesheets: dict[str, str] = {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self._client

    async def load(self, family: str):
        """加载单个字体族，失败时抛出 FontLoadError。"""
        if family in self.loaded:
            return

        params = {"family": f"{family}:wght@{self.config.weights}", "display": "swap"}
        try:
            resp = await self._get_client().get(self.config.css_url, params=params)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FontLoadError(f"Failed to load font: {family}") from e

        self.stylesheets[family] = resp.text
        self.loaded.add(family)
        logger.debug(f"字体已加载: {family}")

    async def load_fonts(self, families: Iterable[str]):
        """并发加载多个字体族，等待全部结束；失败只记录日志。"""
        families = list(families)
        results = await asyncio.gather(*(self.load(f) for f in families), return_exceptions=True)
        for family, result in zip(families, results):
            if isinstance(result, Exception):
                logger.warning(f"字体加载失败 [{family}]: {result}")

    async def init_fonts(self):
        """加载默认字体。"""
        await self.load_fonts(self.config.defaults)

    async def aclose(self):
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


def apply_font_settings(document: DocumentRoot, settings: FontSettings):
    """将字体设置写入根元素的 CSS 变量。"""
    document.set_property("--font-heading", f"'{settings.heading_font}', sans-serif")
    document.set_property("--font-body", f"'{settings.body_font}', sans-serif")
    document.set_property("--font-mono", f"'{settings.mono_font}', monospace")
    document.set_property("--font-scale", str(FONT_SCALES[settings.scale]))
    document.set_property("font-weight", FONT_WEIGHTS[settings.weight])
