import httpx
import pytest

from nexus.backends import MemoryBackend
from nexus.config_loader import FontsConfig
from nexus.fonts import FontLoader
from nexus.store import TypedStore


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    return TypedStore(backend)


class FakeClock:
    """Manually advanced clock in POSIX seconds."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def font_transport(failing: set[str] | None = None, requests: list | None = None):
    """Mock Google Fonts: 200 with a tiny stylesheet, 400 for failing families."""
    failing = failing or set()

    def handler(request: httpx.Request) -> httpx.Response:
        family = request.url.params["family"].split(":")[0]
        if requests is not None:
            requests.append(family)
        if family in failing:
            return httpx.Response(400, text="bad family")
        return httpx.Response(200, text=f"@font-face {{ font-family: '{family}'; }}")

    return httpx.MockTransport(handler)


@pytest.fixture
def font_loader():
    client = httpx.AsyncClient(transport=font_transport())
    return FontLoader(FontsConfig(), client=client)
