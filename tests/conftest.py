"""
Pytest configuration and fixtures for catscii tests.

No test talks to the network: upstream HTTP goes through httpx.MockTransport
and spans go to an in-memory exporter installed once for the session.
"""

import io
from typing import Callable, Dict, List

import httpx
import pytest
import pytest_asyncio
from PIL import Image
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from catscii.api import create_app
from catscii.config import ImageSourceConfig, SystemConfig

CAT_API_URL = "http://cat-api.test/v1/images/search"
IMAGE_URL = "http://x/cat.png"

# The global tracer provider can only be set once per process
_span_exporter = InMemorySpanExporter()
_provider = TracerProvider()
_provider.add_span_processor(SimpleSpanProcessor(_span_exporter))
trace.set_tracer_provider(_provider)


def make_png(width: int = 10, height: int = 10, mode: str = "RGB") -> bytes:
    """Encode a solid-colour PNG of the given size."""
    color = 7 if mode == "P" else (200, 120, 40)
    buffer = io.BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeUpstream:
    """
    Stands in for both The Cat API and the image host.

    Each route maps a URL to a callable building a fresh httpx.Response (or
    raising an httpx exception) every time it is hit.
    """

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {
            CAT_API_URL: lambda request: httpx.Response(200, json=[{"url": IMAGE_URL}]),
            IMAGE_URL: lambda request: httpx.Response(200, content=make_png(10, 10)),
        }
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, text="no such cat")
        return route(request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requested_urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """In-memory exporter, emptied before each test."""
    _span_exporter.clear()
    yield _span_exporter
    _span_exporter.clear()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def test_config() -> SystemConfig:
    return SystemConfig(image_source=ImageSourceConfig(api_url=CAT_API_URL))


@pytest_asyncio.fixture
async def http_client(upstream):
    """Outbound client wired to the fake upstream."""
    async with httpx.AsyncClient(transport=upstream.transport, follow_redirects=True) as client:
        yield client


@pytest_asyncio.fixture
async def client(upstream, test_config, span_exporter):
    """Client for the catscii app itself."""
    app = create_app(test_config, transport=upstream.transport)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
