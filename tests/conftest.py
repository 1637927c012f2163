"""Shared fixtures for crawlpace tests."""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Optional

import pytest
from crawlpace.models.config import ProcessorOptions
from crawlpace.models.request import RequestContext


@dataclass
class Route:
    """Canned behaviour for one URL."""

    latency: float = 0.0
    status: int = 200
    chunks: list[bytes] = field(default_factory=lambda: [b"ok"])
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": "text/html"})
    error: Optional[BaseException] = None


class FakeResponse:
    def __init__(self, route: Route) -> None:
        self.status_code = route.status
        self.headers = dict(route.headers)
        self._chunks = route.chunks

    async def iter_chunks(self):
        for chunk in self._chunks:
            yield chunk


class FakeTransport:
    """
    In-memory transport with per-URL latency, status, body and errors.

    Tracks the order of requests and the peak number of concurrent requests.
    """

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.default = Route()
        self.requested: list[str] = []
        self.started_at: dict[str, float] = {}
        self.active = 0
        self.max_active = 0

    def route(self, url: str, **kwargs) -> Route:
        self.routes[url] = Route(**kwargs)
        return self.routes[url]

    async def __aenter__(self) -> "FakeTransport":
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None

    @asynccontextmanager
    async def stream(self, url: str):
        route = self.routes.get(url, self.default)
        self.requested.append(url)
        self.started_at[url] = asyncio.get_running_loop().time()
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if route.latency:
                await asyncio.sleep(route.latency)
            if route.error is not None:
                raise route.error
            yield FakeResponse(route)
        finally:
            self.active -= 1


@pytest.fixture
def transport():
    """Fresh in-memory transport."""
    return FakeTransport()


@pytest.fixture
def fast_options():
    """Options with no pacing and no throttling."""
    return ProcessorOptions(
        max_concurrency=1,
        delay_between_request_start=0,
        delay_jitter=0,
        request_timeout=5,
        timeout_before_throttle=0,
        throttling_request_backoff=0,
        min_sequential_successes_to_minimise_throttling=1,
    )


@pytest.fixture
def make_context():
    """Factory for RequestContext objects bound to a new cancellation event."""

    def factory(
        target: str = "https://example.com/",
        start_delay: float = 0.0,
        request_timeout: float = 5.0,
        cancellation: Optional[asyncio.Event] = None,
    ) -> RequestContext:
        return RequestContext(
            request_number=1,
            target=target,
            start_delay=start_delay,
            request_timeout=request_timeout,
            cancellation=cancellation or asyncio.Event(),
        )

    return factory
