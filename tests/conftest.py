from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from dashcache.services.config import Settings, get_settings
from dashcache.services.database import connect_db, init_db
from dashcache.services.events import EventBus
from dashcache.services.repository import reseed
from dashcache.services.storage import MemoryStorage
from dashcache.services.transport import ApiClient

API_BASE = "http://backend.test/api"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeClock:
    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeBackend:
    """Canned replies keyed by (method, path); anything else answers 503."""

    def __init__(self) -> None:
        self.replies: dict[tuple[str, str], Reply] = {}
        self.calls: list[tuple[str, str]] = []

    def on(self, method: str, path: str, reply: Reply) -> None:
        self.replies[(method, "/api" + path)] = reply

    def count(self, method: str, path: str) -> int:
        return self.calls.count((method, "/api" + path))

    def handle(self, request: httpx.Request) -> httpx.Response:
        key = (request.method, request.url.path)
        self.calls.append(key)
        reply = self.replies.get(key)
        if reply is None:
            return httpx.Response(503, json={"error": "backend offline"})
        if callable(reply):
            return reply(request)
        return httpx.Response(reply.status_code, headers=reply.headers, content=reply.content)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_cache(clock: FakeClock, backend: FakeBackend) -> Callable[..., Any]:
    def factory(cache_cls: type, *, storage: Any = None, persistence: bool = False, events: Optional[EventBus] = None):
        settings = Settings(api_base_url=API_BASE, enable_persistence=persistence, fetch_retry_attempts=1)
        api = ApiClient(API_BASE, retry_attempts=1, transport=httpx.MockTransport(backend.handle))
        return cache_cls(
            settings,
            api=api,
            storage=storage if storage is not None else MemoryStorage(),
            events=events or EventBus(),
            clock=clock,
        )

    return factory


@pytest.fixture
def database(tmp_path, monkeypatch):
    """Fresh seeded SQLite database for the reference backend."""
    path = tmp_path / "dashcache.db"
    monkeypatch.setenv("DATABASE_PATH", str(path))
    get_settings.cache_clear()

    async def _prepare() -> None:
        await init_db()
        conn = await connect_db()
        try:
            await reseed(conn)
            await conn.commit()
        finally:
            await conn.close()

    asyncio.run(_prepare())
    yield path
    get_settings.cache_clear()
