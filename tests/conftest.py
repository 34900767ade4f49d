"""
Pytest configuration and fixtures for SiteAudit tests.
"""
from typing import AsyncGenerator
from unittest.mock import MagicMock

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from siteaudit.config import Settings
from siteaudit.context import AppContext, build_context, default_job_options
from siteaudit.database import create_session_maker
from siteaudit.models.base import Base
from siteaudit.services.job_queue import JobQueue
from tests.fixtures.sample_pages import ROBOTS_TXT, SITEMAP_XML, WELL_FORMED_PAGE_HTML

# Use SQLite for testing (in-memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """In-memory stand-in for the redis.asyncio commands the services use."""

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.strings: dict[str, str] = {}
        self.lists: dict[str, list[str]] = {}
        self.ttls: dict[str, int] = {}
        self.zsets: dict[str, dict[str, float]] = {}

    async def hset(self, key, field=None, value=None, mapping=None):
        items = dict(mapping or {})
        if field is not None:
            items[field] = value
        bucket = self.hashes.setdefault(key, {})
        added = sum(1 for k in items if k not in bucket)
        bucket.update({k: str(v) for k, v in items.items()})
        return added

    async def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    async def hget(self, key, field):
        return self.hashes.get(key, {}).get(field)

    async def set(self, key, value, ex=None):
        self.strings[key] = str(value)
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def get(self, key):
        return self.strings.get(key)

    async def exists(self, *keys):
        return sum(1 for k in keys if any(k in store for store in (self.hashes, self.strings, self.lists, self.zsets)))

    async def expire(self, key, seconds):
        self.ttls[key] = seconds
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            for store in (self.hashes, self.strings, self.lists, self.zsets):
                if key in store:
                    del store[key]
                    removed += 1
            self.ttls.pop(key, None)
        return removed

    async def lpush(self, key, *values):
        bucket = self.lists.setdefault(key, [])
        for value in values:
            bucket.insert(0, str(value))
        return len(bucket)

    @staticmethod
    def _range(items, start, end):
        n = len(items)
        if start < 0:
            start = max(0, n + start)
        if end < 0:
            end = n + end
        if start > end:
            return []
        return items[start:end + 1]

    async def lrange(self, key, start, end):
        return self._range(self.lists.get(key, []), start, end)

    async def ltrim(self, key, start, end):
        self.lists[key] = self._range(self.lists.get(key, []), start, end)
        return True

    async def zadd(self, key, mapping):
        bucket = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in bucket)
        bucket.update({str(m): float(s) for m, s in mapping.items()})
        return added

    async def zrevrange(self, key, start, end):
        ordered = sorted(self.zsets.get(key, {}).items(), key=lambda item: (item[1], item[0]), reverse=True)
        return self._range([member for member, _ in ordered], start, end)

    async def zrem(self, key, *members):
        bucket = self.zsets.get(key, {})
        removed = sum(1 for m in members if bucket.pop(m, None) is not None)
        if not bucket:
            self.zsets.pop(key, None)
        return removed

    async def aclose(self):
        pass


def site_handler(request: httpx.Request) -> httpx.Response:
    """A small well-behaved site at example.com."""
    if request.url.host != "example.com":
        return httpx.Response(404)
    if request.url.path == "/robots.txt":
        return httpx.Response(200, text=ROBOTS_TXT)
    if request.url.path == "/sitemap.xml":
        return httpx.Response(200, text=SITEMAP_XML, headers={"content-type": "application/xml"})
    if request.url.path in ("/", "/about"):
        return httpx.Response(200, text=WELL_FORMED_PAGE_HTML, headers={"content-type": "text/html"})
    return httpx.Response(404)


# ============================================================================
# Settings / Infrastructure Fixtures
# ============================================================================

@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite:///:memory:",
        REDIS_URL="redis://localhost:6379/15",
        PAGESPEED_API_KEY="",
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def fake_celery() -> MagicMock:
    """Celery app that records send_task calls instead of publishing."""
    mock = MagicMock()
    mock.send_task = MagicMock()
    return mock


@pytest.fixture
def job_queue(fake_redis, fake_celery, settings) -> JobQueue:
    return JobQueue(fake_redis, fake_celery, default_job_options(settings))


@pytest.fixture
def site_transport() -> httpx.MockTransport:
    return httpx.MockTransport(site_handler)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return create_session_maker(test_engine)


# ============================================================================
# Application Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def app_context(settings, fake_celery, fake_redis, test_engine, site_transport) -> AppContext:
    """Full application context on fake Redis, SQLite and a mocked site."""
    return build_context(
        settings,
        fake_celery,
        redis_client=fake_redis,
        engine=test_engine,
        transport=site_transport,
    )


@pytest.fixture
def app(settings, app_context) -> FastAPI:
    from siteaudit.main import create_app

    return create_app(settings, context=app_context)


@pytest_asyncio.fixture(scope="function")
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def user_headers() -> dict:
    return {"X-User-Id": "user-1"}
