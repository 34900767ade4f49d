"""
Per-process application context.

Holds every connection and service the pipeline needs. Built once by the
FastAPI lifespan and once per Celery worker process, then passed explicitly
to the code that uses it.
"""
from dataclasses import dataclass
from typing import Optional

import httpx
import redis.asyncio as redis
from celery import Celery
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from siteaudit.config import Settings
from siteaudit.database import create_engine_from_settings, create_session_maker
from siteaudit.integrations.pagespeed import PageSpeedClient
from siteaudit.schemas.analysis import JobBackoff, JobOptions
from siteaudit.services.fetcher import PageFetcher
from siteaudit.services.job_queue import JobQueue
from siteaudit.services.record_store import AnalysisRecordStore
from siteaudit.services.result_cache import ResultCache


def default_job_options(settings: Settings) -> JobOptions:
    return JobOptions(
        priority=settings.JOB_DEFAULT_PRIORITY,
        attempts=settings.JOB_ATTEMPTS,
        backoff=JobBackoff(type="exponential", delay=settings.JOB_BACKOFF_DELAY_MS),
        remove_on_complete=settings.JOB_REMOVE_ON_COMPLETE,
        remove_on_fail=settings.JOB_REMOVE_ON_FAIL,
    )


@dataclass
class AppContext:
    settings: Settings
    redis: redis.Redis
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    job_queue: JobQueue
    result_cache: ResultCache
    record_store: AnalysisRecordStore
    fetcher: PageFetcher
    pagespeed: PageSpeedClient

    async def close(self) -> None:
        await self.redis.aclose()
        await self.engine.dispose()


def build_context(
    settings: Settings,
    celery_app: Celery,
    redis_client: Optional[redis.Redis] = None,
    engine: Optional[AsyncEngine] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AppContext:
    """Wire up the services. Connections are created lazily by their clients.

    `redis_client`, `engine` and `transport` replace the configured backends.
    """
    if redis_client is None:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    if engine is None:
        engine = create_engine_from_settings(settings)
    session_maker = create_session_maker(engine)

    return AppContext(
        settings=settings,
        redis=redis_client,
        engine=engine,
        session_maker=session_maker,
        job_queue=JobQueue(redis_client, celery_app, default_job_options(settings)),
        result_cache=ResultCache(redis_client, ttl=settings.RESULT_CACHE_TTL),
        record_store=AnalysisRecordStore(session_maker),
        fetcher=PageFetcher(settings, transport=transport),
        pagespeed=PageSpeedClient(
            api_key=settings.PAGESPEED_API_KEY,
            timeout=settings.PAGESPEED_TIMEOUT,
            transport=transport,
        ),
    )
