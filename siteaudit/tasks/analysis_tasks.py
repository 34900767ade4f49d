"""
Analysis Tasks

One Celery task per analyzer queue. Each fetches the page, runs its
analyzer, caches the raw result and merges it into the per-(user, url)
record. Job progress is reported at 10 (started), 90 (scored) and 100
(persisted), and reset to 0 on failure.
"""

import asyncio
import logging
import os
from dataclasses import asdict, dataclass
from typing import Any, Optional

from bs4 import BeautifulSoup
from celery.signals import worker_process_shutdown
from pydantic import ValidationError

from siteaudit.config import get_settings
from siteaudit.context import AppContext, build_context
from siteaudit.core.exceptions import AnalysisJobFailed
from siteaudit.models.analysis import AnalysisType
from siteaudit.schemas.analysis import AnalysisJobPayload
from siteaudit.services.analyzers import (
    analyze_content,
    analyze_structural,
    analyze_technical,
    collect_technical_signals,
)
from siteaudit.services.fetcher import FetchedPage
from siteaudit.services.job_queue import task_name
from siteaudit.worker import celery_app

logger = logging.getLogger(__name__)

PROGRESS_STARTED = 10
PROGRESS_SCORED = 90


@dataclass(frozen=True)
class JobOutcome:
    """Result of one attempt at an analyzer job."""

    status: str  # completed | retrying | failed | skipped
    job_id: str
    error: Optional[str] = None
    retry_in_ms: Optional[int] = None
    attempts_made: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


async def run_analyzer(
    ctx: AppContext,
    analysis_type: AnalysisType,
    payload: AnalysisJobPayload,
    page: FetchedPage,
) -> dict[str, Any]:
    soup = BeautifulSoup(page.html, "lxml")

    if analysis_type == AnalysisType.STRUCTURAL:
        result = analyze_structural(soup, page.url, include_images=payload.options.include_images)
    elif analysis_type == AnalysisType.CONTENT:
        result = analyze_content(soup)
    else:
        technical_signals = await collect_technical_signals(ctx.fetcher, ctx.pagespeed, page.url, page.headers)
        result = analyze_technical(
            soup,
            page.html,
            page.url,
            technical_signals,
            check_mobile=payload.options.check_mobile_friendly,
        )

    return result.to_dict()


async def process_analysis_job(
    ctx: AppContext,
    analysis_type: AnalysisType,
    job_id: str,
    raw_payload: dict[str, Any],
) -> JobOutcome:
    """Run one attempt of an analyzer job and record how it ended."""
    queue = ctx.job_queue

    try:
        payload = AnalysisJobPayload.model_validate(raw_payload)
    except ValidationError as e:
        error = f"Invalid job payload: {e.error_count()} validation error(s)"
        logger.error(f"[WORKER] {analysis_type.value} job {job_id}: {error}")
        decision = await queue.record_failure(analysis_type, job_id, error, retryable=False)
        return JobOutcome("failed", job_id, error=error, attempts_made=decision.attempts_made)

    job = await queue.mark_active(analysis_type, job_id)
    if job is None:
        return JobOutcome("skipped", job_id)

    logger.info(f"[WORKER] Starting {analysis_type.value} analysis for {payload.url} ({job_id})")

    try:
        await queue.set_progress(analysis_type, job_id, PROGRESS_STARTED)

        page = await ctx.fetcher.fetch_page(payload.url)
        result = await run_analyzer(ctx, analysis_type, payload, page)
        await queue.set_progress(analysis_type, job_id, PROGRESS_SCORED)

        await ctx.result_cache.store(job_id, result)
        await ctx.record_store.merge_result(payload.user_id, payload.url, analysis_type, result)
    except Exception as e:
        error = str(e) or type(e).__name__
        logger.warning(f"[WORKER] {analysis_type.value} analysis of {payload.url} failed: {error}")
        decision = await queue.record_failure(analysis_type, job_id, error)
        if decision.retry:
            return JobOutcome(
                "retrying",
                job_id,
                error=error,
                retry_in_ms=decision.delay_ms,
                attempts_made=decision.attempts_made,
            )
        return JobOutcome("failed", job_id, error=error, attempts_made=decision.attempts_made)

    await queue.mark_completed(analysis_type, job_id)
    logger.info(f"[WORKER] Completed {analysis_type.value} analysis for {payload.url} ({job_id})")
    return JobOutcome("completed", job_id, attempts_made=job.attempts_made + 1)


class WorkerRuntime:
    """Event loop and application context owned by one worker process."""

    def __init__(self, ctx: AppContext, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.ctx = ctx
        self.loop = loop or asyncio.new_event_loop()
        self.pid = os.getpid()

    def run(self, coro):
        return self.loop.run_until_complete(coro)

    def close(self) -> None:
        try:
            self.run(self.ctx.close())
        finally:
            self.loop.close()


_runtime: Optional[WorkerRuntime] = None


def get_runtime() -> WorkerRuntime:
    """The current process's runtime, created on first use after fork."""
    global _runtime
    if _runtime is None or _runtime.pid != os.getpid():
        _runtime = WorkerRuntime(build_context(get_settings(), celery_app))
    return _runtime


@worker_process_shutdown.connect
def close_runtime(**kwargs):
    global _runtime
    if _runtime is not None and _runtime.pid == os.getpid():
        _runtime.close()
        _runtime = None


def run_analysis_task(task, analysis_type: AnalysisType, payload: dict[str, Any]) -> dict[str, Any]:
    runtime = get_runtime()
    outcome = runtime.run(process_analysis_job(runtime.ctx, analysis_type, task.request.id, payload))

    if outcome.status == "retrying":
        raise task.retry(
            countdown=outcome.retry_in_ms / 1000,
            exc=AnalysisJobFailed(outcome.job_id, outcome.error),
        )
    if outcome.status == "failed":
        raise AnalysisJobFailed(outcome.job_id, outcome.error)
    return outcome.as_dict()


@celery_app.task(bind=True, name=task_name(AnalysisType.STRUCTURAL), max_retries=None)
def analyze_structural_task(self, payload: dict):
    """Title, meta, headings, images, links, favicon and social markup."""
    return run_analysis_task(self, AnalysisType.STRUCTURAL, payload)


@celery_app.task(bind=True, name=task_name(AnalysisType.CONTENT), max_retries=None)
def analyze_content_task(self, payload: dict):
    """Readability, keyword density, duplication and content quality."""
    return run_analysis_task(self, AnalysisType.CONTENT, payload)


@celery_app.task(bind=True, name=task_name(AnalysisType.TECHNICAL), max_retries=None)
def analyze_technical_task(self, payload: dict):
    """Page speed, mobile readiness, TLS, markup, robots.txt and sitemap."""
    return run_analysis_task(self, AnalysisType.TECHNICAL, payload)
