"""
Job Queue Service

Tracks analyzer jobs in Redis and dispatches them to Celery.

Each job has a Redis hash `job:{queue}:{id}` that is written before the
Celery message is sent, so a job is visible as `waiting` as soon as
`enqueue` returns. Workers move it through
`waiting -> active -> completed | failed`; a failed attempt with attempts
left goes back to `waiting` with its progress reset. Per queue, only the
most recent `remove_on_complete` completed and `remove_on_fail` failed
records are retained. Job ids are also indexed per user in the sorted set
`jobs:user:{user_id}`, scored by creation time.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

import redis.asyncio as redis
from celery import Celery
from pydantic import ValidationError

from siteaudit.core.exceptions import InvalidJobPayload
from siteaudit.models.analysis import AnalysisType
from siteaudit.schemas.analysis import AnalysisJobPayload, JobOptions

logger = logging.getLogger(__name__)

QUEUE_NAMES = tuple(t.value for t in AnalysisType)

# Celery's redis transport supports priorities 0-9
MAX_CELERY_PRIORITY = 9


class JobState(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATES = (JobState.COMPLETED, JobState.FAILED)


def task_name(analysis_type: AnalysisType) -> str:
    """Registered Celery task name for an analyzer queue."""
    return f"siteaudit.analysis.{analysis_type.value}"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class JobSnapshot:
    """Point-in-time view of a job record."""

    id: str
    queue: AnalysisType
    state: JobState
    progress: int = 0
    attempts_made: int = 0
    failed_reason: Optional[str] = None
    last_error: Optional[str] = None
    payload: dict[str, Any] = field(default_factory=dict)
    opts: JobOptions = field(default_factory=JobOptions)
    created_at: int = 0
    finished_at: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES


@dataclass(frozen=True)
class RetryDecision:
    """What happens after a failed attempt."""

    retry: bool
    attempts_made: int
    delay_ms: int = 0


class JobQueue:
    """
    Redis-backed job records in front of Celery.

    Uses one hash per job plus two capped lists per queue
    (`jobs:{queue}:completed`, `jobs:{queue}:failed`) for retention.
    """

    def __init__(self, redis_client: redis.Redis, celery_app: Celery, defaults: JobOptions):
        self.redis = redis_client
        self.celery_app = celery_app
        self.defaults = defaults

    @staticmethod
    def _key(analysis_type: AnalysisType, job_id: str) -> str:
        return f"job:{analysis_type.value}:{job_id}"

    @staticmethod
    def _retention_key(analysis_type: AnalysisType, state: JobState) -> str:
        return f"jobs:{analysis_type.value}:{state.value}"

    @staticmethod
    def _user_key(user_id: str) -> str:
        return f"jobs:user:{user_id}"

    @staticmethod
    def _user_member(analysis_type: AnalysisType, job_id: str) -> str:
        return f"{analysis_type.value}:{job_id}"

    def resolve_options(self, overrides: JobOptions | dict[str, Any] | None = None) -> JobOptions:
        """Defaults with any explicitly given fields replaced.

        Raises InvalidJobPayload for unknown or out-of-range options.
        """
        if overrides is None:
            return self.defaults
        try:
            parsed = overrides if isinstance(overrides, JobOptions) else JobOptions.model_validate(overrides)
        except ValidationError as e:
            raise InvalidJobPayload(f"Invalid job options: {e}") from e
        return self.defaults.model_copy(
            update={name: getattr(parsed, name) for name in parsed.model_fields_set}
        )

    async def enqueue(
        self,
        analysis_type: AnalysisType,
        payload: AnalysisJobPayload | dict[str, Any],
        job_id: str,
        options: JobOptions | dict[str, Any] | None = None,
    ) -> str:
        """Record a job as waiting and send it to the analyzer's Celery queue."""
        try:
            if not isinstance(payload, AnalysisJobPayload):
                payload = AnalysisJobPayload.model_validate(payload)
        except ValidationError as e:
            raise InvalidJobPayload(f"Invalid job payload: {e}") from e
        if payload.analysis_type != analysis_type:
            raise InvalidJobPayload(
                f"Payload for {payload.analysis_type.value} sent to {analysis_type.value} queue"
            )
        opts = self.resolve_options(options)

        key = self._key(analysis_type, job_id)
        created_at = now_ms()
        await self.redis.hset(key, mapping={
            "id": job_id,
            "queue": analysis_type.value,
            "state": JobState.WAITING.value,
            "progress": 0,
            "attempts_made": 0,
            "payload": payload.model_dump_json(),
            "opts": opts.model_dump_json(),
            "created_at": created_at,
        })
        user_key = self._user_key(payload.user_id)
        member = self._user_member(analysis_type, job_id)
        await self.redis.zadd(user_key, {member: created_at})

        try:
            self.celery_app.send_task(
                task_name(analysis_type),
                args=[payload.model_dump(mode="json")],
                task_id=job_id,
                queue=analysis_type.value,
                countdown=opts.delay / 1000,
                priority=min(opts.priority, MAX_CELERY_PRIORITY),
            )
        except Exception:
            await self.redis.delete(key)
            await self.redis.zrem(user_key, member)
            logger.exception(f"[QUEUE] Could not dispatch {analysis_type.value} job {job_id}")
            raise

        logger.info(f"[QUEUE] Enqueued {analysis_type.value} job {job_id} (delay {opts.delay}ms)")
        return job_id

    async def get_job(self, analysis_type: AnalysisType, job_id: str) -> Optional[JobSnapshot]:
        data = await self.redis.hgetall(self._key(analysis_type, job_id))
        if not data:
            return None
        finished_at = data.get("finished_at")
        return JobSnapshot(
            id=data.get("id", job_id),
            queue=analysis_type,
            state=JobState(data.get("state", JobState.WAITING.value)),
            progress=int(data.get("progress") or 0),
            attempts_made=int(data.get("attempts_made") or 0),
            failed_reason=data.get("failed_reason") or None,
            last_error=data.get("last_error") or None,
            payload=json.loads(data["payload"]) if data.get("payload") else {},
            opts=JobOptions.model_validate_json(data["opts"]) if data.get("opts") else self.defaults,
            created_at=int(data.get("created_at") or 0),
            finished_at=int(finished_at) if finished_at else None,
        )

    async def list_user_jobs(self, user_id: str) -> list[JobSnapshot]:
        """The user's job records, newest first.

        Index entries whose record was removed by retention are dropped.
        """
        user_key = self._user_key(user_id)
        members = await self.redis.zrevrange(user_key, 0, -1)

        jobs = []
        pruned = []
        for member in members:
            queue, _, job_id = member.partition(":")
            try:
                analysis_type = AnalysisType(queue)
            except ValueError:
                pruned.append(member)
                continue
            job = await self.get_job(analysis_type, job_id)
            if job is None:
                pruned.append(member)
            else:
                jobs.append(job)

        if pruned:
            await self.redis.zrem(user_key, *pruned)
            logger.debug(f"[QUEUE] Dropped {len(pruned)} expired job(s) from {user_key}")
        return jobs

    async def _live_job(self, analysis_type: AnalysisType, job_id: str) -> Optional[JobSnapshot]:
        """The job, or None if it is missing or already terminal."""
        job = await self.get_job(analysis_type, job_id)
        if job is None:
            logger.warning(f"[QUEUE] {analysis_type.value} job {job_id} not found")
            return None
        if job.is_terminal:
            logger.warning(f"[QUEUE] {analysis_type.value} job {job_id} already {job.state.value}")
            return None
        return job

    async def set_progress(self, analysis_type: AnalysisType, job_id: str, progress: int) -> None:
        if await self._live_job(analysis_type, job_id) is None:
            return
        progress = max(0, min(100, int(progress)))
        await self.redis.hset(self._key(analysis_type, job_id), mapping={"progress": progress})

    async def mark_active(self, analysis_type: AnalysisType, job_id: str) -> Optional[JobSnapshot]:
        """Move a waiting job to active. Returns None if it cannot run."""
        job = await self._live_job(analysis_type, job_id)
        if job is None:
            return None
        await self.redis.hset(self._key(analysis_type, job_id), mapping={
            "state": JobState.ACTIVE.value,
            "started_at": now_ms(),
        })
        return job

    async def mark_completed(self, analysis_type: AnalysisType, job_id: str) -> None:
        job = await self._live_job(analysis_type, job_id)
        if job is None:
            return
        await self.redis.hset(self._key(analysis_type, job_id), mapping={
            "state": JobState.COMPLETED.value,
            "progress": 100,
            "finished_at": now_ms(),
        })
        logger.info(f"[QUEUE] {analysis_type.value} job {job_id} completed")
        await self._retain(analysis_type, JobState.COMPLETED, job_id, job.opts.remove_on_complete)

    async def record_failure(
        self,
        analysis_type: AnalysisType,
        job_id: str,
        error: str,
        retryable: bool = True,
    ) -> RetryDecision:
        """Count a failed attempt and decide whether the job is retried.

        With attempts left (and `retryable`) the job returns to `waiting`;
        otherwise it becomes `failed` and keeps `error` as its failure reason.
        """
        job = await self._live_job(analysis_type, job_id)
        if job is None:
            return RetryDecision(retry=False, attempts_made=0)

        attempts_made = job.attempts_made + 1
        key = self._key(analysis_type, job_id)

        if retryable and attempts_made < job.opts.attempts:
            delay_ms = job.opts.backoff_delay_ms(attempts_made)
            await self.redis.hset(key, mapping={
                "state": JobState.WAITING.value,
                "progress": 0,
                "attempts_made": attempts_made,
                "last_error": error,
            })
            logger.warning(
                f"[QUEUE] {analysis_type.value} job {job_id} failed attempt "
                f"{attempts_made}/{job.opts.attempts}, retrying in {delay_ms}ms: {error}"
            )
            return RetryDecision(retry=True, attempts_made=attempts_made, delay_ms=delay_ms)

        await self.redis.hset(key, mapping={
            "state": JobState.FAILED.value,
            "progress": 0,
            "attempts_made": attempts_made,
            "last_error": error,
            "failed_reason": error,
            "finished_at": now_ms(),
        })
        logger.error(
            f"[QUEUE] {analysis_type.value} job {job_id} failed after {attempts_made} attempts: {error}"
        )
        await self._retain(analysis_type, JobState.FAILED, job_id, job.opts.remove_on_fail)
        return RetryDecision(retry=False, attempts_made=attempts_made)

    async def _retain(self, analysis_type: AnalysisType, state: JobState, job_id: str, keep: int) -> None:
        """Keep the `keep` most recent records in `state`; delete the rest."""
        list_key = self._retention_key(analysis_type, state)
        await self.redis.lpush(list_key, job_id)
        expired = await self.redis.lrange(list_key, keep, -1)
        if not expired:
            return
        if keep > 0:
            await self.redis.ltrim(list_key, 0, keep - 1)
        else:
            await self.redis.delete(list_key)
        await self.redis.delete(*(self._key(analysis_type, old_id) for old_id in expired))
        logger.debug(f"[QUEUE] Removed {len(expired)} {state.value} {analysis_type.value} job(s)")
