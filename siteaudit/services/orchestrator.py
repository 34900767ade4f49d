"""
Session Orchestrator

Fans one analysis request out into three analyzer jobs (structural,
content, technical) against the same URL, started 0s, 1s and 2s apart to
spread the load on the target host.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

from pydantic import ValidationError

from siteaudit.core.exceptions import InvalidJobPayload
from siteaudit.models.analysis import AnalysisType
from siteaudit.schemas.analysis import AnalysisJobPayload, AnalysisOptions
from siteaudit.services.fetcher import validate_url
from siteaudit.services.job_queue import JobQueue, now_ms
from siteaudit.services.progress import SESSION_TYPES, session_job_id

logger = logging.getLogger(__name__)

# Start delay per analyzer, in milliseconds
STAGGER_MS = {
    AnalysisType.STRUCTURAL: 0,
    AnalysisType.CONTENT: 1000,
    AnalysisType.TECHNICAL: 2000,
}

DEFAULT_PROGRESS_PATH = "/api/v1/progress"


@dataclass(frozen=True)
class AnalysisSession:
    session_id: str
    user_id: str
    url: str
    created_at: int
    task_ids: tuple[str, ...]
    tracking_url: str


def build_payload(
    analysis_type: AnalysisType,
    url: str,
    user_id: str,
    timestamp: int,
    options: AnalysisOptions,
) -> AnalysisJobPayload:
    try:
        return AnalysisJobPayload(
            url=url,
            user_id=user_id,
            timestamp=timestamp,
            options=options,
            analysis_type=analysis_type,
        )
    except ValidationError as e:
        raise InvalidJobPayload(f"Invalid job payload: {e}") from e


async def start_analysis_session(
    queue: JobQueue,
    url: str,
    user_id: str,
    priority: Optional[int] = None,
    options: Optional[AnalysisOptions] = None,
    progress_path: str = DEFAULT_PROGRESS_PATH,
) -> AnalysisSession:
    """Queue all three analyzers for `url`.

    Raises InvalidURL before anything is enqueued.
    """
    normalized = validate_url(url)
    session_id = str(uuid.uuid4())
    created_at = now_ms()
    options = options or AnalysisOptions()

    task_ids = []
    for analysis_type in SESSION_TYPES:
        job_id = session_job_id(analysis_type, session_id)
        payload = build_payload(analysis_type, normalized, user_id, created_at, options)
        job_options = {"delay": STAGGER_MS[analysis_type]}
        if priority is not None:
            job_options["priority"] = priority
        await queue.enqueue(analysis_type, payload, job_id, job_options)
        task_ids.append(job_id)

    logger.info(f"[SESSION] {session_id} queued for {user_id}: {normalized}")

    return AnalysisSession(
        session_id=session_id,
        user_id=user_id,
        url=normalized,
        created_at=created_at,
        task_ids=tuple(task_ids),
        tracking_url=f"{progress_path}/{session_id}?user_id={quote(user_id, safe='')}",
    )


async def enqueue_single_analysis(
    queue: JobQueue,
    analysis_type: AnalysisType | str,
    url: str,
    user_id: str,
    options: Optional[AnalysisOptions] = None,
    job_options: Optional[dict[str, Any]] = None,
) -> str:
    """Queue one analyzer on its own; `job_options` override the queue defaults."""
    try:
        analysis_type = AnalysisType(analysis_type)
    except ValueError:
        raise InvalidJobPayload(f"Invalid analysis type: {analysis_type}")

    normalized = validate_url(url)
    job_id = f"{analysis_type.value}-{uuid.uuid4()}"
    payload = build_payload(analysis_type, normalized, user_id, now_ms(), options or AnalysisOptions())
    await queue.enqueue(analysis_type, payload, job_id, job_options)
    logger.info(f"[SESSION] Single {analysis_type.value} job {job_id} queued for {user_id}")
    return job_id
