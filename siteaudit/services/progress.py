"""
Read-side views over job records and merged analysis records.

Nothing here mutates state; missing jobs and records are reported as
statuses, not raised.
"""

import asyncio
from typing import Optional

from siteaudit.models.analysis import AnalysisRecord, AnalysisType
from siteaudit.schemas.analysis import (
    AnalysisResultResponse,
    AnalysisResults,
    JobProgress,
    SessionProgress,
)
from siteaudit.services.analyzers.common import round_half_up
from siteaudit.services.job_queue import JobQueue, JobSnapshot, JobState

SESSION_TYPES = (AnalysisType.STRUCTURAL, AnalysisType.CONTENT, AnalysisType.TECHNICAL)


def session_job_id(analysis_type: AnalysisType, session_id: str) -> str:
    return f"{analysis_type.value}-{session_id}"


def job_progress(analysis_type: AnalysisType, job: Optional[JobSnapshot]) -> JobProgress:
    """Reduce one job record to the status shown to clients."""
    if job is None:
        return JobProgress(type=analysis_type, status="not_found", progress=0)

    if job.failed_reason:
        status = "failed"
    elif job.state == JobState.COMPLETED:
        status = "completed"
    elif job.state == JobState.ACTIVE or job.progress > 0:
        status = "processing"
    else:
        status = "waiting"

    return JobProgress(
        type=analysis_type,
        status=status,
        progress=job.progress,
        id=job.id,
        error=job.failed_reason,
    )


def aggregate_progress(session_id: str, user_id: str, jobs: list[JobProgress]) -> SessionProgress:
    all_completed = all(job.status == "completed" for job in jobs)
    return SessionProgress(
        session_id=session_id,
        user_id=user_id,
        status="completed" if all_completed else "processing",
        overall_progress=round_half_up(sum(job.progress for job in jobs) / len(SESSION_TYPES)),
        jobs=jobs,
        is_ready=all_completed,
    )


async def get_session_progress(queue: JobQueue, session_id: str, user_id: str) -> SessionProgress:
    """Look up the session's three jobs and reduce them to a session status."""
    snapshots = await asyncio.gather(*(
        queue.get_job(analysis_type, session_job_id(analysis_type, session_id))
        for analysis_type in SESSION_TYPES
    ))
    jobs = [job_progress(t, job) for t, job in zip(SESSION_TYPES, snapshots)]
    return aggregate_progress(session_id, user_id, jobs)


def summarize_record(record: AnalysisRecord) -> AnalysisResultResponse:
    """Completion flag, coarse progress and the stored analyzer results."""
    done = sum(1 for t in SESSION_TYPES if record.result_for(t) is not None)
    is_complete = done == len(SESSION_TYPES)
    return AnalysisResultResponse(
        user_id=record.user_id,
        url=record.url,
        is_complete=is_complete,
        progress=100 if is_complete else round_half_up(done * 33.33),
        analysis=AnalysisResults(
            structural=record.structural,
            content=record.content,
            technical=record.technical,
        ),
    )
