"""
User API Endpoint

Lists the caller's analyzer jobs that are still retained, newest first.
"""
from fastapi import APIRouter

from siteaudit.core.deps import ContextDep, UserIdDep
from siteaudit.schemas.analysis import UserJob, UserJobsResponse

router = APIRouter(prefix="/user", tags=["User"])


@router.get(
    "/jobs",
    response_model=UserJobsResponse,
    summary="List my analysis jobs",
)
async def list_jobs(ctx: ContextDep, user_id: UserIdDep) -> UserJobsResponse:
    snapshots = await ctx.job_queue.list_user_jobs(user_id)
    jobs = [
        UserJob(
            job_id=job.id,
            type=job.queue,
            state=job.state.value,
            progress=job.progress,
            url=job.payload.get("url"),
            attempts_made=job.attempts_made,
            failed_reason=job.failed_reason,
            created_at=job.created_at,
            finished_at=job.finished_at,
        )
        for job in snapshots
    ]
    return UserJobsResponse(jobs=jobs, total=len(jobs))
