"""
Results API Endpoints

Merged analysis records by (user, url), and raw analyzer output cached per
job for a limited time.
"""
from fastapi import APIRouter

from siteaudit.core.deps import ContextDep, UserIdDep
from siteaudit.core.exceptions import BadRequestError, ForbiddenError, InvalidURL, NotFoundError
from siteaudit.models.analysis import AnalysisType
from siteaudit.schemas.analysis import AnalysisResultResponse, CachedResultResponse
from siteaudit.services.fetcher import validate_url
from siteaudit.services.progress import summarize_record

router = APIRouter(prefix="/result", tags=["Results"])


def job_type_from_id(task_id: str) -> AnalysisType | None:
    """Analyzer type encoded as the `{type}-` prefix of a job id."""
    prefix, _, _ = task_id.partition("-")
    try:
        return AnalysisType(prefix)
    except ValueError:
        return None


# Registered before the (user, url) route so "job" is not taken as a user id
@router.get(
    "/job/{task_id}",
    response_model=CachedResultResponse,
    summary="Get a cached analyzer result",
)
async def cached_result(
    task_id: str,
    ctx: ContextDep,
    user_id: UserIdDep,
) -> CachedResultResponse:
    analysis_type = job_type_from_id(task_id)
    if analysis_type is not None:
        job = await ctx.job_queue.get_job(analysis_type, task_id)
        owner = job.payload.get("user_id") if job else None
        if owner and owner != user_id:
            raise ForbiddenError("You can only access your own analysis results")

    result = await ctx.result_cache.fetch(task_id)
    if result is None:
        raise NotFoundError("Result")
    return CachedResultResponse(job_id=task_id, result=result)


@router.get(
    "/{user_id}/{url:path}",
    response_model=AnalysisResultResponse,
    summary="Get the merged analysis for a URL",
)
async def analysis_result(user_id: str, url: str, ctx: ContextDep) -> AnalysisResultResponse:
    try:
        normalized = validate_url(url)
    except InvalidURL as e:
        raise BadRequestError(str(e))

    record = await ctx.record_store.get(user_id, normalized)
    if record is None:
        raise NotFoundError("Analysis")
    return summarize_record(record)
