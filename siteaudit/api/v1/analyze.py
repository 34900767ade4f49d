"""
Analyze API Endpoint

Queues analysis sessions (all three analyzers) and single analyzer jobs.
Poll `/progress/{session_id}` with the returned session id for status.
"""
import logging

from fastapi import APIRouter

from siteaudit.core.deps import ContextDep, UserIdDep
from siteaudit.core.exceptions import BadRequestError, InvalidJobPayload, InvalidURL
from siteaudit.schemas.analysis import (
    AnalyzeRequest,
    AnalyzeResponse,
    SingleAnalysisRequest,
    SingleAnalysisResponse,
)
from siteaudit.services.orchestrator import enqueue_single_analysis, start_analysis_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analyze", tags=["Analyze"])


@router.post(
    "",
    response_model=AnalyzeResponse,
    summary="Analyze a website",
    description="""
    Queue structural, content and technical analysis of a URL.

    The three jobs start 0s, 1s and 2s apart. Use `trackingUrl` to poll
    their progress; results are merged into one record per user and URL.
    """,
)
async def analyze_website(
    request: AnalyzeRequest,
    ctx: ContextDep,
    user_id: UserIdDep,
) -> AnalyzeResponse:
    try:
        session = await start_analysis_session(
            ctx.job_queue,
            request.url,
            user_id,
            priority=request.priority,
            options=request.options,
            progress_path=f"{ctx.settings.API_V1_STR}/progress",
        )
    except (InvalidURL, InvalidJobPayload) as e:
        raise BadRequestError(str(e))

    return AnalyzeResponse(
        user_id=user_id,
        message="Analysis jobs queued successfully",
        session_id=session.session_id,
        task_ids=list(session.task_ids),
        tracking_url=session.tracking_url,
    )


@router.post(
    "/single",
    response_model=SingleAnalysisResponse,
    summary="Queue a single analyzer",
)
async def analyze_single(
    request: SingleAnalysisRequest,
    ctx: ContextDep,
    user_id: UserIdDep,
) -> SingleAnalysisResponse:
    try:
        job_id = await enqueue_single_analysis(
            ctx.job_queue,
            request.type,
            request.url,
            user_id,
            options=request.options,
            job_options=request.job_options,
        )
    except (InvalidURL, InvalidJobPayload) as e:
        raise BadRequestError(str(e))

    logger.info(f"Single {request.type.value} job queued by {user_id}: {job_id}")
    return SingleAnalysisResponse(message="Single analysis job queued", job_id=job_id)
