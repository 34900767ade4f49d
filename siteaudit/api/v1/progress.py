"""
Progress API Endpoint
"""
from typing import Optional

from fastapi import APIRouter, Query

from siteaudit.core.deps import ContextDep
from siteaudit.core.exceptions import BadRequestError
from siteaudit.schemas.analysis import SessionProgress
from siteaudit.services.progress import get_session_progress

router = APIRouter(tags=["Progress"])


@router.get(
    "/progress/{session_id}",
    response_model=SessionProgress,
    summary="Get analysis session progress",
)
async def session_progress(
    session_id: str,
    ctx: ContextDep,
    user_id: Optional[str] = Query(None),
) -> SessionProgress:
    """Status of each analyzer job in the session and the overall progress."""
    if not user_id:
        raise BadRequestError("user_id is required")
    return await get_session_progress(ctx.job_queue, session_id, user_id)
