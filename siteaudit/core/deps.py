"""
FastAPI dependencies for the application context and caller identity.
"""
from typing import Annotated, Optional

from fastapi import Depends, Header, Request

from siteaudit.context import AppContext
from siteaudit.core.exceptions import UnauthorizedError


def get_context(request: Request) -> AppContext:
    """The context built by the application lifespan."""
    return request.app.state.context


async def get_user_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> str:
    """Caller identity from the `X-User-Id` header."""
    if not x_user_id or not x_user_id.strip():
        raise UnauthorizedError("X-User-Id header is required")
    return x_user_id.strip()


ContextDep = Annotated[AppContext, Depends(get_context)]
UserIdDep = Annotated[str, Depends(get_user_id)]
