"""
API v1 router aggregating all endpoints.
"""
from fastapi import APIRouter

from siteaudit.api.v1.analyze import router as analyze_router
from siteaudit.api.v1.progress import router as progress_router
from siteaudit.api.v1.results import router as results_router
from siteaudit.api.v1.user import router as user_router

api_router = APIRouter()

api_router.include_router(analyze_router)
api_router.include_router(progress_router)
api_router.include_router(results_router)
api_router.include_router(user_router)
