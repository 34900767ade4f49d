"""
Pydantic schemas.
"""
from siteaudit.schemas.common import BaseSchema
from siteaudit.schemas.analysis import (
    PAYLOAD_SCHEMA_VERSION,
    AnalysisJobPayload,
    AnalysisOptions,
    AnalysisResultResponse,
    AnalysisResults,
    AnalyzeRequest,
    AnalyzeResponse,
    CachedResultResponse,
    JobBackoff,
    JobOptions,
    JobProgress,
    SessionProgress,
    SingleAnalysisRequest,
    SingleAnalysisResponse,
    UserJob,
    UserJobsResponse,
)
