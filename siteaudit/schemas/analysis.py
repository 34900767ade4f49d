"""
Analysis schemas: job payloads, job options and API responses.
"""
from typing import Any, Literal

from pydantic import ConfigDict, Field

from siteaudit.models.analysis import AnalysisType
from siteaudit.schemas.common import BaseSchema

PAYLOAD_SCHEMA_VERSION = 1


# ============================================================================
# Queue boundary
# ============================================================================

class JobBackoff(BaseSchema):
    """Delay policy between failed attempts."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: Literal["exponential", "fixed"] = "exponential"
    delay: int = Field(default=2000, ge=0, description="Base delay in milliseconds")


class JobOptions(BaseSchema):
    """Per-job queue options; any field may be overridden at enqueue time."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    priority: int = Field(default=0, ge=0)
    delay: int = Field(default=0, ge=0, description="Start delay in milliseconds")
    attempts: int = Field(default=3, ge=1, le=25)
    backoff: JobBackoff = Field(default_factory=JobBackoff)
    remove_on_complete: int = Field(default=10, ge=0)
    remove_on_fail: int = Field(default=5, ge=0)

    def backoff_delay_ms(self, attempts_made: int) -> int:
        """Delay before the next attempt after `attempts_made` failures."""
        if self.backoff.type == "fixed":
            return self.backoff.delay
        return round(2 ** (attempts_made - 1) * self.backoff.delay)


class AnalysisOptions(BaseSchema):
    """Analyzer switches carried in every job payload."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    include_images: bool = True
    check_mobile_friendly: bool = True


class AnalysisJobPayload(BaseSchema):
    """Versioned payload of one analyzer job."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    schema_version: Literal[1] = PAYLOAD_SCHEMA_VERSION
    url: str
    user_id: str = Field(..., min_length=1)
    timestamp: int = Field(..., description="Enqueue time, epoch milliseconds")
    options: AnalysisOptions = Field(default_factory=AnalysisOptions)
    analysis_type: AnalysisType


# ============================================================================
# API
# ============================================================================

class AnalyzeRequest(BaseSchema):
    """Request to analyze a website."""

    url: str = Field(..., examples=["https://example.com"])
    priority: int | None = Field(default=None, ge=0)
    options: AnalysisOptions | None = None


class AnalyzeResponse(BaseSchema):
    """Session handle returned after the three jobs are queued."""

    success: bool = True
    user_id: str
    message: str
    session_id: str
    task_ids: list[str]
    tracking_url: str


class SingleAnalysisRequest(BaseSchema):
    """Request to queue one analyzer on its own."""

    type: AnalysisType
    url: str
    options: AnalysisOptions | None = None
    job_options: dict[str, Any] | None = None


class SingleAnalysisResponse(BaseSchema):
    message: str
    job_id: str


class JobProgress(BaseSchema):
    type: AnalysisType
    status: Literal["not_found", "waiting", "processing", "completed", "failed"]
    progress: int = 0
    id: str | None = None
    error: str | None = None


class SessionProgress(BaseSchema):
    session_id: str
    user_id: str
    status: Literal["processing", "completed"]
    overall_progress: int
    jobs: list[JobProgress]
    is_ready: bool


class AnalysisResults(BaseSchema):
    structural: dict[str, Any] | None = None
    content: dict[str, Any] | None = None
    technical: dict[str, Any] | None = None


class AnalysisResultResponse(BaseSchema):
    user_id: str
    url: str
    is_complete: bool
    progress: int
    analysis: AnalysisResults


class UserJob(BaseSchema):
    """One of the caller's analyzer jobs."""

    job_id: str
    type: AnalysisType
    state: Literal["waiting", "active", "completed", "failed"]
    progress: int
    url: str | None = None
    attempts_made: int = 0
    failed_reason: str | None = None
    created_at: int
    finished_at: int | None = None


class UserJobsResponse(BaseSchema):
    jobs: list[UserJob]
    total: int


class CachedResultResponse(BaseSchema):
    job_id: str
    result: dict[str, Any]
