"""
Exceptions for SiteAudit.

Domain errors are raised by the pipeline; the HTTP errors at the bottom are
raised only by the API layer.
"""
from fastapi import HTTPException, status


class SiteAuditError(Exception):
    """Base class for pipeline errors."""


class InvalidURL(SiteAuditError):
    """The submitted URL is not a well-formed absolute http(s) URL."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid URL provided: {url}")


class InvalidJobPayload(SiteAuditError):
    """A job payload or job option set failed schema validation."""


class FetchFailure(SiteAuditError):
    """The target page could not be retrieved."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to fetch {url}: {reason}")


class ExternalServiceFailure(SiteAuditError):
    """A third-party scoring service returned an error or no usable data."""

    def __init__(self, service: str, reason: str):
        self.service = service
        self.reason = reason
        super().__init__(f"{service} failed: {reason}")


class PersistenceFailure(SiteAuditError):
    """Writing to the result cache or the record store failed."""

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"Could not persist to {target}: {reason}")


class AnalysisJobFailed(SiteAuditError):
    """An analyzer job used up its attempts."""

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Job {job_id} failed: {reason}")


class NotFoundError(HTTPException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found"
        )


class ForbiddenError(HTTPException):
    """Access denied exception."""

    def __init__(self, detail: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class BadRequestError(HTTPException):
    """Bad request exception."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class UnauthorizedError(HTTPException):
    """Missing caller identity."""

    def __init__(self, detail: str = "User identity required"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail
        )
