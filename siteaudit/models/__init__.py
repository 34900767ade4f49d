"""
SQLAlchemy models.
"""
from siteaudit.models.base import Base, BaseModel, TimestampMixin, UUIDMixin
from siteaudit.models.analysis import AnalysisRecord, AnalysisType

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    "AnalysisRecord",
    "AnalysisType",
]
