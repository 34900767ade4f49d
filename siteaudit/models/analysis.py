"""
Merged analysis record: one row per (user, url).
"""
from enum import Enum as PyEnum

from sqlalchemy import JSON, Column, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB

from siteaudit.models.base import Base, BaseModel

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class AnalysisType(str, PyEnum):
    STRUCTURAL = "structural"
    CONTENT = "content"
    TECHNICAL = "technical"


class AnalysisRecord(Base, BaseModel):
    """Structural, content and technical results for one user and URL.

    Each analyzer column stays NULL until that analyzer's task has finished.
    """

    __tablename__ = "seo_analysis"
    __table_args__ = (
        UniqueConstraint("user_id", "url", name="uq_seo_analysis_user_url"),
    )

    user_id = Column(String(255), nullable=False, index=True)
    url = Column(String(400), nullable=False)
    title = Column(String(255), nullable=False)

    structural = Column(JSONDocument, nullable=True)
    content = Column(JSONDocument, nullable=True)
    technical = Column(JSONDocument, nullable=True)

    def result_for(self, analysis_type: AnalysisType) -> dict | None:
        return getattr(self, analysis_type.value)

    def __repr__(self) -> str:
        return f"<AnalysisRecord {self.user_id} {self.url}>"
