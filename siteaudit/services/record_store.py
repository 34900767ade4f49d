"""
Analysis Record Store

Merges analyzer results into the single `seo_analysis` row for a
(user, url). Each write is one INSERT ... ON CONFLICT DO UPDATE that only
touches the column of the analyzer that produced it, so sibling tasks
finishing at the same time cannot overwrite each other.
"""

import logging
import uuid
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from siteaudit.core.exceptions import PersistenceFailure
from siteaudit.database import session_scope
from siteaudit.models.analysis import AnalysisRecord, AnalysisType

logger = logging.getLogger(__name__)


def record_title(url: str) -> str:
    return f"SEO analysis - {url}"[:255]


class AnalysisRecordStore:
    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self.session_maker = session_maker

    async def merge_result(
        self,
        user_id: str,
        url: str,
        analysis_type: AnalysisType,
        result: dict[str, Any],
    ) -> None:
        """Create the record or replace only `analysis_type`'s column on it."""
        column = analysis_type.value
        try:
            async with session_scope(self.session_maker) as session:
                dialect = session.get_bind().dialect.name
                insert = pg_insert if dialect == "postgresql" else sqlite_insert

                stmt = insert(AnalysisRecord).values(
                    id=uuid.uuid4(),
                    user_id=user_id,
                    url=url,
                    title=record_title(url),
                    **{column: result},
                )
                stmt = stmt.on_conflict_do_update(
                    index_elements=[AnalysisRecord.user_id, AnalysisRecord.url],
                    set_={
                        column: getattr(stmt.excluded, column),
                        "title": stmt.excluded.title,
                        "updated_at": func.now(),
                    },
                )
                await session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"[STORE] Failed to merge {column} result for {user_id} {url}: {e}")
            raise PersistenceFailure("analysis record", str(e)) from e

        logger.info(f"[STORE] Merged {column} result for {user_id} {url}")

    async def get(self, user_id: str, url: str) -> Optional[AnalysisRecord]:
        async with self.session_maker() as session:
            result = await session.execute(
                select(AnalysisRecord).where(
                    AnalysisRecord.user_id == user_id,
                    AnalysisRecord.url == url,
                )
            )
            return result.scalar_one_or_none()
