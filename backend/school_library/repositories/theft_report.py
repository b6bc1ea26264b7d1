"""
Repository para TheftReport.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.models.enums import TheftReportStatus
from school_library.models.theft_report import TheftReport
from school_library.repositories.base import BaseRepository


class TheftReportRepository(BaseRepository[TheftReport]):
    """Repository para operações CRUD de TheftReport."""

    def __init__(self, db: AsyncSession):
        super().__init__(TheftReport, db)

    async def search(
        self,
        status: TheftReportStatus | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[TheftReport], int]:
        skip = (page - 1) * page_size

        query = select(TheftReport)
        if status:
            query = query.where(TheftReport.status == status)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            query.offset(skip).limit(page_size).order_by(TheftReport.created_at.desc())
        )
        return list(result.scalars().all()), total
