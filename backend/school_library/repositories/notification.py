"""
Repository para Notification.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.models.notification import Notification
from school_library.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[Notification]):
    """Repository para notificações do sistema."""

    def __init__(self, db: AsyncSession):
        super().__init__(Notification, db)

    async def list_recent(self, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        stmt = select(Notification)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        result = await self.db.execute(
            stmt.order_by(Notification.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())
