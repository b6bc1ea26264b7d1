"""
Schemas Pydantic para Notification.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from school_library.models.enums import NotificationType


class NotificationRead(BaseModel):
    id: UUID
    title: str
    message: str
    type: NotificationType
    related_id: UUID | None = None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
