"""
Model de notificação do sistema.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from school_library.db.session import Base
from school_library.models.base import UUIDMixin, TimestampMixin, enum_type
from school_library.models.enums import NotificationType


class Notification(Base, UUIDMixin, TimestampMixin):
    """Aviso exibido aos bibliotecários (ex: livro perdido encontrado)."""
    __tablename__ = "notifications"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(String(1000), nullable=False)
    type: Mapped[NotificationType] = mapped_column(
        enum_type(NotificationType, "notification_type"),
        nullable=False,
        default=NotificationType.INFO,
    )
    related_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Notification {self.title}>"
