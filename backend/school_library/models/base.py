"""
Mixins e tipos auxiliares para models SQLAlchemy.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum as SQLEnum, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column


class UUIDMixin:
    """Mixin que adiciona ID do tipo UUID como primary key."""
    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )


class TimestampMixin:
    """
    Mixin que adiciona timestamps de criação e atualização.

    eager_defaults busca os valores gerados pelo banco no próprio flush,
    evitando lazy load de atributos expirados em sessões async.
    """
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"eager_defaults": True}


def enum_type(enum_cls: type[enum.Enum], name: str) -> SQLEnum:
    """Enum persistido pelo valor (minúsculo), não pelo nome do membro."""
    return SQLEnum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
    )
