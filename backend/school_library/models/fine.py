"""
Models de multas: Fine e FineSetting.
"""

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from school_library.db.session import Base
from school_library.models.base import UUIDMixin, TimestampMixin, enum_type
from school_library.models.enums import FineStatus, FineType


class Fine(Base, UUIDMixin, TimestampMixin):
    """
    Penalidade monetária aplicada a um leitor.

    Attributes:
        id: UUID único da multa
        student_id / staff_id: Leitor multado (exatamente um)
        borrowing_id: Empréstimo de origem (opcional)
        amount: Valor na moeda configurada (CURRENCY)
        fine_type: Categoria da multa
        description: Texto exibido ao leitor
        status: UNPAID, PAID, CLEARED ou COLLECTED
    """
    __tablename__ = "fines"

    student_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    staff_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("staff.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    borrowing_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("borrowings.id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    fine_type: Mapped[FineType] = mapped_column(
        enum_type(FineType, "fine_type"),
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    status: Mapped[FineStatus] = mapped_column(
        enum_type(FineStatus, "fine_status"),
        nullable=False,
        default=FineStatus.UNPAID,
        index=True,
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_fines_amount_non_negative"),
        CheckConstraint(
            "(student_id IS NULL) <> (staff_id IS NULL)",
            name="ck_fines_single_patron",
        ),
        Index("ix_fines_borrowing_type", "borrowing_id", "fine_type"),
    )

    @property
    def patron_id(self) -> uuid.UUID:
        return self.student_id if self.student_id is not None else self.staff_id

    def __repr__(self) -> str:
        return f"<Fine {self.fine_type.value} {self.amount} - {self.status.value}>"


class FineSetting(Base, UUIDMixin, TimestampMixin):
    """Valor configurado por tipo de multa (sobrepõe o padrão embutido)."""
    __tablename__ = "fine_settings"

    fine_type: Mapped[FineType] = mapped_column(
        enum_type(FineType, "fine_type"),
        unique=True,
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_fine_settings_amount_non_negative"),
    )

    def __repr__(self) -> str:
        return f"<FineSetting {self.fine_type.value}={self.amount}>"
