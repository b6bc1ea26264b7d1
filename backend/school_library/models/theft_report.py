"""
Model de relatório de troca de cópias ("roubo").
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from school_library.db.session import Base
from school_library.models.base import UUIDMixin, TimestampMixin, enum_type
from school_library.models.enums import TheftReportStatus


class TheftReport(Base, UUIDMixin, TimestampMixin):
    """
    Registro de uma devolução com código de rastreio divergente.

    Attributes:
        expected_tracking_code: Código que o leitor deveria devolver
        returned_tracking_code: Código efetivamente devolvido
        borrowing_id: Empréstimo do leitor que devolveu (esperado)
        victim_borrowing_id: Empréstimo ativo dono do código devolvido
        student_id: Leitor que devolveu a cópia de outro
        victim_student_id: Dono legítimo da cópia devolvida
        fine_amount: Valor da multa stolen_book aplicada
        status: REPORTED, INVESTIGATING, RESOLVED ou CLOSED
    """
    __tablename__ = "theft_reports"

    expected_tracking_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    returned_tracking_code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    borrowing_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("borrowings.id", ondelete="SET NULL"),
        nullable=True,
    )
    victim_borrowing_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("borrowings.id", ondelete="SET NULL"),
        nullable=True,
    )
    student_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="SET NULL"),
        nullable=True,
    )
    victim_student_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="SET NULL"),
        nullable=True,
    )
    book_copy_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("book_copies.id", ondelete="SET NULL"),
        nullable=True,
    )
    fine_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    status: Mapped[TheftReportStatus] = mapped_column(
        enum_type(TheftReportStatus, "theft_report_status"),
        nullable=False,
        default=TheftReportStatus.REPORTED,
    )
    reported_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    def __repr__(self) -> str:
        return f"<TheftReport {self.returned_tracking_code} - {self.status.value}>"
