"""
Model de empréstimo de livros.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from school_library.db.session import Base
from school_library.models.base import UUIDMixin, TimestampMixin, enum_type
from school_library.models.enums import BookCondition, BorrowerType, BorrowingStatus


class Borrowing(Base, UUIDMixin, TimestampMixin):
    """
    Empréstimo de um livro (e opcionalmente de uma cópia) para um leitor.

    Regras de negócio:
        - Leitor é aluno OU funcionário, nunca os dois
        - due_date estritamente posterior a borrowed_date
        - Registro nunca é apagado (histórico)
        - Atraso é derivado na consulta (due_date < hoje), não persistido
        - Perda mantém status ACTIVE com is_lost=True até o livro aparecer

    Attributes:
        id: UUID único do empréstimo
        student_id / staff_id: FK para o leitor (exatamente um preenchido)
        borrower_type: STUDENT ou STAFF
        book_id: FK para o título
        book_copy_id: FK para a cópia física (opcional)
        tracking_code: Código da cópia no momento do empréstimo
        borrowed_date / due_date / returned_date: Datas do ciclo
        status: ACTIVE, RETURNED, OVERDUE (legado) ou LOST (legado)
        condition_at_issue / condition_at_return: Estado da cópia
        fine_amount: Multa calculada na devolução
        is_lost: Marcado como perdido
    """
    __tablename__ = "borrowings"

    student_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("students.id", ondelete="RESTRICT"),
        nullable=True,
    )
    staff_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("staff.id", ondelete="RESTRICT"),
        nullable=True,
    )
    borrower_type: Mapped[BorrowerType] = mapped_column(
        enum_type(BorrowerType, "borrower_type"),
        nullable=False,
    )
    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("books.id", ondelete="RESTRICT"),
        nullable=False,
    )
    book_copy_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("book_copies.id", ondelete="SET NULL"),
        nullable=True,
    )
    tracking_code: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    borrowed_date: Mapped[date] = mapped_column(Date, nullable=False, default=date.today)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    returned_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[BorrowingStatus] = mapped_column(
        enum_type(BorrowingStatus, "borrowing_status"),
        nullable=False,
        default=BorrowingStatus.ACTIVE,
    )
    condition_at_issue: Mapped[BookCondition] = mapped_column(
        enum_type(BookCondition, "book_condition"),
        nullable=False,
        default=BookCondition.GOOD,
    )
    condition_at_return: Mapped[Optional[BookCondition]] = mapped_column(
        enum_type(BookCondition, "book_condition"),
        nullable=True,
    )
    fine_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=Decimal("0"),
    )
    is_lost: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    return_notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(student_id IS NULL) <> (staff_id IS NULL)",
            name="ck_borrowings_single_borrower",
        ),
        CheckConstraint("due_date > borrowed_date", name="ck_borrowings_due_after_borrowed"),
        CheckConstraint("fine_amount >= 0", name="ck_borrowings_fine_non_negative"),
        Index("ix_borrowings_student_status", "student_id", "status"),
        Index("ix_borrowings_staff_status", "staff_id", "status"),
        Index("ix_borrowings_book_id", "book_id"),
        Index("ix_borrowings_tracking_code", "tracking_code"),
        Index("ix_borrowings_due_date", "due_date"),
        # Uma cópia só pode estar em um empréstimo ativo por vez
        Index(
            "uq_borrowings_active_copy",
            "book_copy_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Borrowing {self.id} - {self.status.value}>"

    @property
    def patron_id(self) -> uuid.UUID:
        """ID do leitor, independente do tipo."""
        return self.student_id if self.student_id is not None else self.staff_id

    def is_overdue(self, today: date | None = None) -> bool:
        """Atraso derivado: ativo, não perdido e vencido."""
        today = today or date.today()
        return (
            self.status in (BorrowingStatus.ACTIVE, BorrowingStatus.OVERDUE)
            and not self.is_lost
            and self.due_date < today
        )

    def days_overdue(self, today: date | None = None) -> int:
        """Dias em atraso em relação a today (0 se dentro do prazo)."""
        today = today or date.today()
        return max(0, (today - self.due_date).days)
