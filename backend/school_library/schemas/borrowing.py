"""
Schemas Pydantic para Borrowing (empréstimo).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from school_library.models.enums import BookCondition, BorrowerType, BorrowingStatus
from school_library.schemas.base import BaseSchema


class BorrowingCreate(BaseSchema):
    """
    Schema para emprestar um livro.

    Exatamente um entre student_id e staff_id deve ser informado.
    Sem book_copy_id, o empréstimo é registrado só para o título.
    """

    student_id: UUID | None = None
    staff_id: UUID | None = None
    book_id: UUID = Field(..., description="ID do título")
    book_copy_id: UUID | None = Field(None, description="Cópia específica (opcional)")
    due_date: date | None = Field(None, description="Default: hoje + LOAN_PERIOD_DAYS")
    borrowed_date: date | None = None
    condition_at_issue: BookCondition = BookCondition.GOOD
    notes: str | None = Field(None, max_length=1000)


class BorrowingItem(BaseSchema):
    """Um livro de um lote de empréstimos."""

    book_id: UUID = Field(..., description="ID do título")
    book_copy_id: UUID | None = Field(None, description="Cópia específica (opcional)")
    condition_at_issue: BookCondition = BookCondition.GOOD
    notes: str | None = Field(None, max_length=1000)


class BorrowingBatchCreate(BaseSchema):
    """
    Schema para emprestar vários livros ao mesmo leitor.

    O lote inteiro conta contra a cota do leitor de uma vez.
    """

    student_id: UUID | None = None
    staff_id: UUID | None = None
    items: list[BorrowingItem] = Field(..., min_length=1, max_length=20)
    due_date: date | None = Field(None, description="Default: hoje + LOAN_PERIOD_DAYS")
    borrowed_date: date | None = None


class BorrowingReturn(BaseSchema):
    """Schema para devolução (ou registro de perda)."""

    condition_at_return: BookCondition = BookCondition.GOOD
    fine_amount: Decimal | None = Field(None, description="Sobrepõe o cálculo automático")
    is_lost: bool = False
    returned_tracking_code: str | None = Field(None, max_length=64)
    prevent_auto_fine: bool = False
    notes: str | None = Field(None, max_length=1000)


class BorrowingRead(BaseModel):
    """
    Schema de leitura de empréstimo.

    derived_status e days_overdue são calculados na hora; o atraso
    nunca é persistido.
    """

    id: UUID
    student_id: UUID | None = None
    staff_id: UUID | None = None
    borrower_type: BorrowerType
    book_id: UUID
    book_copy_id: UUID | None = None
    tracking_code: str | None = None
    borrowed_date: date
    due_date: date
    returned_date: date | None = None
    status: BorrowingStatus
    condition_at_issue: BookCondition
    condition_at_return: BookCondition | None = None
    fine_amount: Decimal
    is_lost: bool
    notes: str | None = None
    return_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @computed_field
    @property
    def derived_status(self) -> str:
        """active, overdue, returned ou lost."""
        if self.status == BorrowingStatus.RETURNED:
            return "returned"
        if self.is_lost or self.status == BorrowingStatus.LOST:
            return "lost"
        if self.due_date < date.today():
            return "overdue"
        return "active"

    @computed_field
    @property
    def days_overdue(self) -> int:
        """Dias em atraso (0 se devolvido, perdido ou dentro do prazo)."""
        if self.derived_status != "overdue":
            return 0
        return (date.today() - self.due_date).days


class FoundLostRequest(BaseSchema):
    tracking_code: str = Field(..., min_length=1, max_length=64)
    found_by_patron_id: UUID | None = None


class FoundLostResponse(BaseModel):
    restored_borrowing: BorrowingRead
    cleared_fine_message: str
