"""
Schemas Pydantic para detecção de troca de cópias e TheftReport.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from school_library.models.enums import BookCondition, TheftReportStatus
from school_library.schemas.base import BaseSchema
from school_library.schemas.borrowing import BorrowingRead


class MismatchRequest(BaseSchema):
    """
    Leitura de código no balcão.

    Sem expected_codes, os códigos esperados vêm dos empréstimos
    ativos do leitor informado em patron_id.
    """

    returned_code: str = Field(..., min_length=1, max_length=64)
    expected_codes: list[str] | None = None
    patron_id: UUID | None = None


class MismatchResponse(BaseModel):
    is_mismatch: bool
    throttled: bool = False
    expected_borrowing: BorrowingRead | None = None
    victim_borrowing: BorrowingRead | None = None
    fine_amount: Decimal | None = None
    message: str


class TheftProcessRequest(BaseSchema):
    """
    Tratamento de uma troca confirmada.

    fine_amount sobrepõe o valor stolen_book configurado; expected_borrowing_id
    escolhe qual empréstimo do leitor é marcado como perdido.
    """

    returned_code: str = Field(..., min_length=1, max_length=64)
    patron_id: UUID
    condition_at_return: BookCondition = BookCondition.GOOD
    notes: str | None = Field(None, max_length=1000)
    fine_amount: Decimal | None = Field(None, ge=0, description="Sobrepõe o valor configurado")
    expected_borrowing_id: UUID | None = None


class TheftReportRead(BaseModel):
    id: UUID
    expected_tracking_code: str | None = None
    returned_tracking_code: str
    borrowing_id: UUID | None = None
    victim_borrowing_id: UUID | None = None
    student_id: UUID | None = None
    victim_student_id: UUID | None = None
    book_copy_id: UUID | None = None
    fine_amount: Decimal
    status: TheftReportStatus
    reported_date: date
    notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TheftReportResolve(BaseSchema):
    status: Literal[TheftReportStatus.RESOLVED, TheftReportStatus.CLOSED] = TheftReportStatus.RESOLVED
    notes: str | None = Field(None, max_length=1000)
