"""
Schemas Pydantic para relatórios agregados.
"""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from school_library.models.enums import BorrowerType


class BorrowingCounts(BaseModel):
    active: int
    overdue: int
    returned: int
    lost: int


class PatronFineTotal(BaseModel):
    patron_id: UUID
    borrower_type: BorrowerType
    identifier: str
    name: str
    total: Decimal
    count: int


class ClassFineTotal(BaseModel):
    class_name: str
    total: Decimal
    count: int


class DashboardStats(BaseModel):
    """Painel consolidado do acervo, empréstimos e multas."""

    total_books: int
    total_copies: int
    available_copies: int
    borrowings: BorrowingCounts
    fines_collected: Decimal
    fines_outstanding: Decimal
    currency: str
