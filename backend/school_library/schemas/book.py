"""
Schemas Pydantic para Book e BookCopy.
"""

from uuid import UUID

from pydantic import Field, field_validator

from school_library.models.enums import BookCondition, BookStatus, CopyStatus
from school_library.schemas.base import BaseSchema, TimestampSchema


class BookCreate(BaseSchema):
    """Schema para cadastrar título (as cópias vêm do parâmetro quantity)."""

    title: str = Field(..., min_length=1, max_length=500)
    author: str = Field(..., min_length=1, max_length=255)
    book_code: str = Field(..., min_length=1, max_length=32, description="Prefixo dos códigos de rastreio")
    isbn: str | None = Field(None, max_length=32)
    category: str | None = Field(None, max_length=120)
    publisher: str | None = Field(None, max_length=255)
    publication_year: int | None = Field(None, ge=1000, le=2100)
    shelf_location: str | None = Field(None, max_length=64)

    @field_validator("book_code")
    @classmethod
    def normalize_book_code(cls, value: str) -> str:
        if "/" in value:
            raise ValueError("book_code não pode conter '/'")
        return value.upper()


class BookRead(TimestampSchema):
    """Schema de leitura de título."""

    id: UUID
    title: str
    author: str
    book_code: str
    isbn: str | None = None
    category: str | None = None
    publisher: str | None = None
    publication_year: int | None = None
    shelf_location: str | None = None
    total_copies: int
    available_copies: int
    status: BookStatus


class CopiesCreate(BaseSchema):
    """Schema para adicionar um lote de cópias a um título."""

    quantity: int = Field(..., ge=1, le=500)
    condition: BookCondition = BookCondition.GOOD
    year: int | None = Field(None, ge=1900, le=2100, description="Ano do código (default: ano atual)")
    starting_copy_number: int | None = Field(None, ge=1)


class BookCopyRead(TimestampSchema):
    """Schema de leitura de cópia física."""

    id: UUID
    book_id: UUID
    copy_number: int
    tracking_code: str
    condition: BookCondition
    status: CopyStatus
    notes: str | None = None


class BookCreateResponse(BaseSchema):
    """Resposta do cadastro: título e cópias geradas."""

    book: BookRead
    copies: list[BookCopyRead]


class BookAvailability(BaseSchema):
    """Disponibilidade de um título, por status de cópia."""

    book_id: UUID
    title: str
    total_copies: int
    available_copies: int
    borrowed_copies: int
    lost_copies: int
    maintenance_copies: int
    is_available: bool
