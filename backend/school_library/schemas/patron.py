"""
Schemas Pydantic para turmas, alunos e funcionários.
"""

from uuid import UUID

from pydantic import BaseModel, Field

from school_library.schemas.base import BaseSchema, TimestampSchema


class SchoolClassCreate(BaseSchema):
    class_name: str = Field(..., min_length=1, max_length=120)
    form_level: int | None = Field(None, ge=1, le=12)
    max_books_allowed: int = Field(2, ge=0, le=50)


class SchoolClassRead(TimestampSchema):
    id: UUID
    class_name: str
    form_level: int | None = None
    max_books_allowed: int
    is_active: bool


class StudentCreate(BaseSchema):
    """Schema para cadastrar aluno."""

    admission_number: str = Field(..., min_length=1, max_length=32)
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    class_id: UUID | None = None
    class_grade: str | None = Field(None, max_length=120)


class StudentRead(TimestampSchema):
    id: UUID
    admission_number: str
    first_name: str
    last_name: str
    class_id: UUID | None = None
    class_grade: str | None = None
    status: str


class StaffCreate(BaseSchema):
    """Schema para cadastrar funcionário."""

    staff_id: str = Field(..., min_length=1, max_length=32)
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    department: str | None = Field(None, max_length=120)
    position: str | None = Field(None, max_length=120)


class StaffRead(TimestampSchema):
    id: UUID
    staff_id: str
    first_name: str
    last_name: str
    department: str | None = None
    position: str | None = None
    status: str


class BorrowingLimit(BaseModel):
    """Situação da cota de empréstimos de um leitor."""

    current: int
    max: int
    requested: int
    availableSlots: int
