"""
Schemas Pydantic para Fine e FineSetting.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from school_library.models.enums import FineStatus, FineType
from school_library.schemas.base import BaseSchema


class FineCreate(BaseSchema):
    """Schema para lançar multa manualmente."""

    student_id: UUID | None = None
    staff_id: UUID | None = None
    borrowing_id: UUID | None = None
    amount: Decimal
    fine_type: FineType
    description: str | None = Field(None, max_length=500)
    prevent_duplicates: bool = True


class FineRead(BaseModel):
    id: UUID
    student_id: UUID | None = None
    staff_id: UUID | None = None
    borrowing_id: UUID | None = None
    amount: Decimal
    fine_type: FineType
    description: str | None = None
    status: FineStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class FineCollect(BaseSchema):
    amount_collected: Decimal = Field(..., ge=0)


class FineSettingRead(BaseModel):
    """Valor efetivo de um tipo de multa (configurado ou padrão)."""

    fine_type: FineType
    amount: Decimal
    description: str | None = None
    is_default: bool


class FineSettingUpdate(BaseSchema):
    amount: Decimal = Field(..., ge=0)
    description: str | None = Field(None, max_length=255)
