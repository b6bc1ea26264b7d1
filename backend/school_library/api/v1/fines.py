"""
Endpoints de Multas.

Contratos:
    - POST /fines: Lança multa manual (sem duplicar por empréstimo e tipo)
    - GET /fines: Lista com filtros
    - PATCH /fines/{id}/pay | clear | collect: Transições de status
    - GET /fines/settings: Valores efetivos por tipo
    - PUT /fines/settings/{fine_type}: Configura valor de um tipo
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from school_library.core.deps import CurrentOperator, DbSession
from school_library.models.enums import FineStatus, FineType
from school_library.schemas.base import PaginatedResponse
from school_library.schemas.fine import (
    FineCollect,
    FineCreate,
    FineRead,
    FineSettingRead,
    FineSettingUpdate,
)
from school_library.services.fine import FineService

router = APIRouter(prefix="/fines", tags=["Fines"])


@router.post(
    "",
    response_model=FineRead,
    status_code=status.HTTP_201_CREATED,
    summary="Lançar multa",
    description="Com prevent_duplicates, repetir (borrowing_id, fine_type) devolve a multa existente.",
)
async def create_fine(
    data: FineCreate,
    db: DbSession,
    operator: CurrentOperator,
) -> FineRead:
    service = FineService(db)
    fine = await service.create_fine(
        amount=data.amount,
        fine_type=data.fine_type,
        student_id=data.student_id,
        staff_id=data.staff_id,
        borrowing_id=data.borrowing_id,
        description=data.description,
        prevent_duplicates=data.prevent_duplicates,
    )
    return FineRead.model_validate(fine)


@router.get(
    "",
    response_model=PaginatedResponse[FineRead],
    summary="Listar multas",
)
async def list_fines(
    db: DbSession,
    operator: CurrentOperator,
    student_id: UUID | None = Query(None),
    staff_id: UUID | None = Query(None),
    status_filter: FineStatus | None = Query(None, alias="status"),
    fine_type: FineType | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[FineRead]:
    service = FineService(db)
    fines, total = await service.list_fines(
        student_id=student_id,
        staff_id=staff_id,
        status=status_filter,
        fine_type=fine_type,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[FineRead.model_validate(f) for f in fines],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/settings",
    response_model=list[FineSettingRead],
    summary="Valores de multa",
)
async def list_fine_settings(db: DbSession, operator: CurrentOperator) -> list[FineSettingRead]:
    service = FineService(db)
    return [FineSettingRead(**row) for row in await service.list_settings()]


@router.put(
    "/settings/{fine_type}",
    response_model=FineSettingRead,
    summary="Configurar valor de multa",
)
async def update_fine_setting(
    fine_type: FineType,
    data: FineSettingUpdate,
    db: DbSession,
    operator: CurrentOperator,
) -> FineSettingRead:
    service = FineService(db)
    setting = await service.upsert_setting(fine_type, data.amount, data.description)
    return FineSettingRead(
        fine_type=setting.fine_type,
        amount=setting.amount,
        description=setting.description,
        is_default=False,
    )


@router.patch("/{fine_id}/pay", response_model=FineRead, summary="Marcar multa como paga")
async def pay_fine(fine_id: UUID, db: DbSession, operator: CurrentOperator) -> FineRead:
    service = FineService(db)
    return FineRead.model_validate(await service.pay_fine(fine_id))


@router.patch("/{fine_id}/clear", response_model=FineRead, summary="Perdoar multa")
async def clear_fine(
    fine_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
    reason: str | None = Query(None, max_length=200),
) -> FineRead:
    service = FineService(db)
    return FineRead.model_validate(await service.clear_fine(fine_id, reason))


@router.patch("/{fine_id}/collect", response_model=FineRead, summary="Registrar cobrança")
async def collect_fine(
    fine_id: UUID,
    data: FineCollect,
    db: DbSession,
    operator: CurrentOperator,
) -> FineRead:
    service = FineService(db)
    return FineRead.model_validate(await service.collect_fine(fine_id, data.amount_collected))
