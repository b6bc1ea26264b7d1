"""
Endpoints de detecção de troca de cópias.

Contratos:
    - POST /theft/detect: Confere código lido no balcão (com debounce)
    - POST /theft/process: Resolve troca confirmada
    - GET /theft/reports: Lista relatórios
    - GET /theft/reports/{id}: Detalhes
    - PATCH /theft/reports/{id}/resolve: Encerra relatório
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from school_library.core.deps import CurrentOperator, DbSession
from school_library.core.rate_limit import rate_limit_scan
from school_library.models.enums import TheftReportStatus
from school_library.schemas.base import PaginatedResponse
from school_library.schemas.borrowing import BorrowingRead
from school_library.schemas.theft import (
    MismatchRequest,
    MismatchResponse,
    TheftProcessRequest,
    TheftReportRead,
    TheftReportResolve,
)
from school_library.services.theft import TheftService

router = APIRouter(prefix="/theft", tags=["Theft detection"])


@router.post(
    "/detect",
    response_model=MismatchResponse,
    summary="Conferir código devolvido",
    dependencies=[Depends(rate_limit_scan)],
)
async def detect_mismatch(
    data: MismatchRequest,
    db: DbSession,
    operator: CurrentOperator,
) -> MismatchResponse:
    service = TheftService(db)
    result = await service.detect_mismatch(
        data.returned_code, data.expected_codes, data.patron_id
    )
    return MismatchResponse(
        is_mismatch=result.is_mismatch,
        throttled=result.throttled,
        expected_borrowing=(
            BorrowingRead.model_validate(result.expected_borrowing)
            if result.expected_borrowing else None
        ),
        victim_borrowing=(
            BorrowingRead.model_validate(result.victim_borrowing)
            if result.victim_borrowing else None
        ),
        fine_amount=result.fine_amount,
        message=result.message,
    )


@router.post(
    "/process",
    response_model=TheftReportRead,
    status_code=status.HTTP_201_CREATED,
    summary="Resolver troca de cópias",
)
async def process_theft_case(
    data: TheftProcessRequest,
    db: DbSession,
    operator: CurrentOperator,
) -> TheftReportRead:
    """
    Raises:
        400: Código não caracteriza troca, multa negativa ou empréstimo esperado inválido
        404: Empréstimo esperado não encontrado
    """
    service = TheftService(db)
    report = await service.process_theft_case(
        data.returned_code,
        data.patron_id,
        condition_at_return=data.condition_at_return,
        notes=data.notes,
        fine_amount=data.fine_amount,
        expected_borrowing_id=data.expected_borrowing_id,
    )
    return TheftReportRead.model_validate(report)


@router.get(
    "/reports",
    response_model=PaginatedResponse[TheftReportRead],
    summary="Listar relatórios de troca",
)
async def list_reports(
    db: DbSession,
    operator: CurrentOperator,
    status_filter: TheftReportStatus | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[TheftReportRead]:
    service = TheftService(db)
    reports, total = await service.list_reports(status_filter, page, page_size)
    return PaginatedResponse.create(
        items=[TheftReportRead.model_validate(r) for r in reports],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/reports/{report_id}",
    response_model=TheftReportRead,
    summary="Detalhes do relatório",
)
async def get_report(
    report_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
) -> TheftReportRead:
    service = TheftService(db)
    return TheftReportRead.model_validate(await service.get_report(report_id))


@router.patch(
    "/reports/{report_id}/resolve",
    response_model=TheftReportRead,
    summary="Encerrar relatório",
)
async def resolve_report(
    report_id: UUID,
    data: TheftReportResolve,
    db: DbSession,
    operator: CurrentOperator,
) -> TheftReportRead:
    service = TheftService(db)
    report = await service.resolve_report(report_id, data.status, data.notes)
    return TheftReportRead.model_validate(report)
