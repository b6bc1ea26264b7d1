"""
Endpoints de Relatórios (somente leitura).

Contratos:
    - GET /reports/counts: active / overdue / returned / lost
    - GET /reports/fines/by-patron: Totais de multas por leitor
    - GET /reports/fines/by-class: Totais de multas por turma
    - GET /reports/dashboard: Painel consolidado (cacheado)
"""

from fastapi import APIRouter, Query

from school_library.core.deps import CurrentOperator, DbSession
from school_library.models.enums import FineStatus
from school_library.schemas.report import (
    BorrowingCounts,
    ClassFineTotal,
    DashboardStats,
    PatronFineTotal,
)
from school_library.services.report import ReportService

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.get("/counts", response_model=BorrowingCounts, summary="Contagem de empréstimos")
async def borrowing_counts(db: DbSession, operator: CurrentOperator) -> BorrowingCounts:
    service = ReportService(db)
    return BorrowingCounts(**await service.borrowing_counts())


@router.get(
    "/fines/by-patron",
    response_model=list[PatronFineTotal],
    summary="Multas por leitor",
)
async def fines_by_patron(
    db: DbSession,
    operator: CurrentOperator,
    status_filter: FineStatus | None = Query(None, alias="status"),
) -> list[PatronFineTotal]:
    service = ReportService(db)
    return [PatronFineTotal(**row) for row in await service.fine_totals_by_patron(status_filter)]


@router.get(
    "/fines/by-class",
    response_model=list[ClassFineTotal],
    summary="Multas por turma",
)
async def fines_by_class(
    db: DbSession,
    operator: CurrentOperator,
    status_filter: FineStatus | None = Query(None, alias="status"),
) -> list[ClassFineTotal]:
    service = ReportService(db)
    return [ClassFineTotal(**row) for row in await service.fine_totals_by_class(status_filter)]


@router.get("/dashboard", response_model=DashboardStats, summary="Painel consolidado")
async def dashboard(db: DbSession, operator: CurrentOperator) -> DashboardStats:
    service = ReportService(db)
    return DashboardStats(**await service.dashboard())
