"""
Endpoints de Leitores: turmas, alunos e funcionários.

Contratos:
    - POST/GET /patrons/classes
    - POST/GET /patrons/students, GET /patrons/students/{id}
    - POST/GET /patrons/staff, GET /patrons/staff/{id}
    - GET /patrons/{kind}/{id}/borrowing-limit: Cota de empréstimos
"""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Query, status

from school_library.core.deps import CurrentOperator, DbSession
from school_library.schemas.base import PaginatedResponse
from school_library.schemas.patron import (
    BorrowingLimit,
    SchoolClassCreate,
    SchoolClassRead,
    StaffCreate,
    StaffRead,
    StudentCreate,
    StudentRead,
)
from school_library.services.borrowing import BorrowingService
from school_library.services.catalog import PatronService

router = APIRouter(prefix="/patrons", tags=["Patrons"])


# ==========================================
# Turmas
# ==========================================

@router.post(
    "/classes",
    response_model=SchoolClassRead,
    status_code=status.HTTP_201_CREATED,
    summary="Criar turma",
)
async def create_class(
    data: SchoolClassCreate,
    db: DbSession,
    operator: CurrentOperator,
) -> SchoolClassRead:
    service = PatronService(db)
    return SchoolClassRead.model_validate(await service.create_class(data))


@router.get("/classes", response_model=list[SchoolClassRead], summary="Listar turmas")
async def list_classes(
    db: DbSession,
    operator: CurrentOperator,
    active_only: bool = Query(False),
) -> list[SchoolClassRead]:
    service = PatronService(db)
    return [SchoolClassRead.model_validate(c) for c in await service.list_classes(active_only)]


# ==========================================
# Alunos
# ==========================================

@router.post(
    "/students",
    response_model=StudentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Cadastrar aluno",
)
async def create_student(
    data: StudentCreate,
    db: DbSession,
    operator: CurrentOperator,
) -> StudentRead:
    service = PatronService(db)
    return StudentRead.model_validate(await service.create_student(data))


@router.get(
    "/students",
    response_model=PaginatedResponse[StudentRead],
    summary="Listar alunos",
)
async def list_students(
    db: DbSession,
    operator: CurrentOperator,
    q: str | None = Query(None, description="Nome ou matrícula"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[StudentRead]:
    service = PatronService(db)
    students, total = await service.list_students(q, page, page_size)
    return PaginatedResponse.create(
        items=[StudentRead.model_validate(s) for s in students],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/students/{student_id}", response_model=StudentRead, summary="Detalhes do aluno")
async def get_student(
    student_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
) -> StudentRead:
    service = PatronService(db)
    return StudentRead.model_validate(await service.get_student(student_id))


# ==========================================
# Funcionários
# ==========================================

@router.post(
    "/staff",
    response_model=StaffRead,
    status_code=status.HTTP_201_CREATED,
    summary="Cadastrar funcionário",
)
async def create_staff(
    data: StaffCreate,
    db: DbSession,
    operator: CurrentOperator,
) -> StaffRead:
    service = PatronService(db)
    return StaffRead.model_validate(await service.create_staff(data))


@router.get(
    "/staff",
    response_model=PaginatedResponse[StaffRead],
    summary="Listar funcionários",
)
async def list_staff(
    db: DbSession,
    operator: CurrentOperator,
    q: str | None = Query(None, description="Nome ou código"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[StaffRead]:
    service = PatronService(db)
    staff, total = await service.list_staff(q, page, page_size)
    return PaginatedResponse.create(
        items=[StaffRead.model_validate(s) for s in staff],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/staff/{staff_id}", response_model=StaffRead, summary="Detalhes do funcionário")
async def get_staff(
    staff_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
) -> StaffRead:
    service = PatronService(db)
    return StaffRead.model_validate(await service.get_staff(staff_id))


# ==========================================
# Cota
# ==========================================

@router.get(
    "/{kind}/{patron_id}/borrowing-limit",
    response_model=BorrowingLimit,
    summary="Cota de empréstimos do leitor",
)
async def get_borrowing_limit(
    kind: Literal["students", "staff"],
    patron_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
    requested: int = Query(1, ge=1, le=20),
) -> BorrowingLimit:
    service = BorrowingService(db)
    if kind == "students":
        limit = await service.get_borrowing_limit(student_id=patron_id, requested=requested)
    else:
        limit = await service.get_borrowing_limit(staff_id=patron_id, requested=requested)
    return BorrowingLimit(**limit)
