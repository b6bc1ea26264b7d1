"""
Endpoints de Empréstimos (Borrowing).

Contratos:
    - POST /borrowings: Empresta livro (opcionalmente uma cópia)
    - POST /borrowings/batch: Empresta vários livros ao mesmo leitor
    - GET /borrowings: Lista com filtros e status derivado
    - GET /borrowings/overdue: Empréstimos vencidos
    - GET /borrowings/lost: Empréstimos perdidos não encontrados
    - GET /borrowings/{id}: Detalhes
    - POST /borrowings/{id}/return: Devolução ou registro de perda
    - POST /borrowings/found-lost: Livro perdido encontrado

Status codes:
    - 200: Sucesso
    - 201: Criado com sucesso
    - 400: Erro de validação, regra de negócio ou limite de empréstimos
    - 401: Não autenticado
    - 404: Empréstimo, livro ou leitor não encontrado
    - 409: Cópia emprestada em paralelo
"""

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from school_library.core.config import get_settings
from school_library.core.deps import CurrentOperator, DbSession
from school_library.core.rate_limit import rate_limit_scan
from school_library.schemas.base import PaginatedResponse
from school_library.schemas.borrowing import (
    BorrowingBatchCreate,
    BorrowingCreate,
    BorrowingRead,
    BorrowingReturn,
    FoundLostRequest,
    FoundLostResponse,
)
from school_library.services.borrowing import BorrowingService

settings = get_settings()
router = APIRouter(prefix="/borrowings", tags=["Borrowings"])


@router.post(
    "",
    response_model=BorrowingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Emprestar livro",
    description=(
        f"Cria um empréstimo. Prazo padrão: {settings.LOAN_PERIOD_DAYS} dias. "
        "Limite conforme a turma do aluno ou STAFF_MAX_BOOKS."
    ),
)
async def create_borrowing(
    data: BorrowingCreate,
    db: DbSession,
    operator: CurrentOperator,
) -> BorrowingRead:
    """
    Raises:
        400: Limite atingido (detail com current/max/requested/availableSlots)
        400: Cópia indisponível ou datas inválidas
        404: Livro ou leitor não encontrado
        409: Cópia emprestada em paralelo
    """
    service = BorrowingService(db)
    borrowing = await service.issue_borrowing(
        book_id=data.book_id,
        student_id=data.student_id,
        staff_id=data.staff_id,
        due_date=data.due_date,
        condition_at_issue=data.condition_at_issue,
        book_copy_id=data.book_copy_id,
        borrowed_date=data.borrowed_date,
        notes=data.notes,
    )
    return BorrowingRead.model_validate(borrowing)


@router.post(
    "/batch",
    response_model=list[BorrowingRead],
    status_code=status.HTTP_201_CREATED,
    summary="Emprestar vários livros",
    description=(
        "Empresta um lote de livros ao mesmo leitor em uma única transação. "
        "A cota é verificada uma vez para o lote inteiro."
    ),
)
async def create_borrowing_batch(
    data: BorrowingBatchCreate,
    db: DbSession,
    operator: CurrentOperator,
) -> list[BorrowingRead]:
    """
    Raises:
        400: Lote maior que as vagas (detail com requested > availableSlots)
        400: Cópia repetida, indisponível ou datas inválidas
        404: Livro ou leitor não encontrado
        409: Cópia emprestada em paralelo
    """
    service = BorrowingService(db)
    borrowings = await service.issue_borrowings(
        data.items,
        student_id=data.student_id,
        staff_id=data.staff_id,
        due_date=data.due_date,
        borrowed_date=data.borrowed_date,
    )
    return [BorrowingRead.model_validate(b) for b in borrowings]


@router.get(
    "",
    response_model=PaginatedResponse[BorrowingRead],
    summary="Listar empréstimos",
)
async def list_borrowings(
    db: DbSession,
    operator: CurrentOperator,
    student_id: UUID | None = Query(None, description="Filtrar por aluno"),
    staff_id: UUID | None = Query(None, description="Filtrar por funcionário"),
    book_id: UUID | None = Query(None, description="Filtrar por título"),
    status_filter: Literal["active", "overdue", "returned", "lost"] | None = Query(
        None,
        alias="status",
        description="Status derivado",
    ),
    page: int = Query(1, ge=1, description="Número da página"),
    page_size: int = Query(20, ge=1, le=100, description="Itens por página"),
) -> PaginatedResponse[BorrowingRead]:
    service = BorrowingService(db)
    borrowings, total = await service.list_borrowings(
        student_id=student_id,
        staff_id=staff_id,
        book_id=book_id,
        status=status_filter,
        page=page,
        page_size=page_size,
    )
    return PaginatedResponse.create(
        items=[BorrowingRead.model_validate(b) for b in borrowings],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/overdue",
    response_model=list[BorrowingRead],
    summary="Empréstimos vencidos",
)
async def list_overdue(db: DbSession, operator: CurrentOperator) -> list[BorrowingRead]:
    service = BorrowingService(db)
    return [BorrowingRead.model_validate(b) for b in await service.list_overdue()]


@router.get(
    "/lost",
    response_model=list[BorrowingRead],
    summary="Empréstimos perdidos",
)
async def list_lost(db: DbSession, operator: CurrentOperator) -> list[BorrowingRead]:
    service = BorrowingService(db)
    return [BorrowingRead.model_validate(b) for b in await service.list_lost()]


@router.post(
    "/found-lost",
    response_model=FoundLostResponse,
    summary="Livro perdido encontrado",
    description="Restaura empréstimo e cópia e perdoa a multa lost_book em aberto.",
    dependencies=[Depends(rate_limit_scan)],
)
async def found_lost_book(
    data: FoundLostRequest,
    db: DbSession,
    operator: CurrentOperator,
) -> FoundLostResponse:
    """
    Raises:
        404: Nenhum empréstimo perdido com o código
    """
    service = BorrowingService(db)
    result = await service.handle_found_lost_book(
        data.tracking_code, data.found_by_patron_id
    )
    return FoundLostResponse(
        restored_borrowing=BorrowingRead.model_validate(result["restored_borrowing"]),
        cleared_fine_message=result["cleared_fine_message"],
    )


@router.get(
    "/{borrowing_id}",
    response_model=BorrowingRead,
    summary="Detalhes do empréstimo",
)
async def get_borrowing(
    borrowing_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
) -> BorrowingRead:
    service = BorrowingService(db)
    return BorrowingRead.model_validate(await service.get_borrowing(borrowing_id))


@router.post(
    "/{borrowing_id}/return",
    response_model=BorrowingRead,
    summary="Devolver livro",
    description="Devolve o empréstimo calculando multa de atraso e condição, ou registra perda.",
)
async def return_borrowing(
    borrowing_id: UUID,
    data: BorrowingReturn,
    db: DbSession,
    operator: CurrentOperator,
) -> BorrowingRead:
    """
    Raises:
        400: Já devolvido, perdido, código divergente ou multa negativa
        404: Empréstimo não encontrado
    """
    service = BorrowingService(db)
    borrowing = await service.return_borrowing(
        borrowing_id,
        condition_at_return=data.condition_at_return,
        fine_amount=data.fine_amount,
        is_lost=data.is_lost,
        returned_tracking_code=data.returned_tracking_code,
        prevent_auto_fine=data.prevent_auto_fine,
        notes=data.notes,
    )
    return BorrowingRead.model_validate(borrowing)
