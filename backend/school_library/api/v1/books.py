"""
Endpoints de Livros (Book) e Cópias (BookCopy).

Contratos:
    - POST /books?quantity=N: Cadastra título com N cópias
    - GET /books: Busca paginada (título, autor, código)
    - GET /books/copies/by-code/{code}: Busca cópia pelo código de rastreio
    - GET /books/{id}: Detalhes do título
    - GET /books/{id}/availability: Disponibilidade (cacheada)
    - GET /books/{id}/copies: Cópias do título
    - POST /books/{id}/copies: Adiciona lote de cópias
"""

from uuid import UUID

from fastapi import APIRouter, Query, status

from school_library.core.deps import CurrentOperator, DbSession
from school_library.core.exceptions import NotFoundError
from school_library.schemas.base import PaginatedResponse
from school_library.schemas.book import (
    BookAvailability,
    BookCopyRead,
    BookCreate,
    BookCreateResponse,
    BookRead,
    CopiesCreate,
)
from school_library.services.catalog import CatalogService
from school_library.services.inventory import InventoryService

router = APIRouter(prefix="/books", tags=["Books"])


@router.post(
    "",
    response_model=BookCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Cadastrar livro",
)
async def create_book(
    data: BookCreate,
    db: DbSession,
    operator: CurrentOperator,
    quantity: int = Query(1, ge=1, le=500, description="Cópias iniciais"),
) -> BookCreateResponse:
    """
    Raises:
        400: book_code ou ISBN duplicado
    """
    service = CatalogService(db)
    book, copies = await service.create_book(data, quantity)
    return BookCreateResponse(
        book=BookRead.model_validate(book),
        copies=[BookCopyRead.model_validate(c) for c in copies],
    )


@router.get(
    "",
    response_model=PaginatedResponse[BookRead],
    summary="Listar livros",
)
async def list_books(
    db: DbSession,
    operator: CurrentOperator,
    q: str | None = Query(None, description="Busca em título, autor ou código"),
    category: str | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[BookRead]:
    service = CatalogService(db)
    books, total = await service.list_books(q, category, page, page_size)
    return PaginatedResponse.create(
        items=[BookRead.model_validate(b) for b in books],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get(
    "/copies/by-code/{code:path}",
    response_model=BookCopyRead,
    summary="Buscar cópia pelo código de rastreio",
)
async def get_copy_by_code(
    code: str,
    db: DbSession,
    operator: CurrentOperator,
) -> BookCopyRead:
    service = InventoryService(db)
    copy = await service.find_copy_by_tracking_code(code)
    if copy is None:
        raise NotFoundError(f"Nenhuma cópia com o código {code.strip().upper()}")
    return BookCopyRead.model_validate(copy)


@router.get("/{book_id}", response_model=BookRead, summary="Detalhes do livro")
async def get_book(book_id: UUID, db: DbSession, operator: CurrentOperator) -> BookRead:
    service = CatalogService(db)
    return BookRead.model_validate(await service.get_book(book_id))


@router.get(
    "/{book_id}/availability",
    response_model=BookAvailability,
    summary="Disponibilidade do livro",
)
async def get_availability(
    book_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
) -> BookAvailability:
    service = CatalogService(db)
    return BookAvailability(**await service.get_availability(book_id))


@router.get(
    "/{book_id}/copies",
    response_model=list[BookCopyRead],
    summary="Cópias do livro",
)
async def list_copies(
    book_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
) -> list[BookCopyRead]:
    service = CatalogService(db)
    return [BookCopyRead.model_validate(c) for c in await service.list_copies(book_id)]


@router.post(
    "/{book_id}/copies",
    response_model=list[BookCopyRead],
    status_code=status.HTTP_201_CREATED,
    summary="Adicionar cópias",
)
async def add_copies(
    book_id: UUID,
    data: CopiesCreate,
    db: DbSession,
    operator: CurrentOperator,
) -> list[BookCopyRead]:
    service = InventoryService(db)
    copies = await service.add_copies(
        book_id,
        data.quantity,
        condition=data.condition,
        year=data.year,
        starting_copy_number=data.starting_copy_number,
    )
    return [BookCopyRead.model_validate(c) for c in copies]
