"""
Service do inventário: cópias físicas e contadores dos títulos.

Regras de negócio:
    - Book.total_copies / available_copies / status são sempre derivados
      das cópias por recompute_book_counts, nunca ajustados à mão
    - Toda mudança de status de cópia termina em recompute_book_counts
    - Código de rastreio: BOOKCODE/NNN/AA (sequência com 3 dígitos e
      os dois últimos dígitos do ano), sempre em maiúsculas
"""

from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_library.core.cache import cache_service
from school_library.core.exceptions import NotFoundError, ValidationError
from school_library.core.logging import get_logger
from school_library.models.book import Book, BookCopy
from school_library.models.enums import BookCondition, BookStatus, BorrowingStatus, CopyStatus
from school_library.repositories.book import BookCopyRepository, BookRepository
from school_library.repositories.borrowing import BorrowingRepository

logger = get_logger(__name__)


def make_tracking_code(book_code: str, copy_number: int, year: int) -> str:
    """
    Monta o código de rastreio de uma cópia.

    Exemplo:
        >>> make_tracking_code("mat", 7, 2024)
        'MAT/007/24'
    """
    return f"{book_code.strip().upper()}/{copy_number:03d}/{year % 100:02d}"


class InventoryService:
    """Service para o ledger de cópias."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.book_repo = BookRepository(db)
        self.copy_repo = BookCopyRepository(db)
        self.borrowing_repo = BorrowingRepository(db)

    # ==========================================
    # Contadores
    # ==========================================

    async def recompute_book_counts(self, book_id: UUID) -> Book | None:
        """
        Recalcula total/disponíveis e o status de um título a partir das cópias.

        Faz flush das mudanças pendentes antes de contar; não faz commit.

        Args:
            book_id: ID do título

        Returns:
            Book atualizado ou None se o título não existe
        """
        await self.db.flush()

        book = await self.book_repo.get_by_id(book_id)
        if book is None:
            return None

        counts = await self.copy_repo.count_by_book(book_id)
        book.total_copies = counts["total"]
        book.available_copies = counts[CopyStatus.AVAILABLE.value]
        book.status = (
            BookStatus.AVAILABLE if book.available_copies > 0 else BookStatus.UNAVAILABLE
        )
        await self.db.flush()
        return book

    # ==========================================
    # Status de cópia
    # ==========================================

    async def apply_copy_status(
        self,
        copy: BookCopy,
        status: CopyStatus,
        condition: BookCondition | None = None,
    ) -> BookCopy:
        """Altera a cópia e recalcula o título dentro da transação atual."""
        copy.status = status
        if condition is not None:
            copy.condition = condition
        await self.recompute_book_counts(copy.book_id)
        return copy

    async def set_copy_status(
        self,
        copy_id: UUID,
        status: CopyStatus,
        condition: BookCondition | None = None,
    ) -> BookCopy:
        """
        Altera o status (e opcionalmente a condição) de uma cópia e persiste.

        Raises:
            NotFoundError: Cópia não encontrada
        """
        copy = await self.copy_repo.get_by_id(copy_id)
        if copy is None:
            raise NotFoundError(f"Cópia {copy_id} não encontrada")

        previous = copy.status
        await self.apply_copy_status(copy, status, condition)
        await self.db.commit()
        await self.db.refresh(copy)
        await cache_service.invalidate_book(copy.book_id)

        logger.info(
            f"Cópia {copy.tracking_code}: {previous.value} -> {status.value}"
            + (f" ({condition.value})" if condition else "")
        )
        return copy

    # ==========================================
    # Cadastro de cópias
    # ==========================================

    async def add_copies(
        self,
        book_id: UUID,
        quantity: int,
        condition: BookCondition = BookCondition.GOOD,
        year: int | None = None,
        starting_copy_number: int | None = None,
        commit: bool = True,
    ) -> list[BookCopy]:
        """
        Cria um lote de cópias para um título.

        A numeração continua a partir da maior cópia existente; um
        starting_copy_number só é aceito se não colidir com ela.

        Args:
            book_id: ID do título
            quantity: Número de cópias (>= 1)
            condition: Condição inicial das cópias
            year: Ano usado no código (default: ano atual)
            starting_copy_number: Primeiro número do lote (opcional)
            commit: Se False, deixa o commit para quem chamou

        Returns:
            Cópias criadas, em ordem de número

        Raises:
            ValidationError: Quantidade inválida ou numeração em conflito
            NotFoundError: Título não encontrado
        """
        if quantity < 1:
            raise ValidationError("A quantidade de cópias deve ser pelo menos 1")

        book = await self.book_repo.get_by_id(book_id)
        if book is None:
            raise NotFoundError("Livro não encontrado")

        current_max = await self.copy_repo.max_copy_number(book_id)
        if starting_copy_number is None:
            first = current_max + 1
        elif starting_copy_number <= current_max:
            raise ValidationError(
                f"Numeração em conflito: o título já possui a cópia {current_max}"
            )
        else:
            first = starting_copy_number

        year = year or date.today().year
        copies = []
        for number in range(first, first + quantity):
            copy = BookCopy(
                book_id=book.id,
                copy_number=number,
                tracking_code=make_tracking_code(book.book_code, number, year),
                condition=condition,
                status=CopyStatus.AVAILABLE,
            )
            self.db.add(copy)
            copies.append(copy)

        await self.recompute_book_counts(book.id)

        if commit:
            await self.db.commit()
            await cache_service.invalidate_book(book.id)

        logger.info(
            f"{quantity} cópia(s) criadas para {book.book_code}: "
            f"{copies[0].tracking_code} .. {copies[-1].tracking_code}"
        )
        return copies

    async def find_copy_by_tracking_code(self, code: str) -> BookCopy | None:
        """Busca cópia pelo código (ignora caixa e espaços nas pontas)."""
        if not code or not code.strip():
            return None
        return await self.copy_repo.get_by_tracking_code(code)

    # ==========================================
    # Reparo
    # ==========================================

    async def reconcile(self) -> dict[str, int]:
        """
        Reparo idempotente de divergências entre cópias e empréstimos.

        Fluxo:
            1. Cópias de empréstimos perdidos em aberto que não estão LOST -> LOST
            2. Cópias BORROWED sem nenhum empréstimo em aberto -> AVAILABLE
            3. Cópias AVAILABLE com empréstimo em aberto -> BORROWED
            4. Empréstimos em aberto cuja cópia sumiu -> RETURNED com nota
            5. Recalcula os contadores de todos os títulos

        Returns:
            Quantidade de correções de cada tipo
        """
        open_copy_ids = await self.borrowing_repo.get_open_copy_ids()
        lost_copy_ids = await self.borrowing_repo.get_lost_open_copy_ids()

        marked_lost = 0
        for copy in await self.copy_repo.get_by_ids(lost_copy_ids):
            if copy.status != CopyStatus.LOST:
                copy.status = CopyStatus.LOST
                marked_lost += 1

        held_copy_ids = open_copy_ids | lost_copy_ids

        released = 0
        for copy in await self.copy_repo.get_by_status(CopyStatus.BORROWED):
            if copy.id not in held_copy_ids:
                copy.status = CopyStatus.AVAILABLE
                released += 1

        marked_borrowed = 0
        for copy in await self.copy_repo.get_by_status(CopyStatus.AVAILABLE):
            if copy.id in open_copy_ids:
                copy.status = CopyStatus.BORROWED
                marked_borrowed += 1

        closed = 0
        today = date.today()
        for borrowing in await self.borrowing_repo.get_open_with_missing_copy():
            borrowing.status = BorrowingStatus.RETURNED
            borrowing.returned_date = max(today, borrowing.borrowed_date)
            borrowing.return_notes = (
                f"Encerrado pelo reparo: a cópia {borrowing.tracking_code} "
                "não existe mais"
            )
            closed += 1

        recounted = 0
        for book_id in await self.book_repo.list_ids():
            book = await self.book_repo.get_by_id(book_id)
            before = (book.total_copies, book.available_copies, book.status)
            await self.recompute_book_counts(book_id)
            if (book.total_copies, book.available_copies, book.status) != before:
                recounted += 1

        await self.db.commit()
        await cache_service.invalidate_all_availability()

        result = {
            "copies_marked_lost": marked_lost,
            "copies_released": released,
            "copies_marked_borrowed": marked_borrowed,
            "orphan_borrowings_closed": closed,
            "books_recounted": recounted,
        }
        logger.info(f"Reparo de inventário concluído: {result}")
        return result
