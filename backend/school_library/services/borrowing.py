"""
Service para o ciclo de vida dos empréstimos.

Regras de negócio:
    - Leitor é aluno XOR funcionário
    - Prazo padrão: LOAN_PERIOD_DAYS (14 dias); due_date > borrowed_date
    - Limite simultâneo: max_books_allowed da turma do aluno
      (default DEFAULT_MAX_BOOKS_PER_STUDENT) ou STAFF_MAX_BOOKS
    - Empréstimos perdidos continuam ocupando a cota até serem resolvidos
    - Multa e atualização da cópia na devolução são escritas secundárias:
      falhas são registradas em log e não desfazem a devolução
"""

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.core.cache import cache_service
from school_library.core.config import get_settings
from school_library.core.exceptions import (
    ConflictError,
    LimitExceededError,
    NotFoundError,
    ValidationError,
)
from school_library.core.logging import get_logger
from school_library.models.book import BookCopy
from school_library.models.borrowing import Borrowing
from school_library.models.enums import (
    BookCondition,
    BorrowerType,
    BorrowingStatus,
    CopyStatus,
    FineStatus,
    FineType,
    NotificationType,
)
from school_library.repositories.book import BookCopyRepository, BookRepository
from school_library.repositories.borrowing import BorrowingRepository
from school_library.repositories.fine import FineRepository
from school_library.repositories.notification import NotificationRepository
from school_library.repositories.patron import (
    SchoolClassRepository,
    StaffRepository,
    StudentRepository,
)
from school_library.schemas.borrowing import BorrowingItem
from school_library.services.fine import FineService, classify_fine_type, fine_type_label
from school_library.services.inventory import InventoryService

logger = get_logger(__name__)
settings = get_settings()


def default_due_date(borrowed_date: date | None = None) -> date:
    """Data de devolução padrão: borrowed_date + LOAN_PERIOD_DAYS."""
    borrowed_date = borrowed_date or date.today()
    return borrowed_date + timedelta(days=settings.LOAN_PERIOD_DAYS)


def _require_single_patron(student_id: UUID | None, staff_id: UUID | None) -> None:
    if (student_id is None) == (staff_id is None):
        raise ValidationError("Informe exatamente um leitor: student_id ou staff_id")


class BorrowingService:
    """Service para empréstimo, devolução e livros perdidos."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.borrowing_repo = BorrowingRepository(db)
        self.book_repo = BookRepository(db)
        self.copy_repo = BookCopyRepository(db)
        self.fine_repo = FineRepository(db)
        self.student_repo = StudentRepository(db)
        self.staff_repo = StaffRepository(db)
        self.class_repo = SchoolClassRepository(db)
        self.notification_repo = NotificationRepository(db)
        self.inventory = InventoryService(db)
        self.fine_service = FineService(db)

    # ==========================================
    # Limite de empréstimos
    # ==========================================

    async def get_borrowing_limit(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        requested: int = 1,
    ) -> dict:
        """
        Situação da cota do leitor.

        Returns:
            Dict com current, max, requested e availableSlots

        Raises:
            ValidationError: Leitor ambíguo
            NotFoundError: Leitor não encontrado
        """
        _require_single_patron(student_id, staff_id)

        if student_id is not None:
            student = await self.student_repo.get_by_id(student_id)
            if student is None:
                raise NotFoundError("Aluno não encontrado")
            maximum = settings.DEFAULT_MAX_BOOKS_PER_STUDENT
            if student.class_id is not None:
                school_class = await self.class_repo.get_by_id(student.class_id)
                if school_class is not None:
                    maximum = school_class.max_books_allowed
        else:
            staff = await self.staff_repo.get_by_id(staff_id)
            if staff is None:
                raise NotFoundError("Funcionário não encontrado")
            maximum = settings.STAFF_MAX_BOOKS

        current = await self.borrowing_repo.count_active_by_patron(
            student_id=student_id, staff_id=staff_id
        )
        return {
            "current": current,
            "max": maximum,
            "requested": requested,
            "availableSlots": max(0, maximum - current),
        }

    async def check_borrowing_limit(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        requested: int = 1,
    ) -> dict:
        """
        Como get_borrowing_limit, mas rejeita quando current + requested > max.

        Raises:
            LimitExceededError: Cota insuficiente
        """
        limit = await self.get_borrowing_limit(student_id, staff_id, requested)
        if limit["current"] + requested > limit["max"]:
            raise LimitExceededError(
                current=limit["current"],
                maximum=limit["max"],
                requested=requested,
            )
        return limit

    # ==========================================
    # Issue
    # ==========================================

    async def issue_borrowing(
        self,
        book_id: UUID,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        due_date: date | None = None,
        condition_at_issue: BookCondition = BookCondition.GOOD,
        book_copy_id: UUID | None = None,
        borrowed_date: date | None = None,
        notes: str | None = None,
    ) -> Borrowing:
        """
        Empresta um livro (e opcionalmente uma cópia específica).

        Fluxo:
            1. Valida leitor, datas e existência do título
            2. Verifica a cota do leitor
            3. Valida a cópia: do título, AVAILABLE e sem empréstimo em aberto
            4. Cria o empréstimo ACTIVE e marca a cópia BORROWED na mesma transação
            5. Recalcula os contadores do título

        Raises:
            ValidationError: Dados inválidos ou cópia indisponível
            LimitExceededError: Cota do leitor atingida
            NotFoundError: Leitor ou título inexistente
            ConflictError: Cópia emprestada em paralelo
        """
        borrowings = await self.issue_borrowings(
            [
                BorrowingItem(
                    book_id=book_id,
                    book_copy_id=book_copy_id,
                    condition_at_issue=condition_at_issue,
                    notes=notes,
                )
            ],
            student_id=student_id,
            staff_id=staff_id,
            due_date=due_date,
            borrowed_date=borrowed_date,
        )
        return borrowings[0]

    async def issue_borrowings(
        self,
        items: list[BorrowingItem],
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        due_date: date | None = None,
        borrowed_date: date | None = None,
    ) -> list[Borrowing]:
        """
        Empresta vários livros ao mesmo leitor de uma vez.

        A cota é verificada uma única vez com requested=len(items) e o lote
        inteiro vai em um só commit: ou todos os empréstimos são criados,
        ou nenhum.

        Args:
            items: Livros (e cópias opcionais) do lote
            student_id: Aluno (XOR staff_id)
            staff_id: Funcionário (XOR student_id)
            due_date: Prazo comum do lote (default: borrowed_date + LOAN_PERIOD_DAYS)
            borrowed_date: Data do empréstimo (default: hoje)

        Returns:
            Empréstimos criados, na ordem dos itens

        Raises:
            ValidationError: Lote vazio, cópia repetida, dados inválidos
                ou cópia indisponível
            LimitExceededError: Lote maior que as vagas do leitor
            NotFoundError: Leitor ou título inexistente
            ConflictError: Cópia emprestada em paralelo
        """
        _require_single_patron(student_id, staff_id)
        if not items:
            raise ValidationError("Informe pelo menos um livro")

        copy_ids = [item.book_copy_id for item in items if item.book_copy_id is not None]
        if len(copy_ids) != len(set(copy_ids)):
            raise ValidationError("A mesma cópia aparece mais de uma vez no lote")

        borrowed_date = borrowed_date or date.today()
        due_date = due_date or default_due_date(borrowed_date)
        if due_date <= borrowed_date:
            raise ValidationError("due_date deve ser posterior à data do empréstimo")

        books = []
        for item in items:
            book = await self.book_repo.get_by_id(item.book_id)
            if book is None:
                raise NotFoundError("Livro não encontrado")
            books.append(book)

        await self.check_borrowing_limit(
            student_id=student_id, staff_id=staff_id, requested=len(items)
        )

        copies = []
        for item, book in zip(items, books):
            copies.append(await self._get_issuable_copy(book.id, item.book_copy_id))

        borrowings = []
        for item, book, copy in zip(items, books, copies):
            borrowing = Borrowing(
                student_id=student_id,
                staff_id=staff_id,
                borrower_type=BorrowerType.STUDENT if student_id else BorrowerType.STAFF,
                book_id=book.id,
                book_copy_id=copy.id if copy else None,
                tracking_code=copy.tracking_code if copy else None,
                borrowed_date=borrowed_date,
                due_date=due_date,
                status=BorrowingStatus.ACTIVE,
                condition_at_issue=item.condition_at_issue,
                fine_amount=Decimal("0"),
                is_lost=False,
                notes=item.notes,
            )
            self.db.add(borrowing)
            borrowings.append(borrowing)

        try:
            for copy in copies:
                if copy is not None:
                    await self.inventory.apply_copy_status(copy, CopyStatus.BORROWED)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Conflito ao emprestar cópias {copy_ids}: {e.orig}")
            raise ConflictError("Uma das cópias acabou de ser emprestada para outro leitor")

        for borrowing, book in zip(borrowings, books):
            await self.db.refresh(borrowing)
            await cache_service.invalidate_book(book.id)
            logger.info(
                f"Empréstimo {borrowing.id}: livro {book.book_code} "
                f"cópia {borrowing.tracking_code or '-'} para "
                f"{borrowing.borrower_type.value} {borrowing.patron_id}, vence {due_date}"
            )
        return borrowings

    async def _get_issuable_copy(
        self, book_id: UUID, book_copy_id: UUID | None
    ) -> BookCopy | None:
        """Cópia pedida, validada para empréstimo (None se o item não indica cópia)."""
        if book_copy_id is None:
            return None

        copy = await self.copy_repo.get_by_id(book_copy_id)
        if copy is None or copy.book_id != book_id:
            raise ValidationError("Cópia não encontrada para este livro")
        if copy.status != CopyStatus.AVAILABLE:
            raise ValidationError(
                f"Cópia {copy.tracking_code} não está disponível ({copy.status.value})"
            )
        if await self.borrowing_repo.get_active_by_copy(copy.id) is not None:
            raise ValidationError(
                f"Cópia {copy.tracking_code} já está em um empréstimo ativo"
            )
        return copy

    # ==========================================
    # Return
    # ==========================================

    async def return_borrowing(
        self,
        borrowing_id: UUID,
        condition_at_return: BookCondition = BookCondition.GOOD,
        fine_amount: Decimal | None = None,
        is_lost: bool = False,
        returned_tracking_code: str | None = None,
        prevent_auto_fine: bool = False,
        notes: str | None = None,
    ) -> Borrowing:
        """
        Devolve um empréstimo ou registra a perda do livro.

        Fluxo:
            1. Busca o empréstimo e valida o pedido
            2. Perda: multa lost_book, status continua ACTIVE com is_lost=True
               Devolução: RETURNED hoje, multa = atraso * taxa + condição
            3. fine_amount explícito sobrepõe o cálculo; prevent_auto_fine zera
            4. Persiste o empréstimo (escrita principal)
            5. Lança a multa se > 0 (uma por empréstimo e tipo)
            6. Atualiza a cópia: LOST/lost ou AVAILABLE/condição devolvida

        Args:
            borrowing_id: ID do empréstimo
            condition_at_return: Condição da cópia (LOST equivale a is_lost)
            fine_amount: Valor manual da multa (opcional)
            is_lost: Livro perdido
            returned_tracking_code: Código lido no balcão (deve ser o do empréstimo)
            prevent_auto_fine: Não calcular multa automática
            notes: Observações da devolução

        Returns:
            Empréstimo atualizado

        Raises:
            NotFoundError: Empréstimo não encontrado
            ValidationError: Já devolvido, já perdido, código divergente
                ou valor negativo
        """
        borrowing = await self.borrowing_repo.get_by_id(borrowing_id)
        if borrowing is None:
            raise NotFoundError("Empréstimo não encontrado")

        if borrowing.status == BorrowingStatus.RETURNED:
            raise ValidationError("Empréstimo já foi devolvido")
        if borrowing.is_lost or borrowing.status == BorrowingStatus.LOST:
            raise ValidationError(
                "Empréstimo está marcado como perdido; use o fluxo de livro encontrado"
            )
        if fine_amount is not None and Decimal(fine_amount) < 0:
            raise ValidationError("O valor da multa não pode ser negativo")
        if (
            returned_tracking_code
            and borrowing.tracking_code
            and returned_tracking_code.strip().upper() != borrowing.tracking_code.upper()
        ):
            raise ValidationError(
                f"Código devolvido {returned_tracking_code.strip().upper()} não corresponde "
                f"ao empréstimo ({borrowing.tracking_code}); verifique troca de cópias"
            )

        is_lost = is_lost or condition_at_return == BookCondition.LOST
        today = date.today()

        if is_lost:
            amount = await self.fine_service.resolve_amount(FineType.LOST_BOOK)
            borrowing.is_lost = True
            borrowing.condition_at_return = BookCondition.LOST
        else:
            amount = await self.fine_service.calculate_return_fine(
                condition_at_return, borrowing.days_overdue(today)
            )
            borrowing.status = BorrowingStatus.RETURNED
            borrowing.returned_date = today
            borrowing.condition_at_return = condition_at_return

        if fine_amount is not None:
            amount = Decimal(fine_amount)
        elif prevent_auto_fine:
            amount = Decimal("0")

        fine_type = classify_fine_type(is_lost, condition_at_return, borrowing.due_date, today)
        borrowing.fine_amount = amount
        if notes:
            borrowing.return_notes = notes

        await self.db.commit()
        await self.db.refresh(borrowing)

        logger.info(
            f"Empréstimo {borrowing.id} "
            f"{'marcado como perdido' if is_lost else 'devolvido'}: "
            f"condição {borrowing.condition_at_return.value}, multa {amount} {settings.CURRENCY}"
        )

        if amount > 0:
            await self._create_return_fine(borrowing, amount, fine_type)

        if borrowing.book_copy_id is not None:
            await self._release_copy(borrowing, is_lost, condition_at_return)
        else:
            await cache_service.invalidate_book(borrowing.book_id)

        return borrowing

    async def _create_return_fine(
        self,
        borrowing: Borrowing,
        amount: Decimal,
        fine_type: FineType,
    ) -> None:
        """Lança a multa da devolução; falhas de banco só vão para o log."""
        description = f"{fine_type_label(fine_type)} - {borrowing.tracking_code or borrowing.book_id}"
        try:
            await self.fine_service.create_fine(
                amount=amount,
                fine_type=fine_type,
                student_id=borrowing.student_id,
                staff_id=borrowing.staff_id,
                borrowing_id=borrowing.id,
                description=description,
            )
        except SQLAlchemyError as e:
            await self.db.rollback()
            await self.db.refresh(borrowing)
            logger.error(
                f"Falha ao lançar multa {fine_type.value} do empréstimo {borrowing.id}: {e}"
            )

    async def _release_copy(
        self,
        borrowing: Borrowing,
        is_lost: bool,
        condition: BookCondition,
    ) -> None:
        """Atualiza a cópia devolvida; falhas só vão para o log (o reparo corrige)."""
        if is_lost:
            status, condition = CopyStatus.LOST, BookCondition.LOST
        else:
            status = CopyStatus.AVAILABLE
        try:
            await self.inventory.set_copy_status(borrowing.book_copy_id, status, condition)
        except (SQLAlchemyError, NotFoundError) as e:
            await self.db.rollback()
            await self.db.refresh(borrowing)
            logger.error(
                f"Falha ao atualizar cópia {borrowing.book_copy_id} do empréstimo "
                f"{borrowing.id}: {getattr(e, 'detail', e)}"
            )

    # ==========================================
    # Livro perdido encontrado
    # ==========================================

    async def handle_found_lost_book(
        self,
        tracking_code: str,
        found_by_patron_id: UUID | None = None,
    ) -> dict:
        """
        Restaura um livro marcado como perdido.

        Fluxo:
            1. Busca o empréstimo perdido com o código
            2. Empréstimo -> RETURNED hoje, is_lost=False
            3. Cópia -> AVAILABLE / good
            4. Multas lost_book em aberto do empréstimo -> CLEARED
            5. Notificação citando o leitor original

        Returns:
            Dict com restored_borrowing e cleared_fine_message

        Raises:
            NotFoundError: Nenhum empréstimo perdido com esse código
        """
        if not tracking_code or not tracking_code.strip():
            raise ValidationError("Informe o código de rastreio")
        code = tracking_code.strip().upper()

        borrowing = await self.borrowing_repo.get_lost_by_tracking_code(code)
        if borrowing is None:
            raise NotFoundError(f"Nenhum livro perdido com o código {code}")

        today = date.today()
        borrowing.status = BorrowingStatus.RETURNED
        borrowing.returned_date = today
        borrowing.is_lost = False
        found_note = f"Livro perdido encontrado em {today.isoformat()}"
        if found_by_patron_id is not None:
            found_note += f" por {found_by_patron_id}"
        borrowing.return_notes = (
            f"{borrowing.return_notes}\n{found_note}" if borrowing.return_notes else found_note
        )

        copy = None
        if borrowing.book_copy_id is not None:
            copy = await self.copy_repo.get_by_id(borrowing.book_copy_id)
        if copy is None:
            copy = await self.copy_repo.get_by_tracking_code(code)
        if copy is not None:
            await self.inventory.apply_copy_status(
                copy, CopyStatus.AVAILABLE, BookCondition.GOOD
            )

        cleared = 0
        for fine in await self.fine_repo.get_by_borrowing(borrowing.id, FineType.LOST_BOOK):
            if fine.status == FineStatus.UNPAID:
                fine.status = FineStatus.CLEARED
                cleared += 1

        borrower_name = await self._patron_name(borrowing)
        await self.notification_repo.add(
            title="Lost Book Found",
            message=(
                f"Book {code} previously lost by {borrower_name} has been found "
                f"and returned to the shelf."
            ),
            type=NotificationType.INFO,
            related_id=borrowing.id,
        )

        await self.db.commit()
        await self.db.refresh(borrowing)
        await cache_service.invalidate_book(borrowing.book_id)

        if cleared:
            message = f"{cleared} lost book fine(s) cleared for {borrower_name}"
        else:
            message = "No outstanding lost book fine to clear"

        logger.info(
            f"Livro perdido {code} encontrado: empréstimo {borrowing.id} restaurado, "
            f"{cleared} multa(s) perdoada(s)"
        )
        return {"restored_borrowing": borrowing, "cleared_fine_message": message}

    async def _patron_name(self, borrowing: Borrowing) -> str:
        if borrowing.student_id is not None:
            student = await self.student_repo.get_by_id(borrowing.student_id)
            if student is not None:
                return f"{student.full_name} ({student.admission_number})"
        elif borrowing.staff_id is not None:
            staff = await self.staff_repo.get_by_id(borrowing.staff_id)
            if staff is not None:
                return f"{staff.full_name} ({staff.staff_id})"
        return "unknown borrower"

    # ==========================================
    # Consultas
    # ==========================================

    async def get_borrowing(self, borrowing_id: UUID) -> Borrowing:
        borrowing = await self.borrowing_repo.get_by_id(borrowing_id)
        if borrowing is None:
            raise NotFoundError("Empréstimo não encontrado")
        return borrowing

    async def list_borrowings(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        book_id: UUID | None = None,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Borrowing], int]:
        return await self.borrowing_repo.search(
            student_id=student_id,
            staff_id=staff_id,
            book_id=book_id,
            status=status,
            page=page,
            page_size=page_size,
        )

    async def list_overdue(self) -> list[Borrowing]:
        return await self.borrowing_repo.get_overdue()

    async def list_lost(self) -> list[Borrowing]:
        return await self.borrowing_repo.get_lost()
