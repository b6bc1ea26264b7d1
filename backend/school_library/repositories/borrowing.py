"""
Repository para operações de Borrowing no banco de dados.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import and_, func, not_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.models.book import BookCopy
from school_library.models.borrowing import Borrowing
from school_library.models.enums import BorrowingStatus
from school_library.repositories.base import BaseRepository

# Status persistidos que ainda ocupam a cópia e a cota do leitor
OPEN_STATUSES = (BorrowingStatus.ACTIVE, BorrowingStatus.OVERDUE)


def _is_open():
    return Borrowing.status.in_(OPEN_STATUSES)


def _is_lost():
    return or_(Borrowing.is_lost.is_(True), Borrowing.status == BorrowingStatus.LOST)


def _is_overdue(today: date):
    return and_(_is_open(), Borrowing.is_lost.is_(False), Borrowing.due_date < today)


class BorrowingRepository(BaseRepository[Borrowing]):
    """Repository para operações CRUD de Borrowing."""

    def __init__(self, db: AsyncSession):
        super().__init__(Borrowing, db)

    @staticmethod
    def _patron_filter(student_id: UUID | None, staff_id: UUID | None):
        if student_id is not None:
            return Borrowing.student_id == student_id
        return Borrowing.staff_id == staff_id

    async def count_active_by_patron(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
    ) -> int:
        """
        Conta empréstimos que ocupam a cota do leitor.

        Empréstimos perdidos e ainda não resolvidos continuam ACTIVE e
        por isso contam.
        """
        result = await self.db.execute(
            select(func.count(Borrowing.id)).where(
                self._patron_filter(student_id, staff_id),
                _is_open(),
            )
        )
        return result.scalar_one()

    async def get_active_by_patron_id(self, patron_id: UUID) -> list[Borrowing]:
        """Lista empréstimos em aberto (não perdidos) de um leitor, aluno ou funcionário."""
        result = await self.db.execute(
            select(Borrowing)
            .where(
                or_(Borrowing.student_id == patron_id, Borrowing.staff_id == patron_id),
                _is_open(),
                Borrowing.is_lost.is_(False),
            )
            .order_by(Borrowing.borrowed_date, Borrowing.created_at)
        )
        return list(result.scalars().all())

    async def get_active_by_copy(self, book_copy_id: UUID) -> Borrowing | None:
        """Busca empréstimo em aberto de uma cópia específica."""
        result = await self.db.execute(
            select(Borrowing)
            .where(
                Borrowing.book_copy_id == book_copy_id,
                _is_open(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_active_by_tracking_code(self, tracking_code: str) -> list[Borrowing]:
        """Empréstimos em aberto, não perdidos, com o código informado."""
        result = await self.db.execute(
            select(Borrowing)
            .where(
                func.upper(Borrowing.tracking_code) == tracking_code.strip().upper(),
                _is_open(),
                Borrowing.is_lost.is_(False),
            )
            .order_by(Borrowing.borrowed_date.desc())
        )
        return list(result.scalars().all())

    async def get_lost_by_tracking_code(self, tracking_code: str) -> Borrowing | None:
        """Empréstimo perdido (ainda não devolvido) mais recente com o código."""
        result = await self.db.execute(
            select(Borrowing)
            .where(
                func.upper(Borrowing.tracking_code) == tracking_code.strip().upper(),
                _is_lost(),
                Borrowing.status != BorrowingStatus.RETURNED,
            )
            .order_by(Borrowing.borrowed_date.desc(), Borrowing.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_open_copy_ids(self) -> set[UUID]:
        """IDs de cópias referenciadas por empréstimos em aberto e não perdidos."""
        result = await self.db.execute(
            select(Borrowing.book_copy_id).where(
                _is_open(),
                Borrowing.is_lost.is_(False),
                Borrowing.book_copy_id.is_not(None),
            )
        )
        return set(result.scalars().all())

    async def get_lost_open_copy_ids(self) -> set[UUID]:
        """
        IDs de cópias presas a empréstimos perdidos ainda não resolvidos.

        Esses empréstimos continuam ACTIVE com is_lost=True e seguram a cópia.
        """
        result = await self.db.execute(
            select(Borrowing.book_copy_id).where(
                _is_open(),
                Borrowing.is_lost.is_(True),
                Borrowing.book_copy_id.is_not(None),
            )
        )
        return set(result.scalars().all())

    async def get_open_with_missing_copy(self) -> list[Borrowing]:
        """
        Empréstimos em aberto cujo código de rastreio não tem mais cópia.

        Apagar a cópia zera book_copy_id (ondelete SET NULL); o vínculo
        que sobra é o tracking_code.
        """
        copy_exists = (
            select(BookCopy.id)
            .where(func.upper(BookCopy.tracking_code) == func.upper(Borrowing.tracking_code))
            .exists()
        )
        result = await self.db.execute(
            select(Borrowing).where(
                _is_open(),
                Borrowing.is_lost.is_(False),
                Borrowing.tracking_code.is_not(None),
                not_(copy_exists),
            )
        )
        return list(result.scalars().all())

    async def search(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        book_id: UUID | None = None,
        status: str | None = None,  # "active", "overdue", "returned", "lost"
        today: date | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Borrowing], int]:
        """
        Busca empréstimos com filtros e paginação.

        O status é o derivado: "overdue" é um empréstimo em aberto vencido,
        "active" é um empréstimo em aberto dentro do prazo, "lost" cobre
        is_lost e o status legado LOST.

        Returns:
            Tupla (lista de empréstimos, total)
        """
        skip = (page - 1) * page_size
        today = today or date.today()

        query = select(Borrowing)

        if student_id:
            query = query.where(Borrowing.student_id == student_id)
        if staff_id:
            query = query.where(Borrowing.staff_id == staff_id)
        if book_id:
            query = query.where(Borrowing.book_id == book_id)

        if status == "active":
            query = query.where(
                _is_open(),
                Borrowing.is_lost.is_(False),
                Borrowing.due_date >= today,
            )
        elif status == "overdue":
            query = query.where(_is_overdue(today))
        elif status == "returned":
            query = query.where(Borrowing.status == BorrowingStatus.RETURNED)
        elif status == "lost":
            query = query.where(_is_lost(), Borrowing.status != BorrowingStatus.RETURNED)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            query.offset(skip)
            .limit(page_size)
            .order_by(Borrowing.borrowed_date.desc(), Borrowing.created_at.desc())
        )
        return list(result.scalars().all()), total

    async def get_overdue(self, today: date | None = None) -> list[Borrowing]:
        """Lista empréstimos vencidos, mais antigos primeiro."""
        today = today or date.today()
        result = await self.db.execute(
            select(Borrowing)
            .where(_is_overdue(today))
            .order_by(Borrowing.due_date)
        )
        return list(result.scalars().all())

    async def get_lost(self) -> list[Borrowing]:
        """Lista empréstimos marcados como perdidos e ainda não encontrados."""
        result = await self.db.execute(
            select(Borrowing)
            .where(_is_lost(), Borrowing.status != BorrowingStatus.RETURNED)
            .order_by(Borrowing.updated_at.desc())
        )
        return list(result.scalars().all())

    async def status_counts(self, today: date | None = None) -> dict[str, int]:
        """
        Contagens por status derivado.

        Returns:
            Dict com active, overdue, returned e lost
        """
        today = today or date.today()
        lost = _is_lost()
        result = await self.db.execute(
            select(
                func.count(Borrowing.id).filter(
                    _is_open(), not_(lost), Borrowing.due_date >= today
                ),
                func.count(Borrowing.id).filter(_is_overdue(today)),
                func.count(Borrowing.id).filter(
                    Borrowing.status == BorrowingStatus.RETURNED
                ),
                func.count(Borrowing.id).filter(
                    lost, Borrowing.status != BorrowingStatus.RETURNED
                ),
            )
        )
        active, overdue, returned, lost_count = result.one()
        return {
            "active": active,
            "overdue": overdue,
            "returned": returned,
            "lost": lost_count,
        }
