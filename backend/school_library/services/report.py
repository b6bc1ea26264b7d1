"""
Service de relatórios: agregações somente leitura.

O atraso é sempre derivado na consulta (em aberto, não perdido e
due_date < hoje), nunca lido de um status persistido.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from school_library.core.cache import cache_service
from school_library.core.config import get_settings
from school_library.models.enums import BorrowerType, FineStatus
from school_library.repositories.book import BookRepository
from school_library.repositories.borrowing import BorrowingRepository
from school_library.repositories.fine import FineRepository

settings = get_settings()


class ReportService:
    """Service para contagens e totais de multas."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.book_repo = BookRepository(db)
        self.borrowing_repo = BorrowingRepository(db)
        self.fine_repo = FineRepository(db)

    async def borrowing_counts(self) -> dict[str, int]:
        """Empréstimos active, overdue, returned e lost."""
        return await self.borrowing_repo.status_counts()

    async def fine_totals_by_patron(self, status: FineStatus | None = None) -> list[dict]:
        """Total de multas por leitor, maior total primeiro."""
        rows = []
        for patron_id, identifier, first, last, total, count in await self.fine_repo.totals_by_student(status):
            rows.append(
                {
                    "patron_id": patron_id,
                    "borrower_type": BorrowerType.STUDENT,
                    "identifier": identifier,
                    "name": f"{first} {last}",
                    "total": Decimal(str(total or 0)),
                    "count": count,
                }
            )
        for patron_id, identifier, first, last, total, count in await self.fine_repo.totals_by_staff(status):
            rows.append(
                {
                    "patron_id": patron_id,
                    "borrower_type": BorrowerType.STAFF,
                    "identifier": identifier,
                    "name": f"{first} {last}",
                    "total": Decimal(str(total or 0)),
                    "count": count,
                }
            )
        rows.sort(key=lambda row: row["total"], reverse=True)
        return rows

    async def fine_totals_by_class(self, status: FineStatus | None = None) -> list[dict]:
        """Total de multas de alunos por turma."""
        return [
            {
                "class_name": class_name,
                "total": Decimal(str(total or 0)),
                "count": count,
            }
            for class_name, total, count in await self.fine_repo.totals_by_class(status)
        ]

    async def dashboard(self) -> dict:
        """
        Painel consolidado (cacheado por CACHE_DASHBOARD_TTL_SECONDS).

        Multas cobradas = paid + collected; em aberto = unpaid.
        """
        cached = await cache_service.get_dashboard()
        if cached is not None:
            return cached

        totals = await self.book_repo.totals()
        result = {
            **totals,
            "borrowings": await self.borrowing_counts(),
            "fines_collected": await self.fine_repo.sum_by_statuses(
                [FineStatus.PAID, FineStatus.COLLECTED]
            ),
            "fines_outstanding": await self.fine_repo.sum_by_statuses([FineStatus.UNPAID]),
            "currency": settings.CURRENCY,
        }
        await cache_service.set_dashboard(result)
        return result
