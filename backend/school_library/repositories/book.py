"""
Repository para operações de Book e BookCopy no banco de dados.
"""

from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.models.book import Book, BookCopy
from school_library.models.enums import CopyStatus
from school_library.repositories.base import BaseRepository


class BookRepository(BaseRepository[Book]):
    """Repository para operações CRUD de Book."""

    def __init__(self, db: AsyncSession):
        super().__init__(Book, db)

    async def get_by_code(self, book_code: str) -> Book | None:
        """Busca título pelo book_code (case-insensitive)."""
        result = await self.db.execute(
            select(Book).where(func.upper(Book.book_code) == book_code.strip().upper())
        )
        return result.scalar_one_or_none()

    async def get_by_isbn(self, isbn: str) -> Book | None:
        result = await self.db.execute(select(Book).where(Book.isbn == isbn))
        return result.scalar_one_or_none()

    async def list_ids(self) -> list[UUID]:
        """IDs de todos os títulos (usado pelo reparo em massa)."""
        result = await self.db.execute(select(Book.id))
        return list(result.scalars().all())

    async def search(
        self,
        query: str | None = None,
        category: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Book], int]:
        """
        Busca títulos com filtros e paginação.

        Args:
            query: Texto procurado em título, autor ou book_code
            category: Filtro exato por categoria
            page: Número da página
            page_size: Tamanho da página

        Returns:
            Tupla (lista de títulos, total)
        """
        skip = (page - 1) * page_size

        stmt = select(Book)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    Book.title.ilike(pattern),
                    Book.author.ilike(pattern),
                    Book.book_code.ilike(pattern),
                )
            )
        if category:
            stmt = stmt.where(Book.category == category)

        count_result = await self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            stmt.offset(skip).limit(page_size).order_by(Book.title)
        )
        return list(result.scalars().all()), total

    async def totals(self) -> dict[str, int]:
        """Totais do acervo: títulos, cópias e cópias disponíveis."""
        result = await self.db.execute(
            select(
                func.count(Book.id),
                func.coalesce(func.sum(Book.total_copies), 0),
                func.coalesce(func.sum(Book.available_copies), 0),
            )
        )
        books, copies, available = result.one()
        return {
            "total_books": int(books),
            "total_copies": int(copies),
            "available_copies": int(available),
        }


class BookCopyRepository(BaseRepository[BookCopy]):
    """Repository para operações CRUD de BookCopy."""

    def __init__(self, db: AsyncSession):
        super().__init__(BookCopy, db)

    async def get_by_tracking_code(self, tracking_code: str) -> BookCopy | None:
        """Busca cópia pelo código de rastreio (armazenado em maiúsculas)."""
        result = await self.db.execute(
            select(BookCopy).where(
                func.upper(BookCopy.tracking_code) == tracking_code.strip().upper()
            )
        )
        return result.scalar_one_or_none()

    async def get_by_book(self, book_id: UUID) -> list[BookCopy]:
        """Lista todas as cópias de um título."""
        result = await self.db.execute(
            select(BookCopy)
            .where(BookCopy.book_id == book_id)
            .order_by(BookCopy.copy_number)
        )
        return list(result.scalars().all())

    async def get_by_status(self, status: CopyStatus) -> list[BookCopy]:
        result = await self.db.execute(
            select(BookCopy).where(BookCopy.status == status)
        )
        return list(result.scalars().all())

    async def get_by_ids(self, copy_ids: set[UUID]) -> list[BookCopy]:
        if not copy_ids:
            return []
        result = await self.db.execute(
            select(BookCopy).where(BookCopy.id.in_(copy_ids))
        )
        return list(result.scalars().all())

    async def max_copy_number(self, book_id: UUID) -> int:
        """Maior copy_number já usado no título (0 se não há cópias)."""
        result = await self.db.execute(
            select(func.max(BookCopy.copy_number)).where(BookCopy.book_id == book_id)
        )
        return result.scalar_one_or_none() or 0

    async def count_by_book(self, book_id: UUID) -> dict[str, int]:
        """
        Conta cópias por status para um título.

        Returns:
            Dict com total e uma chave por CopyStatus
        """
        result = await self.db.execute(
            select(BookCopy.status, func.count(BookCopy.id))
            .where(BookCopy.book_id == book_id)
            .group_by(BookCopy.status)
        )
        counts = {status.value: 0 for status in CopyStatus}
        for status, count in result.all():
            counts[status.value] = count

        counts["total"] = sum(counts.values())
        return counts
