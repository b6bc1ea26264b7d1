"""
Repositories para Fine e FineSetting.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.models.enums import FineStatus, FineType
from school_library.models.fine import Fine, FineSetting
from school_library.models.patron import SchoolClass, Staff, Student
from school_library.repositories.base import BaseRepository


class FineRepository(BaseRepository[Fine]):
    """Repository para operações CRUD de Fine."""

    def __init__(self, db: AsyncSession):
        super().__init__(Fine, db)

    async def get_by_borrowing_and_type(
        self,
        borrowing_id: UUID,
        fine_type: FineType,
    ) -> Fine | None:
        """Busca a multa de um empréstimo para um tipo (chave de duplicidade)."""
        result = await self.db.execute(
            select(Fine)
            .where(Fine.borrowing_id == borrowing_id, Fine.fine_type == fine_type)
            .order_by(Fine.created_at)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_by_borrowing(
        self,
        borrowing_id: UUID,
        fine_type: FineType | None = None,
    ) -> list[Fine]:
        stmt = select(Fine).where(Fine.borrowing_id == borrowing_id)
        if fine_type is not None:
            stmt = stmt.where(Fine.fine_type == fine_type)
        result = await self.db.execute(stmt.order_by(Fine.created_at))
        return list(result.scalars().all())

    async def search(
        self,
        student_id: UUID | None = None,
        staff_id: UUID | None = None,
        status: FineStatus | None = None,
        fine_type: FineType | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Fine], int]:
        """
        Busca multas com filtros e paginação.

        Returns:
            Tupla (lista de multas, total)
        """
        skip = (page - 1) * page_size

        query = select(Fine)
        if student_id:
            query = query.where(Fine.student_id == student_id)
        if staff_id:
            query = query.where(Fine.staff_id == staff_id)
        if status:
            query = query.where(Fine.status == status)
        if fine_type:
            query = query.where(Fine.fine_type == fine_type)

        count_result = await self.db.execute(
            select(func.count()).select_from(query.subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            query.offset(skip).limit(page_size).order_by(Fine.created_at.desc())
        )
        return list(result.scalars().all()), total

    async def sum_by_statuses(self, statuses: list[FineStatus]) -> Decimal:
        result = await self.db.execute(
            select(func.coalesce(func.sum(Fine.amount), 0)).where(
                Fine.status.in_(statuses)
            )
        )
        return Decimal(str(result.scalar_one()))

    async def totals_by_student(self, status: FineStatus | None = None) -> list[tuple]:
        """Linhas (student_id, admission_number, nome, sobrenome, total, quantidade)."""
        stmt = (
            select(
                Student.id,
                Student.admission_number,
                Student.first_name,
                Student.last_name,
                func.sum(Fine.amount),
                func.count(Fine.id),
            )
            .join(Student, Student.id == Fine.student_id)
            .group_by(
                Student.id,
                Student.admission_number,
                Student.first_name,
                Student.last_name,
            )
        )
        if status:
            stmt = stmt.where(Fine.status == status)
        result = await self.db.execute(stmt)
        return list(result.all())

    async def totals_by_staff(self, status: FineStatus | None = None) -> list[tuple]:
        """Linhas (staff.id, staff_id, nome, sobrenome, total, quantidade)."""
        stmt = (
            select(
                Staff.id,
                Staff.staff_id,
                Staff.first_name,
                Staff.last_name,
                func.sum(Fine.amount),
                func.count(Fine.id),
            )
            .join(Staff, Staff.id == Fine.staff_id)
            .group_by(Staff.id, Staff.staff_id, Staff.first_name, Staff.last_name)
        )
        if status:
            stmt = stmt.where(Fine.status == status)
        result = await self.db.execute(stmt)
        return list(result.all())

    async def totals_by_class(self, status: FineStatus | None = None) -> list[tuple]:
        """
        Linhas (turma, total, quantidade) das multas de alunos.

        A turma vinculada tem prioridade sobre class_grade; alunos sem
        nenhuma das duas caem em "Unassigned".
        """
        class_label = func.coalesce(
            SchoolClass.class_name, Student.class_grade, "Unassigned"
        )
        stmt = (
            select(class_label, func.sum(Fine.amount), func.count(Fine.id))
            .join(Student, Student.id == Fine.student_id)
            .outerjoin(SchoolClass, SchoolClass.id == Student.class_id)
            .group_by(class_label)
            .order_by(class_label)
        )
        if status:
            stmt = stmt.where(Fine.status == status)
        result = await self.db.execute(stmt)
        return list(result.all())


class FineSettingRepository(BaseRepository[FineSetting]):
    """Repository para valores configurados de multa."""

    def __init__(self, db: AsyncSession):
        super().__init__(FineSetting, db)

    async def get_by_type(self, fine_type: FineType) -> FineSetting | None:
        result = await self.db.execute(
            select(FineSetting).where(FineSetting.fine_type == fine_type)
        )
        return result.scalar_one_or_none()

    async def list_all(self) -> list[FineSetting]:
        result = await self.db.execute(select(FineSetting).order_by(FineSetting.fine_type))
        return list(result.scalars().all())
