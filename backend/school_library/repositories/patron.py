"""
Repositories de leitores: turmas, alunos e funcionários.
"""

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.models.patron import SchoolClass, Staff, Student
from school_library.repositories.base import BaseRepository


class SchoolClassRepository(BaseRepository[SchoolClass]):
    """Repository para operações CRUD de SchoolClass."""

    def __init__(self, db: AsyncSession):
        super().__init__(SchoolClass, db)

    async def get_by_name(self, class_name: str) -> SchoolClass | None:
        result = await self.db.execute(
            select(SchoolClass).where(SchoolClass.class_name == class_name)
        )
        return result.scalar_one_or_none()

    async def list_all(self, active_only: bool = False) -> list[SchoolClass]:
        stmt = select(SchoolClass).order_by(SchoolClass.class_name)
        if active_only:
            stmt = stmt.where(SchoolClass.is_active.is_(True))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())


class StudentRepository(BaseRepository[Student]):
    """Repository para operações CRUD de Student."""

    def __init__(self, db: AsyncSession):
        super().__init__(Student, db)

    async def get_by_admission_number(self, admission_number: str) -> Student | None:
        result = await self.db.execute(
            select(Student).where(Student.admission_number == admission_number)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        query: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Student], int]:
        """Busca alunos por nome ou número de matrícula."""
        skip = (page - 1) * page_size

        stmt = select(Student)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    Student.first_name.ilike(pattern),
                    Student.last_name.ilike(pattern),
                    Student.admission_number.ilike(pattern),
                )
            )

        count_result = await self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            stmt.offset(skip).limit(page_size).order_by(Student.admission_number)
        )
        return list(result.scalars().all()), total


class StaffRepository(BaseRepository[Staff]):
    """Repository para operações CRUD de Staff."""

    def __init__(self, db: AsyncSession):
        super().__init__(Staff, db)

    async def get_by_staff_id(self, staff_id: str) -> Staff | None:
        result = await self.db.execute(select(Staff).where(Staff.staff_id == staff_id))
        return result.scalar_one_or_none()

    async def search(
        self,
        query: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Staff], int]:
        """Busca funcionários por nome ou código."""
        skip = (page - 1) * page_size

        stmt = select(Staff)
        if query:
            pattern = f"%{query}%"
            stmt = stmt.where(
                or_(
                    Staff.first_name.ilike(pattern),
                    Staff.last_name.ilike(pattern),
                    Staff.staff_id.ilike(pattern),
                )
            )

        count_result = await self.db.execute(
            select(func.count()).select_from(stmt.subquery())
        )
        total = count_result.scalar_one()

        result = await self.db.execute(
            stmt.offset(skip).limit(page_size).order_by(Staff.staff_id)
        )
        return list(result.scalars().all()), total
