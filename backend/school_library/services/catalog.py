"""
Service do catálogo: títulos e leitores.

Regras de negócio:
    - book_code é único e prefixa os códigos de rastreio das cópias
    - Cópias são criadas sempre pelo InventoryService
    - Disponibilidade por título fica em cache (Redis) com TTL curto
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from school_library.core.cache import cache_service
from school_library.core.exceptions import NotFoundError, ValidationError
from school_library.core.logging import get_logger
from school_library.models.book import Book, BookCopy
from school_library.models.enums import CopyStatus
from school_library.models.patron import SchoolClass, Staff, Student
from school_library.repositories.book import BookCopyRepository, BookRepository
from school_library.repositories.patron import (
    SchoolClassRepository,
    StaffRepository,
    StudentRepository,
)
from school_library.schemas.book import BookCreate
from school_library.schemas.patron import SchoolClassCreate, StaffCreate, StudentCreate
from school_library.services.inventory import InventoryService

logger = get_logger(__name__)


class CatalogService:
    """Service para títulos, cópias e disponibilidade."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.book_repo = BookRepository(db)
        self.copy_repo = BookCopyRepository(db)
        self.inventory = InventoryService(db)

    async def create_book(
        self,
        data: BookCreate,
        quantity: int = 1,
    ) -> tuple[Book, list[BookCopy]]:
        """
        Cadastra um título com o primeiro lote de cópias.

        Args:
            data: Dados do título
            quantity: Número de cópias iniciais (>= 1)

        Returns:
            Tupla (título, cópias criadas)

        Raises:
            ValidationError: book_code/ISBN duplicado ou quantidade inválida
        """
        if quantity < 1:
            raise ValidationError("A quantidade de cópias deve ser pelo menos 1")
        if await self.book_repo.get_by_code(data.book_code) is not None:
            raise ValidationError(f"Já existe um livro com o código {data.book_code}")
        if data.isbn and await self.book_repo.get_by_isbn(data.isbn) is not None:
            raise ValidationError(f"Já existe um livro com o ISBN {data.isbn}")

        book = await self.book_repo.add(**data.model_dump())
        copies = await self.inventory.add_copies(book.id, quantity, commit=False)
        await self.db.commit()
        await self.db.refresh(book)

        logger.info(f"Livro {book.book_code} cadastrado com {len(copies)} cópia(s)")
        return book, copies

    async def get_book(self, book_id: UUID) -> Book:
        book = await self.book_repo.get_by_id(book_id)
        if book is None:
            raise NotFoundError("Livro não encontrado")
        return book

    async def list_books(
        self,
        query: str | None = None,
        category: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Book], int]:
        return await self.book_repo.search(
            query=query, category=category, page=page, page_size=page_size
        )

    async def list_copies(self, book_id: UUID) -> list[BookCopy]:
        await self.get_book(book_id)
        return await self.copy_repo.get_by_book(book_id)

    async def get_availability(self, book_id: UUID) -> dict:
        """
        Disponibilidade do título por status de cópia.

        Fluxo:
            1. Busca no cache
            2. Se não houver, calcula a partir das cópias e guarda no cache
        """
        cached = await cache_service.get_availability(book_id)
        if cached is not None:
            return cached

        book = await self.get_book(book_id)
        counts = await self.copy_repo.count_by_book(book_id)
        result = {
            "book_id": str(book.id),
            "title": book.title,
            "total_copies": counts["total"],
            "available_copies": counts[CopyStatus.AVAILABLE.value],
            "borrowed_copies": counts[CopyStatus.BORROWED.value],
            "lost_copies": counts[CopyStatus.LOST.value],
            "maintenance_copies": counts[CopyStatus.MAINTENANCE.value],
            "is_available": counts[CopyStatus.AVAILABLE.value] > 0,
        }
        await cache_service.set_availability(book_id, result)
        return result


class PatronService:
    """Service para turmas, alunos e funcionários."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.class_repo = SchoolClassRepository(db)
        self.student_repo = StudentRepository(db)
        self.staff_repo = StaffRepository(db)

    # ==========================================
    # Turmas
    # ==========================================

    async def create_class(self, data: SchoolClassCreate) -> SchoolClass:
        if await self.class_repo.get_by_name(data.class_name) is not None:
            raise ValidationError(f"Turma {data.class_name} já existe")
        school_class = await self.class_repo.create(**data.model_dump())
        logger.info(
            f"Turma {school_class.class_name} criada (limite {school_class.max_books_allowed})"
        )
        return school_class

    async def list_classes(self, active_only: bool = False) -> list[SchoolClass]:
        return await self.class_repo.list_all(active_only=active_only)

    # ==========================================
    # Alunos
    # ==========================================

    async def create_student(self, data: StudentCreate) -> Student:
        if await self.student_repo.get_by_admission_number(data.admission_number) is not None:
            raise ValidationError(f"Matrícula {data.admission_number} já cadastrada")

        values = data.model_dump()
        if data.class_id is not None:
            school_class = await self.class_repo.get_by_id(data.class_id)
            if school_class is None:
                raise NotFoundError("Turma não encontrada")
            values["class_grade"] = data.class_grade or school_class.class_name

        student = await self.student_repo.create(**values)
        logger.info(f"Aluno {student.admission_number} cadastrado")
        return student

    async def get_student(self, student_id: UUID) -> Student:
        student = await self.student_repo.get_by_id(student_id)
        if student is None:
            raise NotFoundError("Aluno não encontrado")
        return student

    async def list_students(
        self,
        query: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Student], int]:
        return await self.student_repo.search(query=query, page=page, page_size=page_size)

    # ==========================================
    # Funcionários
    # ==========================================

    async def create_staff(self, data: StaffCreate) -> Staff:
        if await self.staff_repo.get_by_staff_id(data.staff_id) is not None:
            raise ValidationError(f"Funcionário {data.staff_id} já cadastrado")
        staff = await self.staff_repo.create(**data.model_dump())
        logger.info(f"Funcionário {staff.staff_id} cadastrado")
        return staff

    async def get_staff(self, staff_id: UUID) -> Staff:
        staff = await self.staff_repo.get_by_id(staff_id)
        if staff is None:
            raise NotFoundError("Funcionário não encontrado")
        return staff

    async def list_staff(
        self,
        query: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Staff], int]:
        return await self.staff_repo.search(query=query, page=page, page_size=page_size)
