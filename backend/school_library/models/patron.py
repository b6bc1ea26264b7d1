"""
Models de leitores: turmas, alunos e funcionários.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from school_library.db.session import Base
from school_library.models.base import UUIDMixin, TimestampMixin


class SchoolClass(Base, UUIDMixin, TimestampMixin):
    """
    Turma escolar.

    Attributes:
        id: UUID único da turma
        class_name: Nome da turma (ex: "Form 2 East"), único
        form_level: Série (opcional)
        max_books_allowed: Limite de empréstimos simultâneos dos alunos
        is_active: Turma em uso
    """
    __tablename__ = "classes"

    class_name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    form_level: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_books_allowed: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<SchoolClass {self.class_name} max={self.max_books_allowed}>"


class Student(Base, UUIDMixin, TimestampMixin):
    """
    Aluno.

    O limite de empréstimos vem da turma (class_id); class_grade é o
    nome da turma em texto livre, usado nos relatórios quando não há
    turma vinculada.
    """
    __tablename__ = "students"

    admission_number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    class_grade: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    class_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("classes.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Student {self.admission_number}>"


class Staff(Base, UUIDMixin, TimestampMixin):
    """Funcionário da escola (limite fixo de STAFF_MAX_BOOKS)."""
    __tablename__ = "staff"

    staff_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    first_name: Mapped[str] = mapped_column(String(120), nullable=False)
    last_name: Mapped[str] = mapped_column(String(120), nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    position: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Staff {self.staff_id}>"
