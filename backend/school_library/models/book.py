"""
Models de livros: Book (título do catálogo) e BookCopy (cópia física).
"""

import uuid
from typing import List, Optional

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from school_library.db.session import Base
from school_library.models.base import UUIDMixin, TimestampMixin, enum_type
from school_library.models.enums import BookCondition, BookStatus, CopyStatus


class Book(Base, UUIDMixin, TimestampMixin):
    """
    Título do catálogo.

    Um título possui várias cópias físicas (BookCopy). Os contadores
    total_copies e available_copies são um cache derivado das cópias,
    mantido exclusivamente pelo InventoryService.

    Attributes:
        id: UUID único do título
        title: Título do livro
        author: Autor
        isbn: ISBN (opcional, único)
        book_code: Prefixo dos códigos de rastreio das cópias (único)
        category: Categoria livre (ex: "Fiction", "Mathematics")
        publisher: Editora (opcional)
        publication_year: Ano de publicação (opcional)
        shelf_location: Localização na estante (opcional)
        total_copies: Total de cópias cadastradas
        available_copies: Cópias com status AVAILABLE
        status: AVAILABLE se há ao menos uma cópia disponível
    """
    __tablename__ = "books"

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str] = mapped_column(String(255), nullable=False)
    isbn: Mapped[Optional[str]] = mapped_column(String(32), unique=True, nullable=True)
    book_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    category: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    publisher: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    publication_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    shelf_location: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[BookStatus] = mapped_column(
        enum_type(BookStatus, "book_status"),
        nullable=False,
        default=BookStatus.UNAVAILABLE,
        index=True,
    )

    # Relationships
    copies: Mapped[List["BookCopy"]] = relationship(
        "BookCopy",
        back_populates="book",
        lazy="selectin",
        order_by="BookCopy.copy_number",
    )

    __table_args__ = (
        CheckConstraint("total_copies >= 0", name="ck_books_total_non_negative"),
        CheckConstraint("available_copies >= 0", name="ck_books_available_non_negative"),
        CheckConstraint(
            "available_copies <= total_copies",
            name="ck_books_available_le_total",
        ),
    )

    def __repr__(self) -> str:
        return f"<Book {self.book_code} {self.title}>"


class BookCopy(Base, UUIDMixin, TimestampMixin):
    """
    Cópia física de um livro.

    Attributes:
        id: UUID único da cópia
        book_id: FK para o título
        copy_number: Sequencial da cópia dentro do título
        tracking_code: Código legível BOOKCODE/NNN/AA, único
        condition: Estado de conservação
        status: AVAILABLE, BORROWED, LOST ou MAINTENANCE
        notes: Observações livres
    """
    __tablename__ = "book_copies"

    book_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("books.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    copy_number: Mapped[int] = mapped_column(Integer, nullable=False)
    tracking_code: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    condition: Mapped[BookCondition] = mapped_column(
        enum_type(BookCondition, "book_condition"),
        nullable=False,
        default=BookCondition.GOOD,
    )
    status: Mapped[CopyStatus] = mapped_column(
        enum_type(CopyStatus, "copy_status"),
        nullable=False,
        default=CopyStatus.AVAILABLE,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Relationships
    book: Mapped["Book"] = relationship(
        "Book",
        back_populates="copies",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<BookCopy {self.tracking_code} - {self.status.value}>"
