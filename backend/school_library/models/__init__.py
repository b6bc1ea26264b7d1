"""
Models SQLAlchemy da aplicação.

Importar todos os models aqui para que Base.metadata conheça todas as tabelas.
"""

from school_library.models.enums import (
    BookCondition,
    BookStatus,
    BorrowerType,
    BorrowingStatus,
    CopyStatus,
    FineStatus,
    FineType,
    NotificationType,
    OperatorRole,
    TheftReportStatus,
)
from school_library.models.book import Book, BookCopy
from school_library.models.patron import SchoolClass, Student, Staff
from school_library.models.borrowing import Borrowing
from school_library.models.fine import Fine, FineSetting
from school_library.models.theft_report import TheftReport
from school_library.models.notification import Notification

__all__ = [
    "BookCondition",
    "BookStatus",
    "BorrowerType",
    "BorrowingStatus",
    "CopyStatus",
    "FineStatus",
    "FineType",
    "NotificationType",
    "OperatorRole",
    "TheftReportStatus",
    "Book",
    "BookCopy",
    "SchoolClass",
    "Student",
    "Staff",
    "Borrowing",
    "Fine",
    "FineSetting",
    "TheftReport",
    "Notification",
]
