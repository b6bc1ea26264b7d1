"""
Repositories para acesso a dados.
"""

from school_library.repositories.base import BaseRepository
from school_library.repositories.book import BookCopyRepository, BookRepository
from school_library.repositories.borrowing import BorrowingRepository
from school_library.repositories.fine import FineRepository, FineSettingRepository
from school_library.repositories.notification import NotificationRepository
from school_library.repositories.patron import (
    SchoolClassRepository,
    StaffRepository,
    StudentRepository,
)
from school_library.repositories.theft_report import TheftReportRepository

__all__ = [
    "BaseRepository",
    "BookRepository",
    "BookCopyRepository",
    "BorrowingRepository",
    "FineRepository",
    "FineSettingRepository",
    "NotificationRepository",
    "SchoolClassRepository",
    "StaffRepository",
    "StudentRepository",
    "TheftReportRepository",
]
