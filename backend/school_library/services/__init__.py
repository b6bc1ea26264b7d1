"""
Módulo de serviços - regras de negócio.
"""

from school_library.services.borrowing import BorrowingService
from school_library.services.catalog import CatalogService, PatronService
from school_library.services.fine import FineService
from school_library.services.inventory import InventoryService
from school_library.services.report import ReportService
from school_library.services.theft import TheftService

__all__ = [
    "BorrowingService",
    "CatalogService",
    "PatronService",
    "FineService",
    "InventoryService",
    "ReportService",
    "TheftService",
]
