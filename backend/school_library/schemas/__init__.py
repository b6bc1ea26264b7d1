"""
Schemas Pydantic da aplicação.
"""

from school_library.schemas.base import (
    BaseSchema,
    PaginatedResponse,
    TimestampSchema,
)
from school_library.schemas.health import HealthResponse
from school_library.schemas.book import (
    BookAvailability,
    BookCopyRead,
    BookCreate,
    BookCreateResponse,
    BookRead,
    CopiesCreate,
)
from school_library.schemas.patron import (
    BorrowingLimit,
    SchoolClassCreate,
    SchoolClassRead,
    StaffCreate,
    StaffRead,
    StudentCreate,
    StudentRead,
)
from school_library.schemas.borrowing import (
    BorrowingBatchCreate,
    BorrowingCreate,
    BorrowingItem,
    BorrowingRead,
    BorrowingReturn,
    FoundLostRequest,
    FoundLostResponse,
)
from school_library.schemas.fine import (
    FineCollect,
    FineCreate,
    FineRead,
    FineSettingRead,
    FineSettingUpdate,
)
from school_library.schemas.theft import (
    MismatchRequest,
    MismatchResponse,
    TheftProcessRequest,
    TheftReportRead,
    TheftReportResolve,
)
from school_library.schemas.report import (
    BorrowingCounts,
    ClassFineTotal,
    DashboardStats,
    PatronFineTotal,
)
from school_library.schemas.notification import NotificationRead

__all__ = [
    "BaseSchema",
    "PaginatedResponse",
    "TimestampSchema",
    "HealthResponse",
    "BookAvailability",
    "BookCopyRead",
    "BookCreate",
    "BookCreateResponse",
    "BookRead",
    "CopiesCreate",
    "BorrowingLimit",
    "SchoolClassCreate",
    "SchoolClassRead",
    "StaffCreate",
    "StaffRead",
    "StudentCreate",
    "StudentRead",
    "BorrowingBatchCreate",
    "BorrowingCreate",
    "BorrowingItem",
    "BorrowingRead",
    "BorrowingReturn",
    "FoundLostRequest",
    "FoundLostResponse",
    "FineCollect",
    "FineCreate",
    "FineRead",
    "FineSettingRead",
    "FineSettingUpdate",
    "MismatchRequest",
    "MismatchResponse",
    "TheftProcessRequest",
    "TheftReportRead",
    "TheftReportResolve",
    "BorrowingCounts",
    "ClassFineTotal",
    "DashboardStats",
    "PatronFineTotal",
    "NotificationRead",
]
