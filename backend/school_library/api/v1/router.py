"""
Router principal da API v1.

Inclui todos os routers de endpoints.
"""

from fastapi import APIRouter

from school_library.api.v1.books import router as books_router
from school_library.api.v1.borrowings import router as borrowings_router
from school_library.api.v1.fines import router as fines_router
from school_library.api.v1.notifications import router as notifications_router
from school_library.api.v1.patrons import router as patrons_router
from school_library.api.v1.reports import router as reports_router
from school_library.api.v1.system import router as system_router
from school_library.api.v1.theft import router as theft_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(books_router)
api_router.include_router(patrons_router)
api_router.include_router(borrowings_router)
api_router.include_router(fines_router)
api_router.include_router(theft_router)
api_router.include_router(reports_router)
api_router.include_router(notifications_router)
api_router.include_router(system_router)
