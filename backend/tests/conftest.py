"""
Fixtures compartilhadas para testes.

Os testes rodam contra SQLite em memória (aiosqlite) e sem Redis:
cache e rate limit viram no-op e o debounce de leituras usa memória.
"""

import os

# Precisa vir antes de qualquer import de school_library (get_settings é cacheado)
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

import uuid
from datetime import date
from typing import AsyncGenerator

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import school_library.models  # noqa: F401  (registra as tabelas em Base.metadata)
from school_library.core.security import create_access_token
from school_library.db.session import Base, get_db
from school_library.main import app
from school_library.models.enums import OperatorRole
from school_library.schemas.book import BookCreate
from school_library.schemas.patron import SchoolClassCreate, StaffCreate, StudentCreate
from school_library.services.catalog import CatalogService, PatronService
from school_library.services.theft import scan_debouncer


# ==========================================
# Event loop configuration
# ==========================================

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


# ==========================================
# Database fixtures
# ==========================================

@pytest.fixture
async def test_engine():
    """
    Engine de teste com um banco novo por teste.

    StaticPool mantém uma única conexão, senão cada conexão veria
    um banco em memória diferente.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def test_db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Sessão de banco para testes de service."""
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_scan_debouncer():
    """Leituras de testes anteriores não podem contar como repetidas."""
    scan_debouncer._last_seen.clear()
    yield
    scan_debouncer._last_seen.clear()


# ==========================================
# HTTP Client fixtures
# ==========================================

@pytest.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    Cliente HTTP assíncrono para testes.

    Substitui a dependency get_db para usar o engine de teste.
    """
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ==========================================
# Auth fixtures
# ==========================================

@pytest.fixture
def admin_token() -> str:
    return create_access_token(
        subject=str(uuid.uuid4()),
        extra_data={"role": OperatorRole.ADMIN.value},
    )


@pytest.fixture
def librarian_token() -> str:
    return create_access_token(
        subject=str(uuid.uuid4()),
        extra_data={"role": OperatorRole.LIBRARIAN.value},
    )


@pytest.fixture
def admin_headers(admin_token: str) -> dict:
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def auth_headers(librarian_token: str) -> dict:
    """Headers de autenticação com token de bibliotecário."""
    return {"Authorization": f"Bearer {librarian_token}"}


# ==========================================
# Data factories
# ==========================================

@pytest.fixture
def make_book(test_db):
    """Cadastra um título com N cópias e retorna (book, copies)."""
    async def _make_book(book_code: str = "MAT", quantity: int = 3, **fields):
        data = BookCreate(
            title=fields.pop("title", f"Livro {book_code}"),
            author=fields.pop("author", "Autor Teste"),
            book_code=book_code,
            **fields,
        )
        return await CatalogService(test_db).create_book(data, quantity)

    return _make_book


@pytest.fixture
def make_class(test_db):
    async def _make_class(class_name: str = "Form 1A", max_books_allowed: int = 2):
        return await PatronService(test_db).create_class(
            SchoolClassCreate(class_name=class_name, max_books_allowed=max_books_allowed)
        )

    return _make_class


@pytest.fixture
def make_student(test_db):
    async def _make_student(admission_number: str = "ADM001", class_id=None, **fields):
        return await PatronService(test_db).create_student(
            StudentCreate(
                admission_number=admission_number,
                first_name=fields.get("first_name", "Ana"),
                last_name=fields.get("last_name", "Wanjiru"),
                class_id=class_id,
            )
        )

    return _make_student


@pytest.fixture
def make_staff(test_db):
    async def _make_staff(staff_id: str = "STF001"):
        return await PatronService(test_db).create_staff(
            StaffCreate(staff_id=staff_id, first_name="Peter", last_name="Otieno")
        )

    return _make_staff


@pytest.fixture
def today() -> date:
    return date.today()
