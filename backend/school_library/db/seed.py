"""
Script de seed para criar o schema e os dados iniciais no banco.

Uso:
    python -m school_library.db.seed

Cria as tabelas que faltarem, os valores padrão de multa e a turma
padrão. Pode ser executado várias vezes.
"""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import school_library.models  # noqa: F401  registra as tabelas em Base.metadata
from school_library.core.config import get_settings
from school_library.db.session import Base, async_session_factory, engine
from school_library.models.fine import FineSetting
from school_library.models.patron import SchoolClass
from school_library.services.fine import DEFAULT_FINE_AMOUNTS, fine_type_label

logger = logging.getLogger(__name__)
settings = get_settings()

DEFAULT_CLASS_NAME = "General"


async def create_tables() -> None:
    """Cria as tabelas ausentes a partir dos models."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Schema verificado")


async def seed_fine_settings(db: AsyncSession) -> int:
    """
    Cria FineSetting para os tipos ainda sem configuração.

    Returns:
        Número de tipos criados
    """
    result = await db.execute(select(FineSetting.fine_type))
    existing = set(result.scalars().all())

    created = 0
    for fine_type, amount in DEFAULT_FINE_AMOUNTS.items():
        if fine_type in existing:
            continue
        db.add(
            FineSetting(
                fine_type=fine_type,
                amount=amount,
                description=fine_type_label(fine_type),
            )
        )
        created += 1

    await db.commit()
    logger.info(f"Valores de multa: {created} criado(s), {len(existing)} já existente(s)")
    return created


async def seed_default_class(db: AsyncSession) -> None:
    """Cria a turma padrão se não existir."""
    result = await db.execute(
        select(SchoolClass).where(SchoolClass.class_name == DEFAULT_CLASS_NAME)
    )
    if result.scalar_one_or_none():
        logger.info(f"Turma padrão já existe: {DEFAULT_CLASS_NAME}")
        return

    db.add(
        SchoolClass(
            class_name=DEFAULT_CLASS_NAME,
            max_books_allowed=settings.DEFAULT_MAX_BOOKS_PER_STUDENT,
            is_active=True,
        )
    )
    await db.commit()
    logger.info(f"Turma padrão criada: {DEFAULT_CLASS_NAME}")


async def main() -> None:
    """Executa todos os seeds."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    logger.info("Executando seeds...")
    await create_tables()
    async with async_session_factory() as db:
        await seed_fine_settings(db)
        await seed_default_class(db)
    await engine.dispose()
    logger.info("Seeds concluídos!")


if __name__ == "__main__":
    asyncio.run(main())
