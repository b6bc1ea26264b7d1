"""
Ponto de entrada da aplicação FastAPI.

Este módulo configura a aplicação FastAPI, inclui rotas e define
handlers de ciclo de vida (startup/shutdown).
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from school_library.api.v1.router import api_router
from school_library.core.config import get_settings
from school_library.core.logging import setup_logging, get_logger
from school_library.db.session import check_database_connection, engine
from school_library.db.redis import init_redis, close_redis, check_redis_connection
from school_library.schemas.health import HealthResponse

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gerencia o ciclo de vida da aplicação.

    Startup:
        - Configura logging
        - Conecta ao Redis (cache, rate limit e debounce de leituras)
        - Verifica conexão com o banco

    Shutdown:
        - Fecha conexão com Redis
        - Fecha pool de conexões do banco
    """
    # Startup
    setup_logging()
    logger.info(f"Iniciando {settings.APP_NAME} em ambiente {settings.ENVIRONMENT}")

    try:
        await init_redis()
        if await check_redis_connection():
            logger.info("Conexão com Redis estabelecida")
        else:
            logger.warning("Redis não disponível - cache desabilitado")
    except Exception as e:
        logger.warning(f"Falha ao conectar ao Redis: {e}")

    try:
        success, error = await check_database_connection()
        if success:
            logger.info("Conexão com o banco estabelecida")
        else:
            logger.warning(f"Banco não disponível: {error}")
    except Exception as e:
        logger.warning(f"Falha ao conectar ao banco: {e}")

    yield

    # Shutdown
    logger.info(f"Encerrando {settings.APP_NAME}")
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="API REST de empréstimos, multas e inventário de biblioteca escolar",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Inclui rotas da API v1
app.include_router(api_router)


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Verifica status da aplicação",
    description="Retorna o status da aplicação e das dependências (banco e Redis).",
)
async def health_check() -> HealthResponse:
    """
    Endpoint de healthcheck para monitoramento.

    "healthy" exige banco disponível; Redis fora do ar só degrada
    cache e rate limit.
    """
    database_ok, _ = await check_database_connection()
    redis_ok = await check_redis_connection()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        app_name=settings.APP_NAME,
        environment=settings.ENVIRONMENT,
        database=database_ok,
        redis=redis_ok,
    )
