"""
Schemas Pydantic para o endpoint de healthcheck.
"""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """
    Resposta do endpoint de healthcheck.

    Attributes:
        status: "healthy" ou "degraded"
        app_name: Nome da aplicação
        environment: Ambiente atual
        database: Banco respondeu ao SELECT 1
        redis: Redis respondeu ao PING (False quando não configurado)
    """

    status: str
    app_name: str
    environment: str
    database: bool
    redis: bool

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "status": "healthy",
                    "app_name": "School Library API",
                    "environment": "development",
                    "database": True,
                    "redis": True,
                }
            ]
        }
    }
