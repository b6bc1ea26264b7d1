"""
Testes para o endpoint de healthcheck.
"""

import pytest
from httpx import AsyncClient


@pytest.mark.anyio
async def test_health_check_returns_200(client: AsyncClient):
    """Verifica se o endpoint /health retorna status 200."""
    response = await client.get("/health")
    assert response.status_code == 200


@pytest.mark.anyio
async def test_health_check_reports_dependencies(client: AsyncClient):
    """Banco disponível e Redis ausente: healthy, com redis=False."""
    response = await client.get("/health")
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] is True
    assert data["redis"] is False


@pytest.mark.anyio
async def test_health_check_returns_app_info(client: AsyncClient):
    """Verifica se o endpoint /health retorna informações da aplicação."""
    response = await client.get("/health")
    data = response.json()
    assert data["app_name"] == "School Library API"
    assert data["environment"] == "test"
