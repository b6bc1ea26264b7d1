"""
Testes para JWT e dependencies de autorização do operador.
"""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from httpx import AsyncClient

from school_library.core.deps import Operator, get_current_operator, require_admin
from school_library.core.security import create_access_token, decode_token
from school_library.models.enums import OperatorRole


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestJWT:
    """Testes para JWT."""

    def test_create_access_token(self):
        """Token deve ser criado com sucesso."""
        token = create_access_token(subject="librarian-123")

        assert isinstance(token, str)
        assert len(token) > 50

    def test_decode_token_with_role(self):
        """Token com role deve incluí-la no payload."""
        token = create_access_token(
            subject="librarian-123", extra_data={"role": "LIBRARIAN"}
        )
        payload = decode_token(token)

        assert payload is not None
        assert payload["sub"] == "librarian-123"
        assert payload["role"] == "LIBRARIAN"
        assert "exp" in payload

    def test_decode_token_invalid(self):
        """Token inválido deve retornar None."""
        assert decode_token("invalid-token") is None

    def test_decode_token_expired(self):
        """Token expirado deve retornar None."""
        token = create_access_token(
            subject="librarian-123",
            expires_delta=timedelta(seconds=-1),
        )
        assert decode_token(token) is None


class TestOperatorDependencies:
    """Testes para get_current_operator e require_admin."""

    @pytest.mark.anyio
    async def test_valid_token_returns_operator(self):
        subject = str(uuid4())
        token = create_access_token(subject=subject, extra_data={"role": "LIBRARIAN"})

        operator = await get_current_operator(_credentials(token))

        assert operator.id == subject
        assert operator.role == OperatorRole.LIBRARIAN

    @pytest.mark.anyio
    async def test_unknown_role_is_rejected(self):
        """Role fora de ADMIN/LIBRARIAN deve dar 401."""
        token = create_access_token(subject=str(uuid4()), extra_data={"role": "STUDENT"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_operator(_credentials(token))

        assert exc_info.value.status_code == 401

    @pytest.mark.anyio
    async def test_missing_role_is_rejected(self):
        token = create_access_token(subject=str(uuid4()))

        with pytest.raises(HTTPException) as exc_info:
            await get_current_operator(_credentials(token))

        assert exc_info.value.status_code == 401

    @pytest.mark.anyio
    async def test_require_admin_rejects_librarian(self):
        librarian = Operator(id=str(uuid4()), role=OperatorRole.LIBRARIAN)

        with pytest.raises(HTTPException) as exc_info:
            await require_admin(librarian)

        assert exc_info.value.status_code == 403

    @pytest.mark.anyio
    async def test_require_admin_accepts_admin(self):
        admin = Operator(id=str(uuid4()), role=OperatorRole.ADMIN)

        assert await require_admin(admin) is admin


class TestEndpointAuth:
    """Autorização nos endpoints."""

    @pytest.mark.anyio
    async def test_endpoint_without_token_is_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/books")
        assert response.status_code in (401, 403)

    @pytest.mark.anyio
    async def test_reconcile_requires_admin(self, client: AsyncClient, auth_headers: dict):
        response = await client.post("/api/v1/system/reconcile", headers=auth_headers)
        assert response.status_code == 403

    @pytest.mark.anyio
    async def test_reconcile_as_admin(self, client: AsyncClient, admin_headers: dict):
        response = await client.post("/api/v1/system/reconcile", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["copies_released"] == 0
        assert data["books_recounted"] == 0
