"""
Dependencies FastAPI para autenticação e autorização.

A autenticação em si é feita por um serviço externo; aqui apenas
validamos o bearer token e o papel (role) do operador.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from school_library.core.security import decode_token
from school_library.db.session import get_db
from school_library.models.enums import OperatorRole

# Scheme Bearer para extrair token do header Authorization
security = HTTPBearer()


class Operator(BaseModel):
    """Bibliotecário ou administrador autenticado."""

    id: str
    role: OperatorRole


async def get_current_operator(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> Operator:
    """
    Dependency que retorna o operador autenticado.

    Raises:
        HTTPException 401: Token inválido, expirado ou sem role reconhecida
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Token inválido ou expirado",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    subject: str | None = payload.get("sub")
    if subject is None:
        raise credentials_exception

    try:
        role = OperatorRole(payload.get("role"))
    except ValueError:
        raise credentials_exception

    return Operator(id=subject, role=role)


async def require_admin(
    operator: Annotated[Operator, Depends(get_current_operator)],
) -> Operator:
    """
    Dependency que exige que o operador seja ADMIN.

    Raises:
        HTTPException 403: Operador não é admin
    """
    if operator.role != OperatorRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Acesso restrito a administradores",
        )
    return operator


# Type aliases para uso nos endpoints
CurrentOperator = Annotated[Operator, Depends(get_current_operator)]
AdminOperator = Annotated[Operator, Depends(require_admin)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
