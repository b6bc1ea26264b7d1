"""
Utilitários de segurança: emissão e validação de JWT.

Os tokens de produção são emitidos pelo serviço de autenticação externo;
create_access_token existe para ambientes de desenvolvimento e testes.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from school_library.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def create_access_token(
    subject: str,
    extra_data: dict[str, Any] | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Cria token JWT.

    Args:
        subject: Identificador do bibliotecário
        extra_data: Dados adicionais para incluir no payload (ex: role)
        expires_delta: Tempo de expiração customizado

    Returns:
        Token JWT assinado
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.JWT_EXPIRES_MINUTES
        )

    payload = {
        "sub": subject,
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }

    if extra_data:
        payload.update(extra_data)

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any] | None:
    """
    Decodifica e valida token JWT.

    Returns:
        Payload do token ou None se inválido/expirado
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError as e:
        logger.debug(f"Token rejeitado: {type(e).__name__}")
        return None
