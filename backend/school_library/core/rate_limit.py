"""
Rate limiting usando Redis com janela fixa.

Protege os endpoints de leitura de código de rastreio (scanner do
balcão), identificando o operador pelo JWT ou o cliente pelo IP.
Configurável via variáveis de ambiente:
    - RATE_LIMIT_ENABLED: bool (default: True)
    - RATE_LIMIT_REQUESTS: int (default: 60)
    - RATE_LIMIT_WINDOW_SECONDS: int (default: 60)

Uso:
    @router.post("/detect", dependencies=[Depends(rate_limit_scan)])
    async def detect(...):
        ...
"""

from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from school_library.core.config import get_settings
from school_library.core.logging import get_logger
from school_library.core.security import decode_token
from school_library.db.redis import get_redis_client

logger = get_logger(__name__)
settings = get_settings()
security = HTTPBearer(auto_error=False)


class RateLimiter:
    """
    Dependency para rate limiting usando Redis (INCR + EXPIRE).

    Args:
        requests: Número máximo de requests na janela (default: config)
        window: Janela de tempo em segundos (default: config)
        key_prefix: Prefixo da chave no Redis
    """

    def __init__(
        self,
        requests: Optional[int] = None,
        window: Optional[int] = None,
        key_prefix: str = "rate_limit",
    ):
        self.requests = requests or settings.RATE_LIMIT_REQUESTS
        self.window = window or settings.RATE_LIMIT_WINDOW_SECONDS
        self.key_prefix = key_prefix

    async def __call__(
        self,
        request: Request,
        credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)] = None,
    ) -> None:
        """
        Verifica rate limit.

        Raises:
            HTTPException 429: Rate limit excedido
        """
        if not settings.RATE_LIMIT_ENABLED:
            return

        # Sem Redis, permite passagem (fail-open)
        client = get_redis_client()
        if client is None:
            return

        identifier = self._get_identifier(request, credentials)
        key = f"{self.key_prefix}:{identifier}"

        try:
            current = await client.incr(key)

            # Primeiro request da janela define o TTL
            if current == 1:
                await client.expire(key, self.window)

            if current > self.requests:
                ttl = await client.ttl(key)
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail=f"Rate limit excedido. Tente novamente em {ttl} segundos.",
                    headers={"Retry-After": str(ttl)},
                )
        except HTTPException:
            raise
        except Exception as e:
            # Erro no Redis: fail-open
            logger.warning(f"Rate limit indisponível ({key}): {e}")

    def _get_identifier(
        self,
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials],
    ) -> str:
        """
        Prioridade:
            1. sub do JWT (operador autenticado)
            2. IP do cliente (considerando X-Forwarded-For)
        """
        if credentials:
            payload = decode_token(credentials.credentials)
            if payload and "sub" in payload:
                return f"operator:{payload['sub']}"

        client_ip = request.client.host if request.client else "unknown"

        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()

        return f"ip:{client_ip}"


# Instâncias pré-configuradas
rate_limit_scan = RateLimiter(key_prefix="rate_limit:scan")
