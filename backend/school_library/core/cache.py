"""
Cache service usando Redis.

Fornece cache para leituras de alta frequência do balcão:
    - Disponibilidade de um título (GET /books/{id}/availability)
    - Painel consolidado (GET /reports/dashboard)

Configurável via variáveis de ambiente:
    - CACHE_ENABLED: bool (default: True)
    - CACHE_AVAILABILITY_TTL_SECONDS: int (default: 15)
    - CACHE_DASHBOARD_TTL_SECONDS: int (default: 60)

Invalidação:
    Toda mutação de status de cópia (empréstimo, devolução, perda,
    reparo) invalida a disponibilidade do título e o painel.
"""

import json
from typing import Optional
from uuid import UUID

from school_library.core.config import get_settings
from school_library.core.logging import get_logger
from school_library.db.redis import get_redis_client

logger = get_logger(__name__)
settings = get_settings()


class CacheService:
    """
    Service para operações de cache usando Redis.

    Sem Redis (ou com CACHE_ENABLED=False) todas as operações viram
    no-op e os services calculam os dados direto do banco.
    """

    # Prefixos de chave
    PREFIX_AVAILABILITY = "cache:availability"
    KEY_DASHBOARD = "cache:dashboard"

    def __init__(
        self,
        availability_ttl: Optional[int] = None,
        dashboard_ttl: Optional[int] = None,
    ):
        self.availability_ttl = availability_ttl or settings.CACHE_AVAILABILITY_TTL_SECONDS
        self.dashboard_ttl = dashboard_ttl or settings.CACHE_DASHBOARD_TTL_SECONDS

    def _client(self):
        if not settings.CACHE_ENABLED:
            return None
        return get_redis_client()

    # ==========================================
    # Operações genéricas
    # ==========================================

    async def get_json(self, key: str) -> Optional[dict]:
        """Busca um documento JSON; None se ausente ou se o Redis falhar."""
        client = self._client()
        if client is None:
            return None

        try:
            data = await client.get(key)
            if data:
                return json.loads(data)
            return None
        except Exception as e:
            logger.warning(f"Erro ao buscar cache {key}: {e}")
            return None

    async def set_json(self, key: str, data: dict, ttl: int) -> bool:
        client = self._client()
        if client is None:
            return False

        try:
            await client.setex(key, ttl, json.dumps(data, default=str))
            return True
        except Exception as e:
            logger.warning(f"Erro ao salvar cache {key}: {e}")
            return False

    async def delete(self, *keys: str) -> bool:
        client = self._client()
        if client is None:
            return False

        try:
            await client.delete(*keys)
            return True
        except Exception as e:
            logger.warning(f"Erro ao invalidar cache {keys}: {e}")
            return False

    # ==========================================
    # Availability Cache
    # ==========================================

    def _availability_key(self, book_id: UUID) -> str:
        return f"{self.PREFIX_AVAILABILITY}:{book_id}"

    async def get_availability(self, book_id: UUID) -> Optional[dict]:
        return await self.get_json(self._availability_key(book_id))

    async def set_availability(self, book_id: UUID, data: dict) -> bool:
        return await self.set_json(
            self._availability_key(book_id), data, self.availability_ttl
        )

    async def invalidate_book(self, book_id: UUID) -> bool:
        """
        Invalida a disponibilidade do título e o painel.

        Deve ser chamado após qualquer recálculo de contadores do título.

        Args:
            book_id: ID do título

        Returns:
            True se invalidou com sucesso, False caso contrário
        """
        return await self.delete(self._availability_key(book_id), self.KEY_DASHBOARD)

    async def invalidate_all_availability(self) -> int:
        """
        Invalida todo o cache de availability (usado pelo reparo em massa).

        Returns:
            Número de chaves deletadas
        """
        client = self._client()
        if client is None:
            return 0

        try:
            keys = []
            async for key in client.scan_iter(match=f"{self.PREFIX_AVAILABILITY}:*"):
                keys.append(key)
            keys.append(self.KEY_DASHBOARD)
            return await client.delete(*keys)
        except Exception as e:
            logger.warning(f"Erro ao invalidar todo cache availability: {e}")
            return 0

    # ==========================================
    # Dashboard Cache
    # ==========================================

    async def get_dashboard(self) -> Optional[dict]:
        return await self.get_json(self.KEY_DASHBOARD)

    async def set_dashboard(self, data: dict) -> bool:
        return await self.set_json(self.KEY_DASHBOARD, data, self.dashboard_ttl)


# Instância global para uso nos services
cache_service = CacheService()
