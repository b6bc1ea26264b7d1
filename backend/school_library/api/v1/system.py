"""
Endpoints de Sistema (Admin).

Contratos:
    - POST /system/reconcile: Reparo idempotente de cópias e contadores

Autorização:
    - Todos os endpoints requerem ADMIN

Status codes:
    - 200: Sucesso
    - 401: Não autenticado
    - 403: Sem permissão (não é admin)
"""

from fastapi import APIRouter
from pydantic import BaseModel

from school_library.core.deps import AdminOperator, DbSession
from school_library.services.inventory import InventoryService

router = APIRouter(prefix="/system", tags=["System (Admin)"])


class ReconcileResponse(BaseModel):
    """Resultado do reparo de inventário."""

    copies_marked_lost: int
    copies_released: int
    copies_marked_borrowed: int
    orphan_borrowings_closed: int
    books_recounted: int
    message: str


@router.post(
    "/reconcile",
    response_model=ReconcileResponse,
    summary="Reparar inventário",
    description=(
        "Corrige cópias com status divergente dos empréstimos (inclusive perdidos), encerra empréstimos "
        "de cópias inexistentes e recalcula os contadores. **Requer ADMIN.**"
    ),
)
async def reconcile(db: DbSession, admin: AdminOperator) -> ReconcileResponse:
    """
    Pode ser executado várias vezes; a segunda execução não encontra nada a corrigir.
    """
    service = InventoryService(db)
    result = await service.reconcile()
    fixes = sum(result.values())
    return ReconcileResponse(**result, message=f"{fixes} correção(ões) aplicada(s)")
