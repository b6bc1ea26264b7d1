"""
Endpoints de Notificações do sistema.

Contratos:
    - GET /notifications: Notificações recentes
    - PATCH /notifications/{id}/read: Marca como lida
"""

from uuid import UUID

from fastapi import APIRouter, Query

from school_library.core.deps import CurrentOperator, DbSession
from school_library.core.exceptions import NotFoundError
from school_library.repositories.notification import NotificationRepository
from school_library.schemas.notification import NotificationRead

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=list[NotificationRead], summary="Listar notificações")
async def list_notifications(
    db: DbSession,
    operator: CurrentOperator,
    unread_only: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
) -> list[NotificationRead]:
    repo = NotificationRepository(db)
    return [
        NotificationRead.model_validate(n)
        for n in await repo.list_recent(unread_only=unread_only, limit=limit)
    ]


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Marcar notificação como lida",
)
async def mark_read(
    notification_id: UUID,
    db: DbSession,
    operator: CurrentOperator,
) -> NotificationRead:
    repo = NotificationRepository(db)
    notification = await repo.get_by_id(notification_id)
    if notification is None:
        raise NotFoundError("Notificação não encontrada")
    notification = await repo.update(notification, is_read=True)
    return NotificationRead.model_validate(notification)
