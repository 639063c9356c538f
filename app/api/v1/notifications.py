"""In-app notification endpoints for providers."""

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentProvider, DbSession
from app.schemas.notification import NotificationRead
from app.services.notifications import NotificationNotFoundError, NotificationService

router = APIRouter()


@router.get(
    "",
    response_model=list[NotificationRead],
)
async def list_notifications(
    provider: CurrentProvider,
    session: DbSession,
) -> list[NotificationRead]:
    """List the provider's latest notifications, newest first."""
    service = NotificationService(session)
    notifications = await service.list_notifications(provider.id)

    return [NotificationRead.model_validate(n) for n in notifications]


@router.put(
    "/{notification_id}",
    response_model=NotificationRead,
)
async def mark_notification_read(
    notification_id: int,
    provider: CurrentProvider,
    session: DbSession,
) -> NotificationRead:
    """Mark one of the provider's notifications as read."""
    service = NotificationService(session)

    try:
        notification = await service.mark_read(notification_id, provider.id)
    except NotificationNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notification not found",
        )

    return NotificationRead.model_validate(notification)
