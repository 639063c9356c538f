"""In-app notifications and the outbound notification dispatcher."""

import logging
from typing import Sequence

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.models.messaging import Notification
from app.services.messaging import MailProvider
from app.tasks.cancellation_mail import run_cancellation_mail_job

logger = logging.getLogger(__name__)


class NotificationNotFoundError(Exception):
    """Raised when a notification does not exist for the requesting user."""

    pass


class NotificationService:
    """Service for reading and writing in-app notifications."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_notification(self, user_id: int, content: str) -> Notification:
        """Store a notification for a user."""
        notification = Notification(user_id=user_id, content=content, read=False)

        self.session.add(notification)
        await self.session.commit()
        await self.session.refresh(notification)

        return notification

    async def list_notifications(
        self,
        user_id: int,
        limit: int | None = None,
    ) -> Sequence[Notification]:
        """Get the most recent notifications for a user, newest first."""
        result = await self.session.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit or settings.notification_list_limit)
        )
        return result.scalars().all()

    async def mark_read(self, notification_id: int, user_id: int) -> Notification:
        """Mark one of the user's notifications as read.

        Raises:
            NotificationNotFoundError: If it does not exist or belongs to someone else
        """
        result = await self.session.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()

        if not notification:
            raise NotificationNotFoundError(f"Notification {notification_id} not found")

        notification.read = True
        await self.session.commit()
        await self.session.refresh(notification)

        return notification


class NotificationDispatcher:
    """Outbound queue for notifications that must not block a request.

    Jobs run after the response is sent, in no particular order relative
    to other notifications. A failing job is logged by the job itself and
    never affects the request that scheduled it.
    """

    def __init__(
        self,
        background_tasks: BackgroundTasks,
        session_factory: async_sessionmaker[AsyncSession],
        mail_provider: MailProvider,
    ):
        self.background_tasks = background_tasks
        self.session_factory = session_factory
        self.mail_provider = mail_provider

    def send_cancellation_email(self, appointment_id: int) -> None:
        """Queue the cancellation email for an appointment."""
        logger.debug(f"Queueing cancellation mail for appointment {appointment_id}")
        self.background_tasks.add_task(
            run_cancellation_mail_job,
            appointment_id,
            session_factory=self.session_factory,
            mail_provider=self.mail_provider,
        )
