"""Background job that emails a provider about a cancelled appointment.

Runs after the cancellation response has been sent. The job is
fire-and-forget: it is attempted once, and any failure is logged and
dropped without touching the cancellation itself.

Usage:
    # Send the email for one appointment by hand
    python -m app.tasks.cancellation_mail 42
"""

import asyncio
import logging
import sys

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.fixtures.message_templates import CANCELLATION_EMAIL
from app.models.scheduling import Appointment
from app.services.messaging import MailProvider, get_mail_provider, render_template
from app.utils.time import format_display_date

logger = logging.getLogger(__name__)


async def run_cancellation_mail_job(
    appointment_id: int,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    mail_provider: MailProvider | None = None,
) -> bool:
    """Send the cancellation email for an appointment.

    Args:
        appointment_id: Cancelled appointment
        session_factory: Factory for the job's own database session
        mail_provider: Provider used for delivery

    Returns:
        True if the email was handed to the provider, False otherwise
    """
    if session_factory is None:
        from app.db.session import AsyncSessionLocal

        session_factory = AsyncSessionLocal
    mail_provider = mail_provider or get_mail_provider()

    try:
        async with session_factory() as session:
            result = await session.execute(
                select(Appointment).where(Appointment.id == appointment_id)
            )
            appointment = result.unique().scalar_one_or_none()

            if not appointment:
                logger.warning(f"Cancellation mail skipped: appointment {appointment_id} not found")
                return False

            provider = appointment.provider
            user = appointment.user
            message = render_template(
                CANCELLATION_EMAIL,
                {
                    "provider": provider.name,
                    "user": user.name,
                    "date": format_display_date(
                        appointment.scheduled_at,
                        settings.display_locale,
                        settings.display_timezone,
                    ),
                },
            )
            recipient = f"{provider.name} <{provider.email}>"

        message_id, _ = await mail_provider.send(
            recipient=recipient,
            subject=message.subject,
            body=message.body,
            html_body=message.html_body,
        )
    except Exception:
        logger.exception(f"Cancellation mail for appointment {appointment_id} failed")
        return False

    logger.info(f"Cancellation mail for appointment {appointment_id} sent ({message_id})")
    return True


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if len(sys.argv) != 2:
        print("usage: python -m app.tasks.cancellation_mail <appointment_id>")
        sys.exit(2)
    sent = asyncio.run(run_cancellation_mail_job(int(sys.argv[1])))
    sys.exit(0 if sent else 1)
