"""Scheduling service for appointments.

Composes the booking policy with persistence and notifications: the
policy decides, this service stores the outcome and tells the provider.
The database's partial unique index on (provider_id, scheduled_at) is the
final word on slot availability; the policy's lookup only avoids doomed
inserts.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Sequence
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.booking.policy import (
    REJECTION_MESSAGES,
    BookingDecision,
    CancellationDecision,
    RejectionKind,
    evaluate_booking_request,
    evaluate_cancellation,
)
from app.core.config import settings
from app.core.logging import audit_logger
from app.fixtures.message_templates import BOOKING_NOTIFICATION
from app.models.scheduling import Appointment
from app.models.user import User
from app.services.messaging import render_template
from app.services.notifications import NotificationDispatcher, NotificationService
from app.utils.time import ensure_utc, format_display_date, utc_now

logger = logging.getLogger(__name__)


class BookingRejectedError(Exception):
    """Raised when the booking policy refuses a request."""

    def __init__(self, decision: BookingDecision):
        super().__init__(decision.message)
        self.decision = decision

    @property
    def kind(self) -> RejectionKind:
        return self.decision.rejection


class CancellationRejectedError(Exception):
    """Raised when the booking policy refuses a cancellation."""

    def __init__(self, decision: CancellationDecision):
        super().__init__(decision.message)
        self.decision = decision

    @property
    def kind(self) -> RejectionKind:
        return self.decision.rejection


class AppointmentNotFoundError(Exception):
    """Raised when an appointment does not exist."""

    pass


class NotAProviderError(Exception):
    """Raised when a provider-only view is requested by a regular user."""

    pass


class SchedulingService:
    """Service for booking, cancelling and listing appointments."""

    def __init__(
        self,
        session: AsyncSession,
        dispatcher: NotificationDispatcher | None = None,
    ):
        self.session = session
        self.dispatcher = dispatcher

    async def is_provider(self, user_id: int) -> bool:
        """Check whether the user exists and is flagged as a provider."""
        result = await self.session.execute(
            select(User.id).where(
                User.id == user_id,
                User.is_provider.is_(True),
            )
        )
        return result.scalar_one_or_none() is not None

    async def slot_taken(self, provider_id: int, slot: datetime) -> bool:
        """Check for a non-cancelled appointment at exactly this provider slot."""
        result = await self.session.execute(
            select(Appointment.id).where(
                Appointment.provider_id == provider_id,
                Appointment.scheduled_at == ensure_utc(slot),
                Appointment.canceled_at.is_(None),
            )
        )
        return result.first() is not None

    async def get_appointment(self, appointment_id: int) -> Appointment | None:
        """Get a single appointment by ID."""
        result = await self.session.execute(
            select(Appointment)
            .where(Appointment.id == appointment_id)
            .execution_options(populate_existing=True)
        )
        return result.unique().scalar_one_or_none()

    async def book_appointment(
        self,
        requester_id: int,
        provider_id: int,
        requested_at: datetime,
        now: datetime | None = None,
    ) -> Appointment:
        """Book an appointment at the slot containing ``requested_at``.

        Raises:
            BookingRejectedError: If the policy refuses, or the slot was
                taken between the check and the insert
        """
        now = now or utc_now()

        decision = await evaluate_booking_request(
            provider_id=provider_id,
            requested_at=requested_at,
            requester_id=requester_id,
            now=now,
            is_provider=self.is_provider,
            slot_taken=self.slot_taken,
        )
        if not decision.allowed:
            logger.info(
                f"Booking refused: requester={requester_id} provider={provider_id} "
                f"reason={decision.rejection.value}"
            )
            raise BookingRejectedError(decision)

        appointment = Appointment(
            user_id=requester_id,
            provider_id=provider_id,
            scheduled_at=ensure_utc(decision.canonical_slot),
        )
        self.session.add(appointment)

        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            logger.info(
                f"Slot race lost: provider={provider_id} slot={decision.canonical_slot.isoformat()}"
            )
            raise BookingRejectedError(
                BookingDecision(
                    allowed=False,
                    rejection=RejectionKind.SLOT_UNAVAILABLE,
                    message=REJECTION_MESSAGES[RejectionKind.SLOT_UNAVAILABLE],
                    provider_id=provider_id,
                    requester_id=requester_id,
                    canonical_slot=decision.canonical_slot,
                )
            )

        appointment = await self.get_appointment(appointment.id)

        audit_logger.log(
            action="appointment_booked",
            actor_id=requester_id,
            entity_type="appointment",
            entity_id=appointment.id,
            metadata={
                "provider_id": provider_id,
                "scheduled_at": decision.canonical_slot.isoformat(),
            },
        )

        await self._notify_provider_of_booking(appointment)

        return appointment

    async def _notify_provider_of_booking(self, appointment: Appointment) -> None:
        """Leave the provider an in-app notification. Never fails the booking."""
        appointment_id = appointment.id
        try:
            message = render_template(
                BOOKING_NOTIFICATION,
                {
                    "user": appointment.user.name,
                    "date": format_display_date(
                        appointment.scheduled_at,
                        settings.display_locale,
                        settings.display_timezone,
                    ),
                },
            )
            await NotificationService(self.session).create_notification(
                user_id=appointment.provider_id,
                content=message.body,
            )
        except Exception:
            logger.exception(
                f"Booking notification for appointment {appointment_id} failed"
            )
            # Rollback expires the appointment; reload it for the caller
            await self.session.rollback()
            await self.session.refresh(appointment)

    async def cancel_appointment(
        self,
        appointment_id: int,
        requester_id: int,
        now: datetime | None = None,
    ) -> Appointment:
        """Cancel an appointment on behalf of the user who booked it.

        An appointment that is already cancelled is evaluated like any
        other: if the checks pass, ``canceled_at`` is stamped again and
        another email is queued.

        Raises:
            AppointmentNotFoundError: If the appointment does not exist
            CancellationRejectedError: If the policy refuses
        """
        now = now or utc_now()

        appointment = await self.get_appointment(appointment_id)
        if not appointment:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")

        decision = evaluate_cancellation(
            appointment,
            requester_id=requester_id,
            now=now,
            window=settings.cancellation_window,
        )
        if not decision.allowed:
            logger.info(
                f"Cancellation refused: appointment={appointment_id} "
                f"requester={requester_id} reason={decision.rejection.value}"
            )
            raise CancellationRejectedError(decision)

        appointment.canceled_at = ensure_utc(decision.canceled_at)
        await self.session.commit()
        await self.session.refresh(appointment)

        audit_logger.log(
            action="appointment_canceled",
            actor_id=requester_id,
            entity_type="appointment",
            entity_id=appointment.id,
            metadata={"canceled_at": appointment.canceled_at.isoformat()},
        )

        if self.dispatcher:
            self.dispatcher.send_cancellation_email(appointment.id)

        return appointment

    async def get_user_appointments(self, user_id: int) -> Sequence[Appointment]:
        """Get the user's non-cancelled appointments, earliest first."""
        result = await self.session.execute(
            select(Appointment)
            .where(
                Appointment.user_id == user_id,
                Appointment.canceled_at.is_(None),
            )
            .order_by(Appointment.scheduled_at)
        )
        return result.unique().scalars().all()

    async def get_provider_schedule(
        self,
        provider_id: int,
        day: date,
    ) -> Sequence[Appointment]:
        """Get a provider's non-cancelled appointments on one day.

        Raises:
            NotAProviderError: If the user is not a provider
        """
        if not await self.is_provider(provider_id):
            raise NotAProviderError(f"User {provider_id} is not a provider")

        # Day boundaries follow the display time zone
        local_start = datetime.combine(day, time.min, tzinfo=ZoneInfo(settings.display_timezone))
        start = ensure_utc(local_start)
        end = ensure_utc(local_start + timedelta(days=1))

        result = await self.session.execute(
            select(Appointment)
            .where(
                Appointment.provider_id == provider_id,
                Appointment.canceled_at.is_(None),
                Appointment.scheduled_at >= start,
                Appointment.scheduled_at < end,
            )
            .order_by(Appointment.scheduled_at)
        )
        return result.unique().scalars().all()

    async def list_providers(self) -> Sequence[User]:
        """List all provider users by name."""
        result = await self.session.execute(
            select(User).where(User.is_provider.is_(True)).order_by(User.name)
        )
        return result.scalars().all()
