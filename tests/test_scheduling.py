"""Tests for the scheduling service against a real (SQLite) database.

Covers:
- Booking persists the hour-aligned slot and notifies the provider
- Slot uniqueness, including the insert race the database settles
- Cancellation rules and the cancellation email hand-off
- Listing and provider day schedules
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.booking.policy import RejectionKind
from app.models.messaging import Notification
from app.models.scheduling import Appointment, AppointmentStatus
from app.models.user import User
from app.services.scheduling import (
    AppointmentNotFoundError,
    BookingRejectedError,
    CancellationRejectedError,
    NotAProviderError,
    SchedulingService,
)
from app.utils.time import ensure_utc

NOW = datetime(2025, 6, 10, 9, 0, tzinfo=timezone.utc)


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


async def _notifications_for(session: AsyncSession, user_id: int) -> list[Notification]:
    result = await session.execute(
        select(Notification).where(Notification.user_id == user_id)
    )
    return list(result.scalars().all())


class TestBookAppointment:
    """Tests for SchedulingService.book_appointment."""

    @pytest.mark.asyncio
    async def test_books_canonical_slot(
        self, async_session: AsyncSession, test_user: User, provider: User
    ) -> None:
        """The stored appointment starts at the top of the requested hour."""
        service = SchedulingService(async_session)

        appointment = await service.book_appointment(
            requester_id=test_user.id,
            provider_id=provider.id,
            requested_at=utc(2025, 6, 10, 14, 37),
            now=NOW,
        )

        assert appointment.id is not None
        assert ensure_utc(appointment.scheduled_at) == utc(2025, 6, 10, 14)
        assert appointment.user_id == test_user.id
        assert appointment.provider_id == provider.id
        assert appointment.canceled_at is None
        assert appointment.status == AppointmentStatus.SCHEDULED
        assert appointment.provider.name == "Paula Provider"
        assert appointment.user.name == "Ursula User"

    @pytest.mark.asyncio
    async def test_notifies_provider(
        self, async_session: AsyncSession, test_user: User, provider: User
    ) -> None:
        """The provider gets an in-app notification naming the requester and slot."""
        service = SchedulingService(async_session)

        await service.book_appointment(
            requester_id=test_user.id,
            provider_id=provider.id,
            requested_at=utc(2025, 6, 10, 14, 37),
            now=NOW,
        )

        notifications = await _notifications_for(async_session, provider.id)
        assert len(notifications) == 1
        assert notifications[0].content == (
            "Novo agendamento de Ursula User para dia 10 de junho, às 14:00h"
        )
        assert notifications[0].read is False
        assert await _notifications_for(async_session, test_user.id) == []

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_booking(
        self,
        async_session: AsyncSession,
        test_user: User,
        provider: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """A broken notification is logged and the booking still stands."""
        user_id, provider_id = test_user.id, provider.id

        def broken_render(*args, **kwargs):
            raise ValueError("template missing")

        monkeypatch.setattr("app.services.scheduling.render_template", broken_render)
        service = SchedulingService(async_session)

        appointment = await service.book_appointment(
            requester_id=user_id,
            provider_id=provider_id,
            requested_at=utc(2025, 6, 10, 14),
            now=NOW,
        )

        assert appointment.id is not None
        assert appointment.provider_id == provider_id
        assert await _notifications_for(async_session, provider_id) == []

    @pytest.mark.asyncio
    async def test_unexpected_notification_error_keeps_booking(
        self,
        async_session: AsyncSession,
        test_user: User,
        provider: User,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Errors outside the usual rendering failures do not fail the booking either."""
        user_id, provider_id = test_user.id, provider.id

        def unknown_zone(*args, **kwargs):
            raise KeyError("zone")

        monkeypatch.setattr("app.services.scheduling.format_display_date", unknown_zone)
        service = SchedulingService(async_session)

        appointment = await service.book_appointment(
            requester_id=user_id,
            provider_id=provider_id,
            requested_at=utc(2025, 6, 10, 14),
            now=NOW,
        )

        assert appointment.id is not None
        assert ensure_utc(appointment.scheduled_at) == utc(2025, 6, 10, 14)
        assert await service.slot_taken(provider_id, utc(2025, 6, 10, 14))
        assert await _notifications_for(async_session, provider_id) == []

    @pytest.mark.asyncio
    async def test_rejects_non_provider(
        self, async_session: AsyncSession, test_user: User, other_user: User
    ) -> None:
        """Booking with a regular user is refused."""
        service = SchedulingService(async_session)

        with pytest.raises(BookingRejectedError) as exc_info:
            await service.book_appointment(
                requester_id=test_user.id,
                provider_id=other_user.id,
                requested_at=utc(2025, 6, 10, 14),
                now=NOW,
            )

        assert exc_info.value.kind == RejectionKind.INVALID_PROVIDER

    @pytest.mark.asyncio
    async def test_rejects_unknown_provider(
        self, async_session: AsyncSession, test_user: User
    ) -> None:
        """Booking with a user that does not exist is refused."""
        service = SchedulingService(async_session)

        with pytest.raises(BookingRejectedError) as exc_info:
            await service.book_appointment(
                requester_id=test_user.id,
                provider_id=9999,
                requested_at=utc(2025, 6, 10, 14),
                now=NOW,
            )

        assert exc_info.value.kind == RejectionKind.INVALID_PROVIDER

    @pytest.mark.asyncio
    async def test_rejects_past_date(
        self, async_session: AsyncSession, test_user: User, provider: User
    ) -> None:
        """A slot before now is refused and nothing is stored."""
        service = SchedulingService(async_session)

        with pytest.raises(BookingRejectedError) as exc_info:
            await service.book_appointment(
                requester_id=test_user.id,
                provider_id=provider.id,
                requested_at=utc(2025, 6, 10, 8, 59),
                now=NOW,
            )

        assert exc_info.value.kind == RejectionKind.PAST_DATE
        result = await async_session.execute(select(Appointment))
        assert result.unique().scalars().all() == []

    @pytest.mark.asyncio
    async def test_same_hour_collides(
        self,
        async_session: AsyncSession,
        test_user: User,
        other_user: User,
        provider: User,
    ) -> None:
        """Two requests inside the same hour compete for one slot."""
        service = SchedulingService(async_session)
        await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14, 37), NOW)

        with pytest.raises(BookingRejectedError) as exc_info:
            await service.book_appointment(
                other_user.id, provider.id, utc(2025, 6, 10, 14, 5), NOW
            )

        assert exc_info.value.kind == RejectionKind.SLOT_UNAVAILABLE
        assert str(exc_info.value) == "Appointment date is not available"

    @pytest.mark.asyncio
    async def test_same_instant_from_half_hour_offset_collides(
        self,
        async_session: AsyncSession,
        test_user: User,
        other_user: User,
        provider: User,
    ) -> None:
        """19:45+05:30 and 14:15Z are one instant and must share one slot."""
        provider_id, other_id = provider.id, other_user.id
        ist = timezone(timedelta(hours=5, minutes=30))
        service = SchedulingService(async_session)

        first = await service.book_appointment(
            test_user.id, provider_id, datetime(2025, 6, 10, 19, 45, tzinfo=ist), NOW
        )
        assert ensure_utc(first.scheduled_at) == utc(2025, 6, 10, 14)

        with pytest.raises(BookingRejectedError) as exc_info:
            await service.book_appointment(other_id, provider_id, utc(2025, 6, 10, 14, 15), NOW)

        assert exc_info.value.kind == RejectionKind.SLOT_UNAVAILABLE
        result = await async_session.execute(
            select(Appointment).where(Appointment.provider_id == provider_id)
        )
        assert len(result.unique().scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_same_slot_with_other_provider_is_free(
        self,
        async_session: AsyncSession,
        test_user: User,
        provider: User,
        second_provider: User,
    ) -> None:
        """Slots are per provider."""
        service = SchedulingService(async_session)
        await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14), NOW)

        appointment = await service.book_appointment(
            test_user.id, second_provider.id, utc(2025, 6, 10, 14), NOW
        )

        assert appointment.provider_id == second_provider.id

    @pytest.mark.asyncio
    async def test_insert_race_maps_to_slot_unavailable(
        self,
        async_session: AsyncSession,
        test_user: User,
        other_user: User,
        provider: User,
    ) -> None:
        """A slot taken between check and insert is rejected by the unique index."""
        user_id, other_id, provider_id = test_user.id, other_user.id, provider.id
        service = SchedulingService(async_session)
        await service.book_appointment(user_id, provider_id, utc(2025, 6, 10, 14), NOW)

        async def stale_lookup(provider_id: int, slot: datetime) -> bool:
            return False

        service.slot_taken = stale_lookup

        with pytest.raises(BookingRejectedError) as exc_info:
            await service.book_appointment(other_id, provider_id, utc(2025, 6, 10, 14, 20), NOW)

        assert exc_info.value.kind == RejectionKind.SLOT_UNAVAILABLE
        result = await async_session.execute(select(Appointment))
        assert len(result.unique().scalars().all()) == 1

    @pytest.mark.asyncio
    async def test_provider_can_book_themselves(
        self, async_session: AsyncSession, provider: User
    ) -> None:
        """A provider booking their own schedule is allowed."""
        service = SchedulingService(async_session)

        appointment = await service.book_appointment(
            provider.id, provider.id, utc(2025, 6, 10, 14), NOW
        )

        assert appointment.user_id == appointment.provider_id == provider.id


class TestCancelAppointment:
    """Tests for SchedulingService.cancel_appointment."""

    @pytest.mark.asyncio
    async def test_owner_can_cancel_ahead_of_cutoff(
        self, async_session: AsyncSession, test_user: User, provider: User
    ) -> None:
        """Cancelling stamps canceled_at with the evaluation time."""
        dispatcher = MagicMock()
        service = SchedulingService(async_session, dispatcher=dispatcher)
        booked = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14), NOW)

        cancelled = await service.cancel_appointment(
            booked.id, test_user.id, now=utc(2025, 6, 10, 11, 59)
        )

        assert ensure_utc(cancelled.canceled_at) == utc(2025, 6, 10, 11, 59)
        assert cancelled.status == AppointmentStatus.CANCELED
        dispatcher.send_cancellation_email.assert_called_once_with(booked.id)

    @pytest.mark.asyncio
    async def test_cancel_after_cutoff_is_rejected(
        self, async_session: AsyncSession, test_user: User, provider: User
    ) -> None:
        """12:01 is past the 12:00 cutoff for a 14:00 appointment."""
        dispatcher = MagicMock()
        service = SchedulingService(async_session, dispatcher=dispatcher)
        booked = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14), NOW)

        with pytest.raises(CancellationRejectedError) as exc_info:
            await service.cancel_appointment(booked.id, test_user.id, now=utc(2025, 6, 10, 12, 1))

        assert exc_info.value.kind == RejectionKind.CANCELLATION_WINDOW_EXPIRED
        assert str(exc_info.value) == "You can only cancel appointments 2 hours in advance."
        dispatcher.send_cancellation_email.assert_not_called()

        stored = await service.get_appointment(booked.id)
        assert stored.canceled_at is None

    @pytest.mark.asyncio
    async def test_other_user_cannot_cancel(
        self,
        async_session: AsyncSession,
        test_user: User,
        other_user: User,
        provider: User,
    ) -> None:
        """Neither another user nor the provider may cancel."""
        service = SchedulingService(async_session)
        booked = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14), NOW)

        for requester_id in (other_user.id, provider.id):
            with pytest.raises(CancellationRejectedError) as exc_info:
                await service.cancel_appointment(booked.id, requester_id, now=NOW)
            assert exc_info.value.kind == RejectionKind.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_unknown_appointment(
        self, async_session: AsyncSession, test_user: User
    ) -> None:
        """Cancelling a missing appointment raises AppointmentNotFoundError."""
        service = SchedulingService(async_session)

        with pytest.raises(AppointmentNotFoundError):
            await service.cancel_appointment(12345, test_user.id, now=NOW)

    @pytest.mark.asyncio
    async def test_cancelled_slot_can_be_rebooked(
        self,
        async_session: AsyncSession,
        test_user: User,
        other_user: User,
        provider: User,
    ) -> None:
        """After cancellation the same slot is open to a new booking."""
        service = SchedulingService(async_session)
        booked = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14, 37), NOW)
        await service.cancel_appointment(booked.id, test_user.id, now=utc(2025, 6, 10, 11))

        rebooked = await service.book_appointment(
            other_user.id, provider.id, utc(2025, 6, 10, 14), utc(2025, 6, 10, 11)
        )

        assert rebooked.id != booked.id
        assert ensure_utc(rebooked.scheduled_at) == utc(2025, 6, 10, 14)

    @pytest.mark.asyncio
    async def test_repeat_cancellation_restamps(
        self, async_session: AsyncSession, test_user: User, provider: User
    ) -> None:
        """Cancelling twice passes the checks again and queues another email."""
        dispatcher = MagicMock()
        service = SchedulingService(async_session, dispatcher=dispatcher)
        booked = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14), NOW)

        await service.cancel_appointment(booked.id, test_user.id, now=utc(2025, 6, 10, 10))
        again = await service.cancel_appointment(booked.id, test_user.id, now=utc(2025, 6, 10, 11))

        assert ensure_utc(again.canceled_at) == utc(2025, 6, 10, 11)
        assert dispatcher.send_cancellation_email.call_count == 2


class TestListings:
    """Tests for appointment and provider listings."""

    @pytest.mark.asyncio
    async def test_user_appointments_sorted_and_without_cancelled(
        self,
        async_session: AsyncSession,
        test_user: User,
        other_user: User,
        provider: User,
    ) -> None:
        """Only the user's live appointments are listed, earliest first."""
        service = SchedulingService(async_session)
        late = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 12, 10), NOW)
        early = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 11, 10), NOW)
        dropped = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 13, 10), NOW)
        await service.book_appointment(other_user.id, provider.id, utc(2025, 6, 11, 11), NOW)
        await service.cancel_appointment(dropped.id, test_user.id, now=NOW)

        appointments = await service.get_user_appointments(test_user.id)

        assert [a.id for a in appointments] == [early.id, late.id]

    @pytest.mark.asyncio
    async def test_provider_schedule_for_one_day(
        self,
        async_session: AsyncSession,
        test_user: User,
        other_user: User,
        provider: User,
        second_provider: User,
    ) -> None:
        """The schedule holds the provider's live appointments on that day."""
        service = SchedulingService(async_session)
        afternoon = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 15), NOW)
        morning = await service.book_appointment(other_user.id, provider.id, utc(2025, 6, 10, 10), NOW)
        await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 11, 10), NOW)
        await service.book_appointment(test_user.id, second_provider.id, utc(2025, 6, 10, 11), NOW)
        cancelled = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 20), NOW)
        await service.cancel_appointment(cancelled.id, test_user.id, now=NOW)

        schedule = await service.get_provider_schedule(provider.id, date(2025, 6, 10))

        assert [a.id for a in schedule] == [morning.id, afternoon.id]

    @pytest.mark.asyncio
    async def test_schedule_requires_provider(
        self, async_session: AsyncSession, test_user: User
    ) -> None:
        """Regular users have no schedule."""
        service = SchedulingService(async_session)

        with pytest.raises(NotAProviderError):
            await service.get_provider_schedule(test_user.id, date(2025, 6, 10))

    @pytest.mark.asyncio
    async def test_list_providers(
        self,
        async_session: AsyncSession,
        test_user: User,
        provider: User,
        second_provider: User,
    ) -> None:
        """Only providers are listed, by name."""
        service = SchedulingService(async_session)

        providers = await service.list_providers()

        assert [p.name for p in providers] == ["Alan Provider", "Paula Provider"]

    @pytest.mark.asyncio
    async def test_slot_taken_ignores_cancelled(
        self, async_session: AsyncSession, test_user: User, provider: User
    ) -> None:
        """A cancelled appointment does not occupy its slot."""
        service = SchedulingService(async_session)
        booked = await service.book_appointment(test_user.id, provider.id, utc(2025, 6, 10, 14), NOW)

        assert await service.slot_taken(provider.id, utc(2025, 6, 10, 14)) is True
        assert await service.slot_taken(provider.id, utc(2025, 6, 10, 15)) is False

        await service.cancel_appointment(booked.id, test_user.id, now=NOW)

        assert await service.slot_taken(provider.id, utc(2025, 6, 10, 14)) is False
