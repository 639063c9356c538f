"""Booking policy enforcement.

Decides whether an appointment may be booked or cancelled. Every decision
is a pure function of its inputs: the current time is always passed in and
the only outside facts come from the injected lookups, so the same inputs
always produce the same decision.

Rejections are returned as values, not raised. Callers map the
``RejectionKind`` onto their own error surface.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol

from app.utils.time import ensure_utc, truncate_to_hour


class RejectionKind(str, Enum):
    """Reason a booking or cancellation was refused."""

    INVALID_PROVIDER = "invalid_provider"
    PAST_DATE = "past_date"
    SLOT_UNAVAILABLE = "slot_unavailable"
    UNAUTHORIZED = "unauthorized"
    CANCELLATION_WINDOW_EXPIRED = "cancellation_window_expired"
    NONE = "none"


REJECTION_MESSAGES = {
    RejectionKind.INVALID_PROVIDER: "You can only create appointments with providers",
    RejectionKind.PAST_DATE: "Past dates are not permitted",
    RejectionKind.SLOT_UNAVAILABLE: "Appointment date is not available",
    RejectionKind.UNAUTHORIZED: "You don't have permission to cancel this appointment.",
    RejectionKind.CANCELLATION_WINDOW_EXPIRED: (
        "You can only cancel appointments {hours} hours in advance."
    ),
}

# Minimum notice required to cancel
DEFAULT_CANCELLATION_WINDOW = timedelta(hours=2)


@dataclass
class BookingDecision:
    """Policy decision for a booking request.

    Attributes:
        allowed: Whether the booking may be created
        rejection: Reason for refusal, NONE when allowed
        message: Human-readable explanation
        provider_id: Provider the booking targets
        requester_id: User asking for the booking
        canonical_slot: Hour-aligned slot, set once the request got that far
    """

    allowed: bool
    rejection: RejectionKind
    message: str
    provider_id: int
    requester_id: int
    canonical_slot: Optional[datetime] = None


@dataclass
class CancellationDecision:
    """Policy decision for a cancellation request.

    Attributes:
        allowed: Whether the appointment may be cancelled
        rejection: Reason for refusal, NONE when allowed
        message: Human-readable explanation
        canceled_at: Timestamp to persist when allowed
    """

    allowed: bool
    rejection: RejectionKind
    message: str
    canceled_at: Optional[datetime] = None


class CancellableAppointment(Protocol):
    """Attributes the cancellation policy reads from an appointment."""

    user_id: int
    scheduled_at: datetime


ProviderLookup = Callable[[int], Awaitable[bool]]
SlotLookup = Callable[[int, datetime], Awaitable[bool]]


def canonical_slot(requested_at: datetime) -> datetime:
    """Return the bookable slot containing ``requested_at``.

    Slots are one hour long, so any two timestamps in the same hour
    map to the same slot. Naive timestamps are taken as UTC.

    Examples:
        >>> from datetime import timezone
        >>> canonical_slot(datetime(2025, 6, 10, 14, 37, tzinfo=timezone.utc))
        datetime.datetime(2025, 6, 10, 14, 0, tzinfo=datetime.timezone.utc)
    """
    return truncate_to_hour(requested_at)


def cancellation_deadline(
    scheduled_at: datetime,
    window: timedelta = DEFAULT_CANCELLATION_WINDOW,
) -> datetime:
    """Last instant at which an appointment may still be cancelled."""
    return ensure_utc(scheduled_at) - window


def is_past(slot: datetime, now: datetime) -> bool:
    """Check whether a slot already started. A slot equal to now is not past."""
    return ensure_utc(slot) < ensure_utc(now)


def is_cancelable(
    appointment: CancellableAppointment,
    now: datetime,
    window: timedelta = DEFAULT_CANCELLATION_WINDOW,
) -> bool:
    """Check the cutoff window only, ignoring who is asking."""
    return not cancellation_deadline(appointment.scheduled_at, window) < ensure_utc(now)


def _reject_booking(
    kind: RejectionKind,
    provider_id: int,
    requester_id: int,
    slot: Optional[datetime] = None,
) -> BookingDecision:
    return BookingDecision(
        allowed=False,
        rejection=kind,
        message=REJECTION_MESSAGES[kind],
        provider_id=provider_id,
        requester_id=requester_id,
        canonical_slot=slot,
    )


async def evaluate_booking_request(
    provider_id: int,
    requested_at: datetime,
    requester_id: int,
    now: datetime,
    is_provider: ProviderLookup,
    slot_taken: SlotLookup,
) -> BookingDecision:
    """Decide whether ``requester_id`` may book ``provider_id`` at ``requested_at``.

    Checks run in order and stop at the first failure:

    1. the target must be a provider (INVALID_PROVIDER)
    2. the hour-aligned slot must not be before ``now`` (PAST_DATE)
    3. no live appointment may hold the slot (SLOT_UNAVAILABLE)

    Booking with yourself is not restricted; a provider may book their
    own schedule.

    Args:
        provider_id: User the appointment is booked with
        requested_at: Requested start, any minute within the hour
        requester_id: User making the booking
        now: Evaluation time
        is_provider: Async lookup, True if the id belongs to a provider
        slot_taken: Async lookup, True if a non-cancelled appointment
            exists for (provider_id, slot)

    Returns:
        BookingDecision with the canonical slot when allowed
    """
    if not await is_provider(provider_id):
        return _reject_booking(RejectionKind.INVALID_PROVIDER, provider_id, requester_id)

    slot = canonical_slot(requested_at)

    if is_past(slot, now):
        return _reject_booking(RejectionKind.PAST_DATE, provider_id, requester_id, slot)

    if await slot_taken(provider_id, slot):
        return _reject_booking(
            RejectionKind.SLOT_UNAVAILABLE, provider_id, requester_id, slot
        )

    return BookingDecision(
        allowed=True,
        rejection=RejectionKind.NONE,
        message="Booking allowed",
        provider_id=provider_id,
        requester_id=requester_id,
        canonical_slot=slot,
    )


def evaluate_cancellation(
    appointment: CancellableAppointment,
    requester_id: int,
    now: datetime,
    window: timedelta = DEFAULT_CANCELLATION_WINDOW,
) -> CancellationDecision:
    """Decide whether ``requester_id`` may cancel ``appointment`` at ``now``.

    Only the user who booked may cancel; the provider may not. The
    appointment must still be at least ``window`` away: cancelling exactly
    at the deadline is allowed, one moment later is not.

    An appointment that was already cancelled goes through the same
    checks as a live one.

    Args:
        appointment: Appointment to cancel
        requester_id: User asking for the cancellation
        now: Evaluation time
        window: Minimum notice before ``scheduled_at``

    Returns:
        CancellationDecision with ``canceled_at`` set to ``now`` when allowed
    """
    if appointment.user_id != requester_id:
        return CancellationDecision(
            allowed=False,
            rejection=RejectionKind.UNAUTHORIZED,
            message=REJECTION_MESSAGES[RejectionKind.UNAUTHORIZED],
        )

    if not is_cancelable(appointment, now, window):
        hours = f"{window.total_seconds() / 3600:g}"
        return CancellationDecision(
            allowed=False,
            rejection=RejectionKind.CANCELLATION_WINDOW_EXPIRED,
            message=REJECTION_MESSAGES[RejectionKind.CANCELLATION_WINDOW_EXPIRED].format(
                hours=hours
            ),
        )

    return CancellationDecision(
        allowed=True,
        rejection=RejectionKind.NONE,
        message="Appointment can be cancelled",
        canceled_at=now,
    )
