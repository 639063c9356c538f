"""Booking module for appointment scheduling and policy enforcement."""

from app.booking.policy import (
    BookingDecision,
    CancellationDecision,
    RejectionKind,
    canonical_slot,
    evaluate_booking_request,
    evaluate_cancellation,
)

__all__ = [
    "BookingDecision",
    "CancellationDecision",
    "RejectionKind",
    "canonical_slot",
    "evaluate_booking_request",
    "evaluate_cancellation",
]
