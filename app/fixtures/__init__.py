"""Static message templates for Slotbook notifications."""

from app.fixtures.message_templates import (
    BOOKING_NOTIFICATION,
    CANCELLATION_EMAIL,
    MESSAGE_TEMPLATES,
)

__all__ = ["MESSAGE_TEMPLATES", "BOOKING_NOTIFICATION", "CANCELLATION_EMAIL"]
