"""Database models for Slotbook."""

from app.models.messaging import Notification
from app.models.scheduling import Appointment, AppointmentStatus
from app.models.user import User

__all__ = [
    "User",
    "Appointment",
    "AppointmentStatus",
    "Notification",
]
