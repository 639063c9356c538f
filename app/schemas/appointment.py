"""Appointment schemas."""

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from app.booking.policy import is_cancelable, is_past
from app.models.scheduling import Appointment
from app.utils.time import ensure_utc


class AppointmentCreate(BaseModel):
    """Booking request.

    ``date`` may carry any minute of the hour; it is booked as the slot
    starting at the top of that hour.
    """

    provider_id: int = Field(gt=0)
    date: datetime


class Participant(BaseModel):
    """User on either side of an appointment."""

    id: int
    name: str

    model_config = {"from_attributes": True}


class AppointmentRead(BaseModel):
    """Appointment as returned by the API."""

    id: int
    date: datetime
    canceled_at: datetime | None
    past: bool
    cancelable: bool
    provider: Participant
    user: Participant

    @classmethod
    def from_appointment(
        cls,
        appointment: Appointment,
        now: datetime,
        window: timedelta,
    ) -> "AppointmentRead":
        return cls(
            id=appointment.id,
            date=ensure_utc(appointment.scheduled_at),
            canceled_at=(
                ensure_utc(appointment.canceled_at) if appointment.canceled_at else None
            ),
            past=is_past(appointment.scheduled_at, now),
            cancelable=is_cancelable(appointment, now, window),
            provider=Participant.model_validate(appointment.provider),
            user=Participant.model_validate(appointment.user),
        )
