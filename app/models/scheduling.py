"""Appointment model.

An appointment occupies one hour-aligned slot of a provider's schedule.
It is created by a successful booking, mutated only to set ``canceled_at``
and never deleted.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import ForeignKey, Index, Integer, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, UTCDateTime


class AppointmentStatus(str, Enum):
    """Lifecycle state of an appointment (Scheduled -> Canceled only)."""

    SCHEDULED = "scheduled"
    CANCELED = "canceled"


class Appointment(Base, TimestampMixin):
    """Booked appointment between a user and a provider."""

    __tablename__ = "appointments"
    __table_args__ = (
        # Authoritative slot uniqueness among non-cancelled rows
        Index(
            "uq_appointments_provider_slot_active",
            "provider_id",
            "scheduled_at",
            unique=True,
            postgresql_where=text("canceled_at IS NULL"),
            sqlite_where=text("canceled_at IS NULL"),
        ),
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    provider_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    # Hour-aligned, stored in UTC
    scheduled_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        index=True,
    )
    canceled_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime,
        nullable=True,
    )

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[user_id],
        lazy="joined",
    )
    provider: Mapped["User"] = relationship(
        "User",
        foreign_keys=[provider_id],
        lazy="joined",
    )

    @property
    def status(self) -> AppointmentStatus:
        if self.canceled_at is None:
            return AppointmentStatus.SCHEDULED
        return AppointmentStatus.CANCELED

    def __repr__(self) -> str:
        return f"<Appointment {self.id} {self.scheduled_at} status={self.status.value}>"


# Import for type hints
from app.models.user import User
