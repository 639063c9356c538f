"""Pydantic schemas for request/response validation."""

from app.schemas.appointment import AppointmentCreate, AppointmentRead, Participant
from app.schemas.auth import LoginRequest, TokenResponse
from app.schemas.notification import NotificationRead
from app.schemas.user import ProviderRead, UserCreate, UserRead, UserUpdate

__all__ = [
    "LoginRequest",
    "TokenResponse",
    "UserCreate",
    "UserUpdate",
    "UserRead",
    "ProviderRead",
    "AppointmentCreate",
    "AppointmentRead",
    "Participant",
    "NotificationRead",
]
