"""Notification schemas."""

from datetime import datetime

from pydantic import BaseModel


class NotificationRead(BaseModel):
    """In-app notification."""

    id: int
    content: str
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
