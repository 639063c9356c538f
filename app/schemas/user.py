"""User schemas."""

import re
from typing import Annotated

from pydantic import AfterValidator, BaseModel, Field, model_validator


def validate_email_lenient(v: str) -> str:
    """Validate email with lenient rules that allow .local domains for testing."""
    if not v or "@" not in v:
        raise ValueError("Invalid email address")
    pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
    if not re.match(pattern, v):
        raise ValueError("Invalid email address format")
    return v.lower()


LenientEmail = Annotated[str, AfterValidator(validate_email_lenient)]


class UserCreate(BaseModel):
    """Registration request."""

    name: str = Field(min_length=1, max_length=255)
    email: LenientEmail
    password: str = Field(min_length=6, max_length=128)
    provider: bool = False


class UserUpdate(BaseModel):
    """Update of the caller's own account.

    ``password`` requires ``old_password`` and a matching ``confirm_password``.
    """

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: LenientEmail | None = None
    old_password: str | None = Field(default=None, min_length=6, max_length=128)
    password: str | None = Field(default=None, min_length=6, max_length=128)
    confirm_password: str | None = None

    @model_validator(mode="after")
    def check_password_change(self) -> "UserUpdate":
        if self.password is not None:
            if self.old_password is None:
                raise ValueError("old_password is required to change the password")
            if self.confirm_password != self.password:
                raise ValueError("confirm_password does not match password")
        return self


class UserRead(BaseModel):
    """User as returned by the API."""

    id: int
    name: str
    email: str
    provider: bool = Field(validation_alias="is_provider")

    model_config = {"from_attributes": True, "populate_by_name": True}


class ProviderRead(BaseModel):
    """Provider entry in listings."""

    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}
