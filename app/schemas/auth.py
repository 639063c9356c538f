"""Authentication schemas."""

from pydantic import BaseModel, Field

from app.schemas.user import LenientEmail, UserRead


class LoginRequest(BaseModel):
    """Login request with email and password."""

    email: LenientEmail
    password: str = Field(min_length=1, max_length=128)


class TokenResponse(BaseModel):
    """JWT token response."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds
    user: UserRead
