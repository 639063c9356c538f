"""Session (login) endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DbSession
from app.core.config import settings
from app.schemas.auth import LoginRequest, TokenResponse
from app.schemas.user import UserRead
from app.services.auth import AuthService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Login",
    description="Authenticate with email and password",
)
async def create_session(
    credentials: LoginRequest,
    session: DbSession,
) -> TokenResponse:
    """Authenticate a user and return a JWT token.

    Raises:
        HTTPException: If credentials are invalid
    """
    auth_service = AuthService(session)
    user = await auth_service.authenticate(
        email=credentials.email,
        password=credentials.password,
    )

    if not user:
        logger.info("Login failed", extra={"action": "login_failed"})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    access_token = await auth_service.create_token(user)

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserRead.model_validate(user),
    )
