"""FastAPI dependency injection utilities."""

from typing import Annotated

from fastapi import BackgroundTasks, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.security import decode_access_token, get_token_user_id
from app.db.session import get_db, get_session_factory
from app.models.user import User
from app.services.auth import AuthService
from app.services.messaging import MailProvider, get_mail_provider
from app.services.notifications import NotificationDispatcher

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> dict | None:
    """Extract and decode the current JWT token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Decoded token payload or None
    """
    if not credentials:
        return None

    payload = decode_access_token(credentials.credentials)
    return payload


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    token: Annotated[dict | None, Depends(get_current_token)],
    session: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """Get the current authenticated user.

    Args:
        credentials: Raw bearer credentials
        token: Decoded JWT token
        session: Database session

    Returns:
        Authenticated User

    Raises:
        HTTPException: If the token is missing, invalid or its user is gone
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = get_token_user_id(token)
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    auth_service = AuthService(session)
    user = await auth_service.get_user_by_id(user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token invalid",
        )

    return user


async def get_current_provider(
    user: Annotated[User, Depends(get_current_user)],
) -> User:
    """Get the current user, requiring the provider flag."""
    if not user.is_provider:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is not a provider",
        )
    return user


def get_notification_dispatcher(
    background_tasks: BackgroundTasks,
    session_factory: Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)],
    mail_provider: Annotated[MailProvider, Depends(get_mail_provider)],
) -> NotificationDispatcher:
    """Dispatcher whose jobs run after the current response is sent."""
    return NotificationDispatcher(
        background_tasks=background_tasks,
        session_factory=session_factory,
        mail_provider=mail_provider,
    )


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
CurrentProvider = Annotated[User, Depends(get_current_provider)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Dispatcher = Annotated[NotificationDispatcher, Depends(get_notification_dispatcher)]
