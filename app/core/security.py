"""Password hashing and bearer tokens."""

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against its bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return pwd_context.hash(password)


def create_access_token(
    user_id: int,
    expires_delta: timedelta | None = None,
    additional_claims: dict | None = None,
) -> str:
    """Issue a signed access token for a user.

    Args:
        user_id: User the token authenticates, stored as ``sub``
        expires_delta: Lifetime, defaults to ``access_token_expire_minutes``
        additional_claims: Extra informational claims (email, provider flag)

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)

    claims = dict(additional_claims or {})
    claims.update({
        "sub": str(user_id),
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    })

    return jwt.encode(claims, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict | None:
    """Verify a token and return its claims.

    Returns None for a bad signature, an expired token or a token that is
    not an access token.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        return None
    return payload


def get_token_user_id(payload: dict | None) -> int | None:
    """User id carried in decoded claims, or None if absent or malformed."""
    if not payload:
        return None
    subject = str(payload.get("sub", ""))
    return int(subject) if subject.isdigit() else None
