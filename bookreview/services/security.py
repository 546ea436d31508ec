"""
Passwords and Tokens

bcrypt hashing through passlib, and HS256 JWTs through python-jose.

Every token carries the user id as `sub` plus a `type` claim:
    {"sub": "17", "type": "access" | "refresh", "exp": ...}
Access tokens authenticate requests; refresh tokens are only accepted by
POST /auth/refresh. token_subject() enforces that split.
"""

import logging
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from bookreview.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# -------------------------------------------------------------------------
# Password Hashing
# -------------------------------------------------------------------------
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """bcrypt hash with a fresh salt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a plain password against a stored bcrypt hash."""
    return pwd_context.verify(plain_password, hashed_password)


# -------------------------------------------------------------------------
# JWT Tokens
# -------------------------------------------------------------------------
ALGORITHM = "HS256"
ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


def _encode(data: dict, token_type: str, expires_delta: timedelta) -> str:
    to_encode = data.copy()
    to_encode.update({"exp": datetime.now(UTC) + expires_delta, "type": token_type})
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Payload data, normally {"sub": str(user_id)}
        expires_delta: Optional custom lifetime

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    return _encode(data, ACCESS_TOKEN, expires_delta)


def create_refresh_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """Create a JWT refresh token (longer-lived than the access token)."""
    if expires_delta is None:
        expires_delta = timedelta(days=settings.refresh_token_expire_days)
    return _encode(data, REFRESH_TOKEN, expires_delta)


def decode_token(token: str) -> dict | None:
    """Payload of a correctly signed, unexpired token, else None."""
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.info(f"Rejected token: {e}")
        return None


def verify_token_type(token: str, expected_type: str) -> dict | None:
    """Like decode_token, but also None when the type claim differs."""
    payload = decode_token(token)
    if payload is None:
        return None

    if payload.get("type") != expected_type:
        logger.info(f"Rejected {payload.get('type')} token where {expected_type} was required")
        return None

    return payload


def token_subject(token: str, expected_type: str = ACCESS_TOKEN) -> int | None:
    """
    User id carried by a valid token of the expected type.

    Returns None for bad signatures, expired tokens, the wrong token type
    or a subject that is not a numeric user id.
    """
    payload = verify_token_type(token, expected_type)
    if payload is None:
        return None

    subject = payload.get("sub")
    if subject is None or not str(subject).isdigit():
        return None
    return int(subject)
