"""Password hashing (bcrypt) and session tokens (JWT, HS256)."""
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from hcc.core.config import settings
from hcc.core.exceptions import BusinessError


def get_password_hash(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Malformed stored hash never matches
        return False


def _signing_key() -> str:
    if not settings.SECRET_KEY:
        raise BusinessError.server_error(RuntimeError("SECRET_KEY is not configured"))
    return settings.SECRET_KEY


def create_access_token(user_id: int, role: str, expires_delta: timedelta | None = None) -> str:
    """Sign a token carrying the user id (``sub``) and role."""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))
    payload = {"sub": str(user_id), "role": role, "iat": now, "exp": expire}
    return jwt.encode(payload, _signing_key(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Verify signature and expiry, return the payload.

    Raises InvalidToken for any verification failure, including expiry.
    """
    try:
        payload = jwt.decode(token, _signing_key(), algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise BusinessError.invalid_token("expired")
    except jwt.InvalidTokenError as e:
        raise BusinessError.invalid_token(type(e).__name__)

    if not payload.get("sub"):
        raise BusinessError.invalid_token("missing subject")
    return payload
