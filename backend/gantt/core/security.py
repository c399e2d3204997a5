from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from gantt.core.config import settings


class SecretKeyMissingError(RuntimeError):
    """Raised when tokens must be signed but SECRET_KEY is not configured."""


def require_secret_key() -> str:
    if not settings.SECRET_KEY:
        raise SecretKeyMissingError("SECRET_KEY must be set to issue or validate access tokens")
    return settings.SECRET_KEY


def create_access_token(subject: str | Any, expires_delta: timedelta | None = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode = {"exp": expire, "sub": str(subject)}
    return jwt.encode(to_encode, require_secret_key(), algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> int | None:
    """Return the user id carried by *token*, or ``None`` when it does not validate."""
    try:
        payload = jwt.decode(token, require_secret_key(), algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError):
        return None
