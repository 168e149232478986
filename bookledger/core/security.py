from __future__ import annotations

from datetime import datetime, timedelta, timezone

from bookledger.core.config import settings
from jose import jwt
from passlib.context import CryptContext  # type: ignore[import-untyped]

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def _encode(subject: str, role: str, token_type: str, expires_delta: timedelta) -> str:
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"sub": subject, "role": role, "type": token_type, "exp": expire}
    return jwt.encode(
        to_encode, settings.auth_secret_key, algorithm=settings.auth_algorithm
    )


def create_access_token(
    subject: str, role: str, expires_delta: timedelta | None = None
) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.auth_access_token_ttl_minutes)
    return _encode(subject, role, ACCESS_TOKEN, expires_delta)


def create_refresh_token(
    subject: str, role: str, expires_delta: timedelta | None = None
) -> str:
    if expires_delta is None:
        expires_delta = timedelta(days=settings.auth_refresh_token_ttl_days)
    return _encode(subject, role, REFRESH_TOKEN, expires_delta)


def decode_token(token: str) -> dict:
    return jwt.decode(
        token, settings.auth_secret_key, algorithms=[settings.auth_algorithm]
    )
