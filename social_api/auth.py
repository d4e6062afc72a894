"""
Authentication helpers.

  • Passwords — hashed with passlib (pbkdf2_sha256); the hash never leaves
    the users table.
  • Tokens    — stateless HS256 JWTs (python-jose) carrying {id, email, name}
                and a 7-day expiry. Nothing is stored server-side, so a token
                stays valid until it expires.

Two FastAPI dependencies are exposed: ``get_current_user`` (401 unless a valid
Bearer token for an existing user is sent) and ``get_optional_user`` (the user
when a valid token is sent, otherwise None).
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, Response
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.config import settings
from social_api.database import get_db
from social_api.errors import AuthError
from social_api.models import User
from social_api.telemetry import AUTH_FAILURES_TOTAL

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(days=settings.jwt_expire_days)
    )
    claims = {"id": user.id, "email": user.email, "name": user.name, "exp": expire}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict:
    """Verify signature + expiry and return the claims; AuthError otherwise."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.info("Token verification failed: %s", exc)
        raise AuthError("Invalid token") from exc
    if not claims.get("id"):
        raise AuthError("Invalid token")
    return claims


def set_auth_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.auth_cookie_name,
        token,
        httponly=True,
        secure=settings.environment == "production",
        samesite="lax",
        max_age=settings.jwt_expire_days * 24 * 3600,
    )


async def _resolve_user(db: AsyncSession, token: str) -> User:
    claims = decode_access_token(token)
    user = await db.get(User, claims["id"])
    if not user:
        raise AuthError("User not found")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        AUTH_FAILURES_TOTAL.labels(reason="missing").inc()
        raise AuthError("Authentication required")
    try:
        return await _resolve_user(db, credentials.credentials)
    except AuthError:
        AUTH_FAILURES_TOTAL.labels(reason="invalid").inc()
        raise


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    if credentials is None or not credentials.credentials:
        return None
    try:
        return await _resolve_user(db, credentials.credentials)
    except AuthError:
        return None
