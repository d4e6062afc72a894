"""
Account endpoints:
  POST /auth/register — create an account, returns {user, token}
  POST /auth/login    — exchange email + password for a token
  GET  /auth/profile  — the caller's profile with counts
  PUT  /auth/profile  — patch name / avatarUrl / bio (or avatar via storageId)
"""
import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.concurrency import run_in_threadpool
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import (
    create_access_token,
    get_current_user,
    hash_password,
    set_auth_cookie,
    verify_password,
)
from social_api.clients.minio_client import require_object
from social_api.database import get_db
from social_api.errors import AuthError, EmailTaken, NotFound, ValidationError
from social_api.models import User
from social_api.schemas import (
    AuthResponse,
    AuthUser,
    LoginRequest,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
)
from social_api.stores import users
from social_api.telemetry import AUTH_FAILURES_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


def _normalise_email(email: str) -> str:
    return email.strip().lower()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, response: Response, db: AsyncSession = Depends(get_db)):
    with tracer.start_as_current_span("register"):
        email = _normalise_email(body.email)
        # Friendly early exit; the unique index is what actually guarantees it
        if await users.get_by_email(db, email):
            raise EmailTaken()

        user = await users.create_user(db, body.name, email, hash_password(body.password))
        token = create_access_token(user)
        set_auth_cookie(response, token)
        return AuthResponse(user=AuthUser.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, response: Response, db: AsyncSession = Depends(get_db)):
    user = await users.get_by_email(db, _normalise_email(body.email))
    if not user or not verify_password(body.password, user.password_hash):
        AUTH_FAILURES_TOTAL.labels(reason="credentials").inc()
        raise AuthError("Invalid credentials")

    token = create_access_token(user)
    set_auth_cookie(response, token)
    logger.info("User %s logged in", user.id)
    return AuthResponse(user=AuthUser.model_validate(user), token=token)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await users.get_profile(db, current_user.id)
    if not profile:
        raise NotFound("User not found")
    return profile


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    changes = body.model_dump(include=body.model_fields_set - {"storage_id"})
    if not changes and not body.storage_id:
        raise ValidationError(
            "At least one field (name, avatarUrl, bio, or storageId) is required"
        )

    # An uploaded image wins over a raw avatarUrl; the key is presigned on read
    if body.storage_id:
        await run_in_threadpool(require_object, body.storage_id)
        changes["avatar_key"] = body.storage_id
        changes["avatar_url"] = None
    elif "avatar_url" in changes:
        changes["avatar_key"] = None

    await users.update_user(db, current_user.id, changes)
    return await users.get_profile(db, current_user.id)
