"""
User endpoints:
  GET  /users/search?query=&limit=  — name search with is_following
  GET  /users/me                    — the caller's profile
  GET  /users/me/following          — who the caller follows
  GET  /users/{id}                  — public profile
  GET  /users/{id}/following        — who a user follows (cursor)
  GET  /users/{id}/followers        — who follows a user (cursor)
  POST /users/{id}/follow           — follow a user
  POST /users/{id}/unfollow         — unfollow (no-op if not following)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import get_current_user, get_optional_user
from social_api.config import settings
from social_api.database import get_db
from social_api.errors import NotFound, ValidationError
from social_api.models import User
from social_api.schemas import (
    ProfileResponse,
    PublicProfile,
    SuccessResponse,
    UserPage,
    UserSearchResult,
)
from social_api.stores import notifications, social, users

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


async def _require_user(db: AsyncSession, user_id: str, detail: str = "User not found") -> User:
    user = await users.get_by_id(db, user_id)
    if not user:
        raise NotFound(detail)
    return user


@router.get("/search", response_model=list[UserSearchResult])
async def search_users(
    query: Optional[str] = None,
    limit: int = Query(settings.search_default_limit, ge=1, le=settings.search_max_limit),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    return await users.search_users(
        db, query, limit, current_user.id if current_user else None
    )


@router.get("/me", response_model=ProfileResponse)
async def get_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await users.get_profile(db, current_user.id)


@router.get("/me/following", response_model=UserPage)
async def get_my_following(
    cursor: Optional[str] = None,
    limit: int = Query(settings.follows_page_size, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    page, next_cursor = await social.get_following(db, current_user.id, cursor, limit)
    return UserPage(users=page, cursor=next_cursor)


@router.get("/{user_id}", response_model=PublicProfile)
async def get_user(
    user_id: str,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await users.get_public_profile(
        db, user_id, current_user.id if current_user else None
    )
    if not profile:
        raise NotFound("User not found")
    return profile


@router.get("/{user_id}/following", response_model=UserPage)
async def list_following(
    user_id: str,
    cursor: Optional[str] = None,
    limit: int = Query(settings.follows_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    await _require_user(db, user_id)
    page, next_cursor = await social.get_following(db, user_id, cursor, limit)
    return UserPage(users=page, cursor=next_cursor)


@router.get("/{user_id}/followers", response_model=UserPage)
async def list_followers(
    user_id: str,
    cursor: Optional[str] = None,
    limit: int = Query(settings.follows_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    await _require_user(db, user_id)
    page, next_cursor = await social.get_followers(db, user_id, cursor, limit)
    return UserPage(users=page, cursor=next_cursor)


@router.post("/{user_id}/follow", response_model=SuccessResponse)
async def follow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a follower → following edge and notify the followed user.
    A second follow of the same user is a 409 and sends no notification.
    """
    with tracer.start_as_current_span("follow_user"):
        if user_id == current_user.id:
            raise ValidationError("Cannot follow yourself")
        await _require_user(db, user_id, "User to follow not found")

        await social.follow(db, current_user.id, user_id)
        await notifications.notify(db, user_id, current_user, "follow", current_user.id)
        return SuccessResponse()


@router.post("/{user_id}/unfollow", response_model=SuccessResponse)
async def unfollow_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("unfollow_user"):
        if user_id == current_user.id:
            raise ValidationError("Cannot unfollow yourself")
        await _require_user(db, user_id, "User to unfollow not found")

        await social.unfollow(db, current_user.id, user_id)
        return SuccessResponse()
