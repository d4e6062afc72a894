"""
User store — accounts, profiles and search.

Counts (followers, following, posts) are computed on every read; nothing is
denormalised onto the users row.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.config import settings
from social_api.errors import EmailTaken, NotFound
from social_api.models import Post, User, utcnow
from social_api.schemas import ProfileResponse, PublicProfile, UserSearchResult
from social_api.stores import social
from social_api.stores.views import avatar_for, post_summary, username_for

logger = logging.getLogger(__name__)

PATCHABLE_FIELDS = ("name", "avatar_url", "avatar_key", "bio")


async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
    return await db.scalar(select(User).where(User.email == email))


async def get_by_id(db: AsyncSession, user_id: str) -> Optional[User]:
    return await db.get(User, user_id)


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password_hash: str,
    created_at: Optional[datetime] = None,
) -> User:
    """Insert a user; the unique index on email rejects duplicates."""
    user = User(
        name=name,
        email=email,
        password_hash=password_hash,
        created_at=created_at or utcnow(),
    )
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError as exc:
        raise EmailTaken() from exc
    logger.info("Created user %s (id=%s)", email, user.id)
    return user


async def count_posts(db: AsyncSession, user_id: str) -> int:
    return await db.scalar(
        select(func.count()).select_from(Post).where(Post.user_id == user_id)
    )


async def get_profile(db: AsyncSession, user_id: str) -> Optional[ProfileResponse]:
    """User + followers/following/post counts + the most recent posts."""
    user = await db.get(User, user_id)
    if not user:
        return None

    recent = await db.execute(
        select(Post)
        .where(Post.user_id == user_id)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(settings.recent_posts_limit)
    )
    return ProfileResponse(
        id=user.id,
        name=user.name or "",
        email=user.email or "",
        avatar_url=avatar_for(user),
        bio=user.bio or "",
        created_at=user.created_at,
        followers_count=await social.count_followers(db, user_id),
        following_count=await social.count_following(db, user_id),
        posts_count=await count_posts(db, user_id),
        recent_posts=[post_summary(p) for p in recent.scalars().all()],
    )


async def update_user(db: AsyncSession, user_id: str, changes: dict) -> User:
    """Patch name / avatar_url / avatar_key / bio; other keys are ignored."""
    user = await db.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    for field in PATCHABLE_FIELDS:
        if field in changes:
            setattr(user, field, changes[field])
    await db.flush()
    return user


async def search_users(
    db: AsyncSession,
    query: Optional[str] = None,
    limit: int = 10,
    current_user_id: Optional[str] = None,
) -> list[UserSearchResult]:
    stmt = select(User).order_by(User.created_at, User.id).limit(limit)
    if query:
        stmt = stmt.where(User.name.icontains(query, autoescape=True))
    rows = await db.execute(stmt)
    users = rows.scalars().all()

    followed: set[str] = set()
    if current_user_id:
        followed = await social.following_among(db, current_user_id, [u.id for u in users])

    return [
        UserSearchResult(
            id=u.id,
            name=u.name or "",
            username=username_for(u),
            avatar=avatar_for(u) or None,
            is_following=u.id in followed,
        )
        for u in users
    ]


async def get_public_profile(
    db: AsyncSession, user_id: str, current_user_id: Optional[str] = None
) -> Optional[PublicProfile]:
    user = await db.get(User, user_id)
    if not user:
        return None

    following = False
    if current_user_id:
        following = await social.is_following(db, current_user_id, user_id)

    return PublicProfile(
        id=user.id,
        name=user.name or "",
        username=username_for(user),
        avatar=avatar_for(user) or None,
        bio=user.bio or "",
        followers_count=await social.count_followers(db, user_id),
        following_count=await social.count_following(db, user_id),
        is_following=following,
    )
