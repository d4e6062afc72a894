"""Like store. The (user_id, post_id) primary key allows one like per pair."""
import logging

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.errors import AlreadyLiked, NotFound
from social_api.models import Like, Post, User, utcnow
from social_api.schemas import UserSummary
from social_api.stores.views import user_summary

logger = logging.getLogger(__name__)


async def like_post(db: AsyncSession, user_id: str, post_id: str) -> Post:
    """Record a like and return the liked post (for notifying its author)."""
    post = await db.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")
    try:
        async with db.begin_nested():
            await db.execute(
                insert(Like).values(user_id=user_id, post_id=post_id, created_at=utcnow())
            )
    except IntegrityError as exc:
        raise AlreadyLiked() from exc
    return post


async def unlike_post(db: AsyncSession, user_id: str, post_id: str) -> None:
    await db.execute(
        delete(Like).where(Like.user_id == user_id, Like.post_id == post_id)
    )


async def has_liked(db: AsyncSession, user_id: str, post_id: str) -> bool:
    row = await db.scalar(
        select(Like.post_id).where(Like.user_id == user_id, Like.post_id == post_id)
    )
    return row is not None


async def count_likes(db: AsyncSession, post_id: str) -> int:
    return await db.scalar(
        select(func.count()).select_from(Like).where(Like.post_id == post_id)
    )


async def list_likers(db: AsyncSession, post_id: str) -> list[UserSummary]:
    rows = await db.execute(
        select(User)
        .join(Like, Like.user_id == User.id)
        .where(Like.post_id == post_id)
        .order_by(Like.created_at.desc())
    )
    return [user_summary(u) for u in rows.scalars().all()]
