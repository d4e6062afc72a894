"""
Post store — create, read, delete, and the global (all-posts) listing.

Deleting a post removes its likes and comments first and the post last. All
three statements run in the caller's transaction, so either everything goes
or nothing does.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.errors import Forbidden, NotFound, ValidationError
from social_api.models import Comment, Like, Post, utcnow
from social_api.schemas import PostView
from social_api.stores.feed import annotate_posts
from social_api.stores.paging import after_anchor, next_cursor

logger = logging.getLogger(__name__)


async def create_post(
    db: AsyncSession,
    user_id: str,
    text: str,
    image_url: Optional[str] = None,
    image_key: Optional[str] = None,
    created_at: Optional[datetime] = None,
) -> Post:
    """``image_key`` is an uploaded object key; it takes the place of ``image_url``."""
    post = Post(
        user_id=user_id,
        text=text,
        image_url=None if image_key else image_url,
        image_key=image_key,
        created_at=created_at or utcnow(),
    )
    db.add(post)
    await db.flush()     # materialise post id
    logger.info("Post created: %s by user %s", post.id, user_id)
    return post


async def get_post(db: AsyncSession, post_id: str) -> Optional[Post]:
    return await db.get(Post, post_id)


async def get_post_view(
    db: AsyncSession, post_id: str, viewer_id: Optional[str] = None
) -> Optional[PostView]:
    post = await db.get(Post, post_id)
    if not post:
        return None
    views = await annotate_posts(db, [post], viewer_id)
    return views[0]


async def delete_post(db: AsyncSession, post_id: str, user_id: str) -> None:
    post = await db.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")
    if post.user_id != user_id:
        raise Forbidden("Unauthorized to delete this post")

    likes = await db.execute(delete(Like).where(Like.post_id == post_id))
    comments = await db.execute(delete(Comment).where(Comment.post_id == post_id))
    await db.delete(post)
    await db.flush()
    logger.info(
        "Deleted post %s (%d likes, %d comments)",
        post_id, likes.rowcount, comments.rowcount,
    )


async def list_posts(
    db: AsyncSession,
    viewer_id: Optional[str] = None,
    cursor: Optional[str] = None,
    limit: int = 20,
) -> tuple[list[PostView], Optional[str]]:
    """Every post, newest first; ``cursor`` is the id of the last post seen."""
    stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc())
    if cursor:
        anchor = await db.get(Post, cursor)
        if anchor is None:
            raise ValidationError("Invalid cursor")
        stmt = stmt.where(after_anchor(Post.created_at, Post.id, anchor.created_at, anchor.id))

    rows = await db.execute(stmt.limit(limit))
    posts = rows.scalars().all()
    views = await annotate_posts(db, posts, viewer_id)
    return views, next_cursor(posts, limit, lambda p: p.id)
