"""
Comment store — comments are always scoped to a post.

Reads are cursor-paginated, newest first (see ``stores.paging``).
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.errors import Forbidden, NotFound, ValidationError
from social_api.models import Comment, Post, User, utcnow
from social_api.schemas import CommentView
from social_api.stores.paging import after_anchor, next_cursor
from social_api.stores.views import post_author

logger = logging.getLogger(__name__)


def _comment_view(comment: Comment, author: Optional[User]) -> CommentView:
    return CommentView(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        text=comment.text or "",
        created_at=comment.created_at,
        user=post_author(author),
    )


async def create_comment(
    db: AsyncSession,
    post_id: str,
    user: User,
    text: str,
    created_at: Optional[datetime] = None,
) -> CommentView:
    post = await db.get(Post, post_id)
    if not post:
        raise NotFound("Post not found")

    comment = Comment(
        post_id=post_id,
        user_id=user.id,
        text=text,
        created_at=created_at or utcnow(),
    )
    db.add(comment)
    await db.flush()
    return _comment_view(comment, user)


async def get_comment(db: AsyncSession, comment_id: str) -> Optional[Comment]:
    return await db.get(Comment, comment_id)


async def delete_comment(
    db: AsyncSession, post_id: str, comment_id: str, user_id: str
) -> None:
    comment = await db.get(Comment, comment_id)
    if not comment or comment.post_id != post_id:
        raise NotFound("Comment not found")
    if comment.user_id != user_id:
        raise Forbidden("Unauthorized to delete this comment")
    await db.delete(comment)
    await db.flush()


async def list_comments(
    db: AsyncSession,
    post_id: str,
    cursor: Optional[str] = None,
    limit: int = 10,
) -> tuple[list[CommentView], Optional[str]]:
    stmt = (
        select(Comment, User)
        .outerjoin(User, User.id == Comment.user_id)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    if cursor:
        anchor = await db.get(Comment, cursor)
        if anchor is None or anchor.post_id != post_id:
            raise ValidationError("Invalid cursor")
        stmt = stmt.where(
            after_anchor(Comment.created_at, Comment.id, anchor.created_at, anchor.id)
        )

    rows = (await db.execute(stmt.limit(limit))).all()
    comments = [_comment_view(comment, author) for comment, author in rows]
    return comments, next_cursor(comments, limit, lambda c: c.id)
