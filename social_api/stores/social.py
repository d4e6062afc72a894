"""
Social graph store — follower → following edges.

The (follower_id, following_id) primary key is the duplicate guard: a second
insert of the same edge fails inside the database, so two concurrent follow
requests cannot both succeed. Self-follows are rejected by the HTTP layer,
not here.
"""
import logging
from typing import Iterable, Optional

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.errors import DuplicateEdge, ValidationError
from social_api.models import Follow, User, utcnow
from social_api.schemas import UserSummary
from social_api.stores.paging import after_anchor, next_cursor
from social_api.stores.views import user_summary

logger = logging.getLogger(__name__)


async def follow(db: AsyncSession, follower_id: str, following_id: str) -> None:
    try:
        # Savepoint: a duplicate undoes only this insert, not the request
        async with db.begin_nested():
            await db.execute(
                insert(Follow).values(
                    follower_id=follower_id,
                    following_id=following_id,
                    created_at=utcnow(),
                )
            )
    except IntegrityError as exc:
        raise DuplicateEdge() from exc
    logger.info("%s followed %s", follower_id, following_id)


async def unfollow(db: AsyncSession, follower_id: str, following_id: str) -> None:
    """Remove the edge if present; a missing edge is not an error."""
    await db.execute(
        delete(Follow).where(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id,
        )
    )


async def is_following(db: AsyncSession, follower_id: str, following_id: str) -> bool:
    row = await db.scalar(
        select(Follow.following_id).where(
            Follow.follower_id == follower_id,
            Follow.following_id == following_id,
        )
    )
    return row is not None


async def following_among(
    db: AsyncSession, follower_id: str, user_ids: Iterable[str]
) -> set[str]:
    """Subset of ``user_ids`` that ``follower_id`` follows."""
    user_ids = list(user_ids)
    if not user_ids:
        return set()
    rows = await db.execute(
        select(Follow.following_id).where(
            Follow.follower_id == follower_id,
            Follow.following_id.in_(user_ids),
        )
    )
    return set(rows.scalars().all())


async def count_followers(db: AsyncSession, user_id: str) -> int:
    return await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.following_id == user_id)
    )


async def count_following(db: AsyncSession, user_id: str) -> int:
    return await db.scalar(
        select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    )


async def _list_edges(
    db: AsyncSession,
    user_id: str,
    own_col,
    other_col,
    cursor: Optional[str],
    limit: int,
) -> tuple[list[UserSummary], Optional[str]]:
    stmt = (
        select(User)
        .join(Follow, other_col == User.id)
        .where(own_col == user_id)
        .order_by(Follow.created_at.desc(), other_col.desc())
    )
    if cursor:
        anchor_created = await db.scalar(
            select(Follow.created_at).where(own_col == user_id, other_col == cursor)
        )
        if anchor_created is None:
            raise ValidationError("Invalid cursor")
        stmt = stmt.where(after_anchor(Follow.created_at, other_col, anchor_created, cursor))

    rows = await db.execute(stmt.limit(limit))
    users = [user_summary(u) for u in rows.scalars().all()]
    return users, next_cursor(users, limit, lambda u: u.id)


async def get_following(
    db: AsyncSession, user_id: str, cursor: Optional[str] = None, limit: int = 50
) -> tuple[list[UserSummary], Optional[str]]:
    """Users that ``user_id`` follows, most recently followed first."""
    return await _list_edges(
        db, user_id, Follow.follower_id, Follow.following_id, cursor, limit
    )


async def get_followers(
    db: AsyncSession, user_id: str, cursor: Optional[str] = None, limit: int = 50
) -> tuple[list[UserSummary], Optional[str]]:
    """Users following ``user_id``, most recent first."""
    return await _list_edges(
        db, user_id, Follow.following_id, Follow.follower_id, cursor, limit
    )
