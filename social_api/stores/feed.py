"""
Feed assembly — the only place that reads across every store at once.

  Step 1 │ Social graph   — who does the viewer follow? (+ the viewer)
  Step 2 │ Candidates     — every post authored by that set
  Step 3 │ Ordering       — created_at DESC, post id DESC on ties
  Step 4 │ Engagement     — like / comment counts, viewer's own likes
  Step 5 │ Hydration      — author summary (name, email, avatar)

Steps 4 and 5 run as one grouped query each over the whole candidate set
instead of a lookup per post. There is no cursor on this feed and no partial
result: any query failure fails the request.
"""
import logging
import time
from typing import Optional, Sequence

from opentelemetry import trace
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.models import Comment, Follow, Like, Post, User
from social_api.schemas import PostView
from social_api.stores.views import image_for, post_author
from social_api.telemetry import FEED_LATENCY, FEED_POSTS_RETURNED

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


async def annotate_posts(
    db: AsyncSession,
    posts: Sequence[Post],
    viewer_id: Optional[str] = None,
) -> list[PostView]:
    """Attach author, likesCount, commentsCount and likedByUser, keeping order."""
    if not posts:
        return []
    post_ids = [p.id for p in posts]

    like_rows = await db.execute(
        select(Like.post_id, func.count())
        .where(Like.post_id.in_(post_ids))
        .group_by(Like.post_id)
    )
    like_counts: dict[str, int] = dict(like_rows.all())

    comment_rows = await db.execute(
        select(Comment.post_id, func.count())
        .where(Comment.post_id.in_(post_ids))
        .group_by(Comment.post_id)
    )
    comment_counts: dict[str, int] = dict(comment_rows.all())

    liked: set[str] = set()
    if viewer_id:
        liked_rows = await db.execute(
            select(Like.post_id).where(
                Like.user_id == viewer_id, Like.post_id.in_(post_ids)
            )
        )
        liked = set(liked_rows.scalars().all())

    author_ids = {p.user_id for p in posts}
    author_rows = await db.execute(select(User).where(User.id.in_(author_ids)))
    authors = {u.id: u for u in author_rows.scalars().all()}

    return [
        PostView(
            id=post.id,
            user_id=post.user_id,
            text=post.text or "",
            image_url=image_for(post),
            created_at=post.created_at,
            likes_count=like_counts.get(post.id, 0),
            comments_count=comment_counts.get(post.id, 0),
            liked_by_user=post.id in liked,
            user=post_author(authors.get(post.user_id)),
        )
        for post in posts
    ]


async def assemble_feed(db: AsyncSession, viewer_id: str) -> list[PostView]:
    """Posts by the viewer and everyone the viewer follows, newest first."""
    start_time = time.time()

    with tracer.start_as_current_span("assemble_feed") as span:
        span.set_attribute("user.id", viewer_id)

        # ── Step 1: social graph ─────────────────────────────────────────
        follow_rows = await db.execute(
            select(Follow.following_id).where(Follow.follower_id == viewer_id)
        )
        author_ids = set(follow_rows.scalars().all())
        span.set_attribute("feed.following", len(author_ids))
        author_ids.add(viewer_id)

        # ── Steps 2–3: candidates, ordered ───────────────────────────────
        post_rows = await db.execute(
            select(Post)
            .where(Post.user_id.in_(author_ids))
            .order_by(Post.created_at.desc(), Post.id.desc())
        )
        posts = post_rows.scalars().all()

        # ── Steps 4–5: engagement + hydration ────────────────────────────
        feed = await annotate_posts(db, posts, viewer_id)

        latency = time.time() - start_time
        FEED_LATENCY.observe(latency)
        FEED_POSTS_RETURNED.observe(len(feed))
        span.set_attribute("feed.posts_returned", len(feed))
        logger.debug(
            "Feed for %s: %d posts from %d authors in %.1fms",
            viewer_id, len(feed), len(author_ids), latency * 1000,
        )
        return feed
