"""
Post endpoints:
  GET    /posts                       — global listing, newest first (cursor)
  POST   /posts                       — create a post
  GET    /posts/feed                  — the caller's assembled feed
  GET    /posts/{id}                  — a single post with counts
  DELETE /posts/{id}                  — delete own post (+ likes, comments)
  GET    /posts/{id}/comments         — comments, newest first (cursor)
  POST   /posts/{id}/comments         — comment on a post
  DELETE /posts/{id}/comments/{cid}   — delete own comment
  POST   /posts/{id}/like             — like a post
  POST   /posts/{id}/unlike           — remove a like (no-op if absent)
  GET    /posts/{id}/likes            — users who liked a post
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.concurrency import run_in_threadpool
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import get_current_user, get_optional_user
from social_api.clients.minio_client import require_object
from social_api.config import settings
from social_api.database import get_db
from social_api.errors import NotFound
from social_api.models import User
from social_api.schemas import (
    CommentCreate,
    CommentPage,
    CommentView,
    PostCreate,
    PostPage,
    PostView,
    SuccessResponse,
    UserSummary,
)
from social_api.stores import comments, likes, notifications, posts
from social_api.stores.feed import assemble_feed
from social_api.telemetry import POSTS_CREATED_TOTAL

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


async def _require_post(db: AsyncSession, post_id: str):
    post = await posts.get_post(db, post_id)
    if not post:
        raise NotFound("Post not found")
    return post


@router.get("", response_model=PostPage)
async def list_posts(
    cursor: Optional[str] = None,
    limit: int = Query(settings.posts_page_size, ge=1, le=100),
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    viewer_id = current_user.id if current_user else None
    page, next_cursor = await posts.list_posts(db, viewer_id, cursor, limit)
    return PostPage(posts=page, cursor=next_cursor)


@router.post("", response_model=PostView, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("create_post") as span:
        if body.storage_id:
            await run_in_threadpool(require_object, body.storage_id)

        post = await posts.create_post(
            db, current_user.id, body.text, body.image_url, image_key=body.storage_id
        )
        span.set_attribute("post.id", post.id)
        span.set_attribute("post.user_id", post.user_id)

        view = await posts.get_post_view(db, post.id, current_user.id)
        POSTS_CREATED_TOTAL.inc()
        return view


@router.get("/feed", response_model=list[PostView])
async def get_feed(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await assemble_feed(db, current_user.id)


@router.get("/{post_id}", response_model=PostView)
async def get_post(
    post_id: str,
    current_user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    view = await posts.get_post_view(db, post_id, current_user.id if current_user else None)
    if not view:
        raise NotFound("Post not found")
    return view


@router.delete("/{post_id}", response_model=SuccessResponse)
async def delete_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("delete_post") as span:
        span.set_attribute("post.id", post_id)
        await posts.delete_post(db, post_id, current_user.id)
        return SuccessResponse()


@router.get("/{post_id}/comments", response_model=CommentPage)
async def list_comments(
    post_id: str,
    cursor: Optional[str] = None,
    limit: int = Query(settings.comments_page_size, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    await _require_post(db, post_id)
    page, next_cursor = await comments.list_comments(db, post_id, cursor, limit)
    return CommentPage(comments=page, cursor=next_cursor)


@router.post(
    "/{post_id}/comments",
    response_model=CommentView,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    post_id: str,
    body: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await comments.create_comment(db, post_id, current_user, body.text)
    post = await posts.get_post(db, post_id)
    await notifications.notify(db, post.user_id, current_user, "comment", post_id)
    return comment


@router.delete("/{post_id}/comments/{comment_id}", response_model=SuccessResponse)
async def delete_comment(
    post_id: str,
    comment_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await comments.delete_comment(db, post_id, comment_id, current_user.id)
    return SuccessResponse()


@router.post("/{post_id}/like", response_model=SuccessResponse)
async def like_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("like_post"):
        post = await likes.like_post(db, current_user.id, post_id)
        await notifications.notify(db, post.user_id, current_user, "like", post_id)
        return SuccessResponse()


@router.post("/{post_id}/unlike", response_model=SuccessResponse)
async def unlike_post(
    post_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await likes.unlike_post(db, current_user.id, post_id)
    return SuccessResponse()


@router.get("/{post_id}/likes", response_model=list[UserSummary])
async def list_likes(post_id: str, db: AsyncSession = Depends(get_db)):
    await _require_post(db, post_id)
    return await likes.list_likers(db, post_id)
