"""Builders that turn ORM rows into the summaries embedded in responses."""
from typing import Optional

from social_api.clients.minio_client import get_presigned_url
from social_api.models import Post, User
from social_api.schemas import PostAuthor, PostSummary, UserSummary


def username_for(user: User) -> str:
    # No separate handle column; the email local part stands in for one
    return user.email.split("@")[0]


def media_url(key: Optional[str], stored_url: Optional[str]) -> Optional[str]:
    """Uploaded objects are presigned per read; plain URLs pass through."""
    if key:
        return get_presigned_url(key)
    return stored_url or None


def avatar_for(user: User) -> str:
    return media_url(user.avatar_key, user.avatar_url) or ""


def image_for(post: Post) -> Optional[str]:
    return media_url(post.image_key, post.image_url)


def post_author(user: Optional[User]) -> PostAuthor:
    if user is None:
        return PostAuthor()
    return PostAuthor(
        id=user.id,
        name=user.name or "",
        email=user.email or "",
        avatar_url=avatar_for(user),
    )


def user_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        name=user.name or "",
        email=user.email or "",
        avatar_url=avatar_for(user),
        bio=user.bio or "",
        username=username_for(user),
    )


def post_summary(post: Post) -> PostSummary:
    return PostSummary(
        id=post.id,
        user_id=post.user_id,
        text=post.text or "",
        image_url=image_for(post),
        created_at=post.created_at,
    )
