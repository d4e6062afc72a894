"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Profile, post and comment payloads are camelCase on the wire (likesCount,
avatarUrl, …); search results and notifications are snake_case
(is_following, sender_name, …). Both shapes are what clients already consume.
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

NotificationType = Literal["follow", "like", "comment"]
UploadType = Literal["profile", "post"]


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class SuccessResponse(BaseModel):
    success: bool = True


# ──────────────────────────── Auth ────────────────────────────────────────

class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=255)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthUser(BaseModel):
    id: str
    email: str
    name: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    user: AuthUser
    token: str


# ──────────────────────────── Users ───────────────────────────────────────

class PostSummary(CamelModel):
    id: str
    user_id: str
    text: str
    image_url: Optional[str] = None
    created_at: datetime


class ProfileResponse(CamelModel):
    id: str
    name: str
    email: str
    avatar_url: str = ""
    bio: str = ""
    created_at: datetime
    followers_count: int = 0
    following_count: int = 0
    posts_count: int = 0
    recent_posts: list[PostSummary] = []


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    storage_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, value: Optional[str]) -> str:
        # Omitting name leaves it alone; an explicit null would blank it
        if value is None:
            raise ValueError("name cannot be null")
        return value


class UserSummary(CamelModel):
    id: str
    name: str
    email: str
    avatar_url: str = ""
    bio: str = ""
    username: str = ""


class UserPage(BaseModel):
    users: list[UserSummary]
    cursor: Optional[str] = None


class UserSearchResult(BaseModel):
    id: str
    name: str
    username: str
    avatar: Optional[str] = None
    is_following: bool = False


class PublicProfile(UserSearchResult):
    bio: str = ""
    followers_count: int = 0
    following_count: int = 0


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(CamelModel):
    text: str = Field(..., min_length=1)
    # Accepted as image_url or imageUrl
    image_url: Optional[str] = None
    storage_id: Optional[str] = None


class PostAuthor(CamelModel):
    id: str = ""
    name: str = ""
    email: str = ""
    avatar_url: str = ""


class PostView(CamelModel):
    """A post as a viewer sees it: author summary plus engagement counts."""
    id: str
    user_id: str
    text: str
    image_url: Optional[str] = None
    created_at: datetime
    likes_count: int = 0
    comments_count: int = 0
    liked_by_user: bool = False
    user: PostAuthor


class PostPage(BaseModel):
    posts: list[PostView]
    cursor: Optional[str] = None


class CommentCreate(BaseModel):
    text: str = Field(..., min_length=1)


class CommentView(CamelModel):
    id: str
    post_id: str
    user_id: str
    text: str
    created_at: datetime
    user: PostAuthor


class CommentPage(BaseModel):
    comments: list[CommentView]
    cursor: Optional[str] = None


# ──────────────────────────── Notifications ───────────────────────────────

class NotificationCreate(BaseModel):
    user_id: str
    type: NotificationType
    message: str = Field(..., min_length=1)
    reference_id: Optional[str] = None


class NotificationOut(BaseModel):
    id: str
    type: str
    message: str
    sender_id: str
    sender_name: str = "Unknown User"
    sender_avatar: str = ""
    reference_id: Optional[str] = None
    is_read: bool
    created_at: datetime


class NotificationRead(BaseModel):
    is_read: bool


class MarkAllReadResponse(SuccessResponse):
    updated_count: int


class UnreadCount(BaseModel):
    count: int


# ──────────────────────────── Uploads ─────────────────────────────────────

class UploadResponse(CamelModel):
    url: str
    storage_id: str
    type: UploadType


class UploadSave(CamelModel):
    storage_id: str = Field(..., min_length=1)
    type: UploadType


class SavedFile(CamelModel):
    storage_id: str
    url: str
