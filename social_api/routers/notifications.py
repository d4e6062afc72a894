"""
Notification endpoints (all scoped to the authenticated caller):
  GET  /notifications                — newest first, with sender details
  POST /notifications                — notify another user (sender = caller)
  GET  /notifications/unread-count   — number of unread notifications
  PUT  /notifications/read-all       — mark every unread notification read
  PUT  /notifications/{id}/read      — mark one notification read
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.auth import get_current_user
from social_api.database import get_db
from social_api.errors import NotFound, ValidationError
from social_api.models import User
from social_api.schemas import (
    MarkAllReadResponse,
    NotificationCreate,
    NotificationOut,
    NotificationRead,
    SuccessResponse,
    UnreadCount,
)
from social_api.stores import notifications, users

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await notifications.get_notifications(db, current_user.id)


@router.post(
    "",
    response_model=Optional[NotificationOut],
    status_code=status.HTTP_201_CREATED,
)
async def create_notification(
    body: NotificationCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Returns null when the caller addresses a notification to themselves."""
    if not await users.get_by_id(db, body.user_id):
        raise NotFound("Recipient not found")

    notification = await notifications.create_notification(
        db,
        user_id=body.user_id,
        sender_id=current_user.id,
        type=body.type,
        message=body.message,
        reference_id=body.reference_id,
    )
    if notification is None:
        return None
    return notifications.notification_out(notification, current_user)


@router.get("/unread-count", response_model=UnreadCount)
async def unread_count(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return UnreadCount(count=await notifications.get_unread_count(db, current_user.id))


@router.put("/read-all", response_model=MarkAllReadResponse)
async def mark_all_read(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    updated = await notifications.mark_all_notifications_as_read(db, current_user.id)
    return MarkAllReadResponse(updated_count=updated)


@router.put("/{notification_id}/read", response_model=SuccessResponse)
async def mark_read(
    notification_id: str,
    body: NotificationRead,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if body.is_read is not True:
        raise ValidationError("is_read must be true")
    await notifications.mark_notification_as_read(db, notification_id, current_user.id)
    return SuccessResponse()
