"""
Notification store.

A notification addressed to its own sender is never written; callers get
None back instead of an error, so follow/like/comment handlers can notify
unconditionally.
"""
import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from social_api.errors import Forbidden, NotFound, ValidationError
from social_api.models import NOTIFICATION_TYPES, Notification, User
from social_api.schemas import NotificationOut
from social_api.stores.views import avatar_for
from social_api.telemetry import NOTIFICATIONS_CREATED_TOTAL

logger = logging.getLogger(__name__)


def notification_out(notification: Notification, sender: Optional[User]) -> NotificationOut:
    return NotificationOut(
        id=notification.id,
        type=notification.type,
        message=notification.message,
        sender_id=notification.sender_id,
        sender_name=sender.name if sender and sender.name else "Unknown User",
        sender_avatar=avatar_for(sender) if sender else "",
        reference_id=notification.reference_id or None,
        is_read=notification.is_read,
        created_at=notification.created_at,
    )


async def create_notification(
    db: AsyncSession,
    user_id: str,
    sender_id: str,
    type: str,
    message: str,
    reference_id: Optional[str] = None,
) -> Optional[Notification]:
    if type not in NOTIFICATION_TYPES:
        raise ValidationError("Type must be 'follow', 'like', or 'comment'")
    if user_id == sender_id:
        return None

    notification = Notification(
        user_id=user_id,
        sender_id=sender_id,
        type=type,
        message=message,
        reference_id=reference_id or None,
        is_read=False,
    )
    db.add(notification)
    await db.flush()
    NOTIFICATIONS_CREATED_TOTAL.labels(type=type).inc()
    logger.debug("Notification %s (%s) → %s", notification.id, type, user_id)
    return notification


ACTION_MESSAGES = {
    "follow": "{name} started following you",
    "like": "{name} liked your post",
    "comment": "{name} commented on your post",
}


async def notify(
    db: AsyncSession,
    recipient_id: str,
    sender: User,
    type: str,
    reference_id: Optional[str] = None,
) -> Optional[Notification]:
    """Notification for a social action taken by ``sender``."""
    message = ACTION_MESSAGES[type].format(name=sender.name)
    return await create_notification(db, recipient_id, sender.id, type, message, reference_id)


async def get_notifications(db: AsyncSession, user_id: str) -> list[NotificationOut]:
    rows = await db.execute(
        select(Notification, User)
        .outerjoin(User, User.id == Notification.sender_id)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
    )
    return [notification_out(n, sender) for n, sender in rows.all()]


async def mark_notification_as_read(
    db: AsyncSession, notification_id: str, user_id: str
) -> None:
    notification = await db.get(Notification, notification_id)
    if not notification:
        raise NotFound("Notification not found")
    if notification.user_id != user_id:
        raise Forbidden("Unauthorized to modify this notification")
    notification.is_read = True
    await db.flush()


async def mark_all_notifications_as_read(db: AsyncSession, user_id: str) -> int:
    rows = await db.execute(
        select(Notification).where(
            Notification.user_id == user_id, Notification.is_read.is_(False)
        )
    )
    unread = rows.scalars().all()
    for notification in unread:
        notification.is_read = True
    await db.flush()
    return len(unread)


async def get_unread_count(db: AsyncSession, user_id: str) -> int:
    return await db.scalar(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.is_read.is_(False))
    )
