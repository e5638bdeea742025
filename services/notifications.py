"""Best-effort in-app notifications emitted after workflow and review writes."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from models.notification_models import Notification, NotificationType
from utils import parse_object_id
from .exceptions import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


async def notify(
    db,
    user_id,
    type: NotificationType,
    title: str,
    message: str,
    data: Optional[Dict[str, Any]] = None,
) -> bool:
    """Store a notification; never raises, a failure only gets logged."""
    try:
        notification = Notification(
            user_id=str(user_id),
            type=type,
            title=title,
            message=message,
            data=data,
            created_at=datetime.utcnow(),
        )
        await db.notifications.insert_one(notification.dict())
        return True
    except Exception:
        logger.warning("Could not deliver %s notification to %s", type.value, user_id, exc_info=True)
        return False


async def list_notifications(
    db, user_id, unread_only: bool = False, skip: int = 0, limit: int = 20
) -> Tuple[List[Dict[str, Any]], int]:
    query: Dict[str, Any] = {"user_id": str(user_id)}
    if unread_only:
        query["read"] = False

    notifications = []
    cursor = db.notifications.find(query).sort("created_at", -1).skip(skip).limit(limit)
    async for notif in cursor:
        notifications.append(notif)
    unread = await db.notifications.count_documents({"user_id": str(user_id), "read": False})
    return notifications, unread


async def _get_own(db, notification_id, user_id) -> Dict[str, Any]:
    notification = await db.notifications.find_one(
        {"_id": parse_object_id(notification_id, "notification id")}
    )
    if not notification:
        raise NotFoundError("Notification not found")
    if notification["user_id"] != str(user_id):
        raise ForbiddenError("Not authorized to access this notification")
    return notification


async def mark_read(db, notification_id, user_id) -> None:
    notification = await _get_own(db, notification_id, user_id)
    await db.notifications.update_one({"_id": notification["_id"]}, {"$set": {"read": True}})


async def delete_notification(db, notification_id, user_id) -> None:
    notification = await _get_own(db, notification_id, user_id)
    await db.notifications.delete_one({"_id": notification["_id"]})
