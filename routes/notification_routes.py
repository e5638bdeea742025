from fastapi import APIRouter, Depends, Query

from dataBase import get_db
from dependencies import get_current_user
from services import notifications
from utils import serialize_document

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
async def get_user_notifications(
    unread_only: bool = False,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    items, unread = await notifications.list_notifications(
        db, current_user["_id"], unread_only=unread_only, skip=skip, limit=limit
    )
    return {
        "notifications": serialize_document(items),
        "unread_count": unread,
    }


@router.put("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await notifications.mark_read(db, notification_id, current_user["_id"])
    return {"message": "Notification marked as read"}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    db=Depends(get_db),
):
    await notifications.delete_notification(db, notification_id, current_user["_id"])
    return {"message": "Notification deleted successfully"}
