from fastapi import APIRouter, Body, Query
from typing import Optional

from models.notification import MarkNotificationsRead
from routers.auth import Authenticated
from services import notifications as notification_service

router = APIRouter()

# Get notifications for the current user
@router.get(
    "",
    summary="List own notifications",
    description="Newest first, at most 50. `read=true` or `read=false` filters by read state.",
)
async def get_user_notifications(
    current_user: Authenticated,
    read: Optional[str] = Query(None),
):
    notifications = await notification_service.list_notifications(
        current_user,
        read=notification_service.parse_read_filter(read),
    )
    return {"success": True, "notifications": notifications}

# Unread badge count
@router.get("/unread-count", summary="Count own unread notifications")
async def get_unread_count(current_user: Authenticated):
    count = await notification_service.count_unread(current_user)
    return {"success": True, "count": count}

# Mark notifications as read
@router.put(
    "",
    summary="Mark notifications as read",
    description="Ids that are not the caller's own are skipped. Returns the number actually modified.",
)
async def mark_notifications_as_read(
    current_user: Authenticated,
    body: MarkNotificationsRead = Body(..., example={"notificationIds": ["665f1c2e9b1e8a3d4c5b6a70"]}),
):
    modified_count = await notification_service.mark_notifications_read(current_user, body.notification_ids)
    return {
        "success": True,
        "message": f"{modified_count} notifications marked as read",
        "modifiedCount": modified_count,
    }
