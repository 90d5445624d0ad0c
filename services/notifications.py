from typing import Any, List, Optional

from database import operations
from errors import InvalidInput, unexpected_errors
from logging_config import logger
from models.notification import Notification
from models.user import CurrentUser


def parse_read_filter(value: Optional[str]) -> Optional[bool]:
    """``"true"``/``"false"`` select read/unread; anything else means no filter."""
    if value == "true":
        return True
    if value == "false":
        return False
    return None


async def notify(user_id: str, message: str, request_id: Optional[str] = None) -> Notification:
    notification = await operations.create_notification({
        "user_id": user_id,
        "request_id": request_id,
        "message": message,
        "read": False,
    })
    logger.debug(f"Notification {notification['id']} created for user {user_id}")
    return Notification(**notification)


@unexpected_errors("Failed to fetch notifications")
async def list_notifications(actor: CurrentUser, read: Optional[bool] = None) -> List[Notification]:
    """The caller's own notifications, newest first, at most 50."""
    notifications = await operations.get_notifications(actor.id, read=read)
    return [Notification(**notification) for notification in notifications]


@unexpected_errors("Failed to fetch notifications")
async def count_unread(actor: CurrentUser) -> int:
    return await operations.count_unread_notifications(actor.id)


@unexpected_errors("Failed to update notifications")
async def mark_notifications_read(actor: CurrentUser, notification_ids: Any) -> int:
    """Mark the caller's notifications among ``notification_ids`` as read.

    Ids that belong to someone else, or that are not valid ids at all, are
    skipped. Returns how many notifications were actually modified.
    """
    if not isinstance(notification_ids, list):
        raise InvalidInput("Notification IDs are required")

    modified_count = await operations.mark_notifications_read(actor.id, notification_ids)
    logger.info(f"{modified_count} notifications marked as read for user {actor.id}")
    return modified_count
