from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime

class Notification(BaseModel):
    id: str
    user_id: str = Field(..., alias="userId")
    request_id: Optional[str] = Field(None, alias="requestId")
    message: str
    read: bool = False
    created_at: datetime = Field(..., alias="createdAt")

    class Config:
        populate_by_name = True

class MarkNotificationsRead(BaseModel):
    # Validated by the notification service so a non-list gets a specific message
    notification_ids: Optional[Any] = Field(None, alias="notificationIds")

    class Config:
        populate_by_name = True
