# models/notification.py

from typing import List, Optional, Any
from pydantic import BaseModel, Field


class NotificationRead(BaseModel):
    """Visible notification with display fields filled in."""
    notification_id: Optional[int] = None
    notification_type: Optional[str] = None
    title: Optional[str] = None
    message: Optional[str] = None
    notification_date: Optional[Any] = None
    target_audience: Optional[str] = None
    wing_id: Optional[Any] = None
    is_read_by_user: bool = False

    category: str = "general"
    icon: str = ""
    type_label: str = ""
    images: List[str] = []
    more_images: int = Field(0, description="Image attachments beyond the preview limit")
    date_label: str = ""

    model_config = {"extra": "allow"}


class NotificationList(BaseModel):
    notifications: List[NotificationRead] = []
    unread_count: int = 0


class MarkReadResult(BaseModel):
    changed: int
    unread_count: int
