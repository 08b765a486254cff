from uuid import UUID
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, field_serializer

from app.enums.notification_type import NotificationType
from app.enums.notification_channel import NotificationChannel


class NotificationResponse(BaseModel):
    """Schema for notification response"""
    id: UUID
    notification_type: NotificationType
    title: str
    message: str
    channel: NotificationChannel
    is_read: bool
    read_at: Optional[datetime]
    related_auction_id: Optional[UUID] = None
    related_order_id: Optional[UUID] = None
    metadata: Optional[dict]
    action_url: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("id")
    def serialize_id(self, v: UUID, _info):
        return str(v)

    @field_serializer("related_auction_id", "related_order_id")
    def serialize_related_id(self, v: Optional[UUID], _info):
        return str(v) if v else None


class NotificationListResponse(BaseModel):
    """Paginated notifications for one user, newest first"""
    total: int
    unread_count: int
    page: int
    page_size: int
    notifications: list[NotificationResponse]
