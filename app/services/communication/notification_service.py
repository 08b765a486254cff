from uuid import UUID
from typing import Optional
from datetime import datetime, timezone

from loguru import logger

from app.core.config import settings
from app.models.user import User
from app.models.role import ADMIN_ROLE
from app.models.auction import Auction
from app.models.order import Order
from app.models.notification import Notification
from app.enums.notification_type import NotificationType
from app.enums.notification_channel import NotificationChannel
from app.services.kafka.producer import get_kafka_producer


class NotificationService:
    @staticmethod
    async def create_notification(
        user: User | UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        channel: NotificationChannel = NotificationChannel.in_app,
        related_auction: Optional[Auction] = None,
        related_order: Optional[Order] = None,
        action_url: Optional[str] = None,
        metadata: Optional[dict] = None
    ) -> Notification:
        """Create a new notification"""
        user_id = user.id if isinstance(user, User) else user
        notification = await Notification.create(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            channel=channel,
            related_auction=related_auction,
            related_order=related_order,
            action_url=action_url,
            metadata=metadata
        )

        NotificationService._publish(notification)

        return notification

    @staticmethod
    async def dispatch(user: User | UUID, notification_type: NotificationType, title: str, message: str, **kwargs) -> Optional[Notification]:
        """Fire-and-forget variant of create_notification.

        Never raises: a failed notification must not undo the ledger change
        that triggered it.
        """
        try:
            return await NotificationService.create_notification(
                user, notification_type, title, message, **kwargs
            )
        except Exception as e:
            user_id = user.id if isinstance(user, User) else user
            logger.error(f"Failed to dispatch {notification_type.value} notification to {user_id}: {e}")
            return None

    @staticmethod
    async def notify_admins(notification_type: NotificationType, title: str, message: str, **kwargs) -> int:
        admins = await User.filter(roles__name=ADMIN_ROLE, is_active=True).distinct()
        sent = 0
        for admin in admins:
            if await NotificationService.dispatch(admin, notification_type, title, message, **kwargs):
                sent += 1
        return sent

    @staticmethod
    def _publish(notification: Notification):
        """Push the notification to the delivery topic when Kafka is configured"""
        producer = get_kafka_producer()
        if producer is None:
            return
        try:
            producer.produce_json(
                settings.KAFKA_TOPIC_NOTIFICATIONS,
                {
                    "id": str(notification.id),
                    "user_id": str(notification.user_id),
                    "type": notification.notification_type.value,
                    "title": notification.title,
                    "message": notification.message,
                    "metadata": notification.metadata,
                },
                key=str(notification.user_id),
            )
        except Exception as e:
            # Log error but don't fail notification creation
            logger.error(f"Error publishing notification {notification.id}: {e}")

    @staticmethod
    async def get_user_notifications(
        user_id: UUID,
        page: int = 1,
        page_size: int = 20,
        unread_only: bool = False
    ) -> tuple[list[Notification], int, int]:
        """Get user notifications with pagination"""
        query = Notification.filter(user_id=user_id)

        if unread_only:
            query = query.filter(is_read=False)

        total = await query.count()
        unread_count = await Notification.filter(user_id=user_id, is_read=False).count()

        notifications = await query.order_by("-created_at").offset((page - 1) * page_size).limit(page_size)

        return notifications, total, unread_count

    @staticmethod
    async def mark_as_read(notification_id: UUID, user_id: UUID) -> Notification:
        """Mark a notification as read"""
        notification = await Notification.get(id=notification_id, user_id=user_id)

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = datetime.now(timezone.utc)
            await notification.save()

        return notification

    @staticmethod
    async def mark_all_as_read(user_id: UUID) -> int:
        """Mark all notifications as read for a user"""
        return await Notification.filter(user_id=user_id, is_read=False).update(
            is_read=True,
            read_at=datetime.now(timezone.utc)
        )
