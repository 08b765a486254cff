import uuid
from tortoise import fields, models

from app.enums.notification_type import NotificationType
from app.enums.notification_channel import NotificationChannel


class Notification(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField("models.User", related_name="notifications")

    # Notification content
    notification_type = fields.CharEnumField(NotificationType)
    title = fields.CharField(max_length=255)
    message = fields.TextField()

    # Delivery
    channel = fields.CharEnumField(NotificationChannel, default=NotificationChannel.in_app)
    is_read = fields.BooleanField(default=False)
    read_at = fields.DatetimeField(null=True)

    # Related entities
    related_auction = fields.ForeignKeyField("models.Auction", related_name="notifications", null=True)
    related_order = fields.ForeignKeyField("models.Order", related_name="notifications", null=True)

    metadata = fields.JSONField(null=True)
    action_url = fields.CharField(max_length=512, null=True)

    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "notifications"
        ordering = ["-created_at"]

    def __str__(self):
        return f"Notification {self.id} - {self.title}"
