import uuid
from tortoise import fields, models

from app.enums.alert_type import AlertType


class OperationalAlert(models.Model):
    """Something an operator has to look at: illegal transitions, unmatched
    webhooks, failed payouts."""
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    alert_type = fields.CharEnumField(AlertType)
    message = fields.TextField()
    processor = fields.CharField(max_length=32, null=True)
    resource_id = fields.CharField(max_length=255, null=True)
    order = fields.ForeignKeyField("models.Order", related_name="alerts", null=True)
    details = fields.JSONField(null=True)
    resolved = fields.BooleanField(default=False)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "operational_alerts"
        ordering = ["-created_at"]
