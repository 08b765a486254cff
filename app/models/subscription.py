import uuid
from tortoise import fields, models

from app.enums.subscription_status import SubscriptionStatus


class BidderSubscription(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user = fields.ForeignKeyField("models.User", related_name="subscriptions")
    plan = fields.CharField(max_length=64, default="bidder")
    status = fields.CharEnumField(SubscriptionStatus, default=SubscriptionStatus.active)
    current_period_end = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "bidder_subscriptions"
