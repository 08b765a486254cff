import uuid
from tortoise import fields, models

from app.enums.payout_status import PayoutStatus
from app.enums.payment_processor import PaymentProcessor


class SellerPayout(models.Model):
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    order = fields.ForeignKeyField("models.Order", related_name="payouts")
    seller = fields.ForeignKeyField("models.User", related_name="payouts")
    amount_pence = fields.BigIntField()
    currency = fields.CharField(max_length=3, default="GBP")
    status = fields.CharEnumField(PayoutStatus, default=PayoutStatus.pending)

    processor = fields.CharEnumField(PaymentProcessor)
    processor_payout_id = fields.CharField(max_length=255, null=True)

    needs_review = fields.BooleanField(default=False)
    failure_reason = fields.TextField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)
    completed_at = fields.DatetimeField(null=True)

    class Meta:
        table = "seller_payouts"
        unique_together = (("processor", "processor_payout_id"),)

    def __str__(self):
        return f"Payout {self.id} - {self.amount_pence} ({self.status})"
