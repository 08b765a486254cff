import uuid
from tortoise import fields, models

from app.enums.order_status import OrderStatus
from app.enums.payment_processor import PaymentProcessor


class Order(models.Model):
    """One purchase attempt against one listing.

    Amounts are computed once at creation from ``fee_snapshot`` and never
    recomputed. Status changes go through the settlement state machine or
    the fulfilment operations in ``OrderService``.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    listing = fields.ForeignKeyField("models.Listing", related_name="orders")
    buyer = fields.ForeignKeyField("models.User", related_name="purchases")
    seller = fields.ForeignKeyField("models.User", related_name="sales")
    auction = fields.ForeignKeyField("models.Auction", related_name="orders", null=True)

    # Amounts (pence)
    gross_pence = fields.BigIntField()
    buyer_fee_pence = fields.BigIntField()
    seller_commission_pence = fields.BigIntField()
    payout_pence = fields.BigIntField()
    total_charged_pence = fields.BigIntField()
    currency = fields.CharField(max_length=3, default="GBP")
    fee_snapshot = fields.JSONField()

    status = fields.CharEnumField(OrderStatus, default=OrderStatus.created)

    # Processor
    processor = fields.CharEnumField(PaymentProcessor, null=True)
    processor_transaction_id = fields.CharField(max_length=255, null=True)
    processor_capture_id = fields.CharField(max_length=255, null=True)
    processor_status = fields.CharField(max_length=64, null=True)
    processor_error = fields.TextField(null=True)

    # Refund / dispute
    refund_transaction_id = fields.CharField(max_length=255, null=True)
    refund_status = fields.CharField(max_length=32, null=True)
    refund_amount_pence = fields.BigIntField(null=True)
    refunded_at = fields.DatetimeField(null=True)
    dispute_reason = fields.TextField(null=True)
    dispute_opened_at = fields.DatetimeField(null=True)
    payout_frozen = fields.BooleanField(default=False)

    # Fulfilment
    tracking_number = fields.CharField(max_length=128, null=True)
    carrier = fields.CharField(max_length=64, null=True)

    # Timestamps
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)
    paid_at = fields.DatetimeField(null=True)
    shipped_at = fields.DatetimeField(null=True)
    delivered_at = fields.DatetimeField(null=True)
    cancelled_at = fields.DatetimeField(null=True)

    class Meta:
        table = "orders"
        unique_together = (("processor", "processor_transaction_id"),)

    def __str__(self):
        return f"Order {self.id} ({self.status})"
