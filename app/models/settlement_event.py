import uuid
from tortoise import fields, models

from app.enums.payment_processor import PaymentProcessor
from app.enums.settlement_event_kind import SettlementEventKind
from app.enums.event_outcome import EventOutcome


class SettlementEventLog(models.Model):
    """Idempotency ledger: one row per applied (processor, key, kind)."""
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    processor = fields.CharEnumField(PaymentProcessor)
    idempotency_key = fields.CharField(max_length=255)
    kind = fields.CharEnumField(SettlementEventKind)
    resource_id = fields.CharField(max_length=255)

    order = fields.ForeignKeyField("models.Order", related_name="settlement_events", null=True)
    payout = fields.ForeignKeyField("models.SellerPayout", related_name="settlement_events", null=True)

    outcome = fields.CharEnumField(EventOutcome)
    detail = fields.TextField(null=True)
    payload = fields.JSONField(null=True)
    processed_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "settlement_event_log"
        unique_together = (("processor", "idempotency_key", "kind"),)
