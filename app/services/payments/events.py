from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.enums.payment_processor import PaymentProcessor
from app.enums.settlement_event_kind import SettlementEventKind


class SettlementEvent(BaseModel):
    """A processor webhook reduced to one canonical kind.

    ``resource_id`` identifies the payment (or payout) the event is about;
    ``idempotency_key`` identifies the delivery itself. ``metadata`` carries
    processor-specific extras (capture id, failure reason, carrier data)
    that never influence the transition taken.
    """
    processor: PaymentProcessor
    idempotency_key: str = Field(..., min_length=1)
    kind: SettlementEventKind
    resource_id: str = Field(..., min_length=1)
    event_type: str
    order_reference: Optional[str] = None
    capture_id: Optional[str] = None
    refund_id: Optional[str] = None
    amount_minor: Optional[int] = None
    reason: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    payload: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @property
    def is_payout_event(self) -> bool:
        return self.kind in (SettlementEventKind.payout_completed, SettlementEventKind.payout_failed)

    def describe(self) -> str:
        return f"{self.processor.value}:{self.event_type} [{self.kind.value}] key={self.idempotency_key} resource={self.resource_id}"
