import hashlib
import hmac
from typing import Any, Mapping

from loguru import logger

from app.core.config import settings
from app.core.exceptions import WebhookVerificationError
from app.enums.payment_processor import PaymentProcessor
from app.enums.settlement_event_kind import SettlementEventKind as Kind
from app.services.payments.adapters.base import ProcessorAdapter, require
from app.services.payments.events import SettlementEvent

EVENT_KINDS = {
    "PAYIN_NORMAL_SUCCEEDED": Kind.authorized,
    "PAYIN_NORMAL_FAILED": Kind.capture_failed,
    "REFUND_NORMAL_SUCCEEDED": Kind.refunded,
    "REFUND_NORMAL_FAILED": Kind.refund_failed,
    "PAYOUT_NORMAL_SUCCEEDED": Kind.payout_completed,
    "PAYOUT_NORMAL_FAILED": Kind.payout_failed,
}

SIGNATURE_HEADER = "x-mangopay-signature"


def sign(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


class MangoPayAdapter(ProcessorAdapter):
    processor = PaymentProcessor.mangopay

    async def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        secret = settings.MANGOPAY_WEBHOOK_SECRET
        if not secret:
            logger.warning("MANGOPAY_WEBHOOK_SECRET is not set, accepting unsigned MangoPay webhook")
            return
        signature = headers.get(SIGNATURE_HEADER)
        if not signature:
            raise WebhookVerificationError(f"Missing {SIGNATURE_HEADER} header")
        if not hmac.compare_digest(sign(body, secret), signature.strip().lower()):
            raise WebhookVerificationError("Invalid MangoPay signature")

    def normalize(self, payload: dict[str, Any]) -> list[SettlementEvent]:
        event_type = require(payload.get("EventType"), "EventType", self.processor)
        resource_id = require(payload.get("RessourceId"), "RessourceId", self.processor)

        kind = EVENT_KINDS.get(event_type)
        if kind is None:
            # KYC and wallet events land here.
            logger.info(f"Ignoring MangoPay event {event_type} ({resource_id})")
            return []

        refund_id = str(resource_id) if kind in (Kind.refunded, Kind.refund_failed) else None

        return [SettlementEvent(
            processor=self.processor,
            idempotency_key=str(resource_id),
            kind=kind,
            resource_id=str(resource_id),
            event_type=event_type,
            refund_id=refund_id,
            reason=payload.get("ResultMessage"),
            metadata={"date": payload.get("Date")},
            payload=payload,
        )]
