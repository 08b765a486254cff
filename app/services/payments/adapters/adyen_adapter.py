import base64
import binascii
import hashlib
import hmac
from typing import Any, Mapping

from fastapi.responses import PlainTextResponse, Response
from loguru import logger

from app.core.config import settings
from app.core.exceptions import WebhookVerificationError, WebhookPayloadError
from app.enums.payment_processor import PaymentProcessor
from app.enums.settlement_event_kind import SettlementEventKind as Kind
from app.services.payments.adapters.base import ProcessorAdapter, require, minor_units
from app.services.payments.events import SettlementEvent

# eventCode -> (kind when success, kind when not success)
EVENT_KINDS = {
    "AUTHORISATION": (Kind.authorized, Kind.capture_failed),
    "CAPTURE": (Kind.captured, Kind.capture_failed),
    "CAPTURE_FAILED": (Kind.capture_failed, Kind.capture_failed),
    "REFUND": (Kind.refunded, Kind.refund_failed),
    "CANCEL_OR_REFUND": (Kind.refunded, Kind.refund_failed),
    "REFUND_FAILED": (Kind.refund_failed, Kind.refund_failed),
    "CHARGEBACK": (Kind.chargeback_opened, Kind.chargeback_opened),
    "NOTIFICATION_OF_CHARGEBACK": (Kind.chargeback_opened, Kind.chargeback_opened),
    "PAYOUT_THIRDPARTY": (Kind.payout_completed, Kind.payout_failed),
    "PAYOUT_DECLINE": (Kind.payout_failed, Kind.payout_failed),
    "PAYOUT_EXPIRE": (Kind.payout_failed, Kind.payout_failed),
}

SIGNED_FIELDS = (
    "pspReference",
    "originalReference",
    "merchantAccountCode",
    "merchantReference",
    "value",
    "currency",
    "eventCode",
    "success",
)


def signing_string(item: dict[str, Any]) -> str:
    amount = item.get("amount")
    if not isinstance(amount, dict):
        amount = {}
    values = {**item, "value": amount.get("value"), "currency": amount.get("currency")}
    return ":".join("" if values.get(field) is None else str(values[field]) for field in SIGNED_FIELDS)


def sign(item: dict[str, Any], hex_key: str) -> str:
    digest = hmac.new(bytes.fromhex(hex_key), signing_string(item).encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _items(payload: dict[str, Any]) -> list[dict[str, Any]]:
    items = payload.get("notificationItems")
    if not isinstance(items, list):
        raise WebhookPayloadError("adyen payload is missing notificationItems")
    result = []
    for entry in items:
        item = entry.get("NotificationRequestItem") if isinstance(entry, dict) else None
        if not isinstance(item, dict):
            raise WebhookPayloadError("adyen notification item is malformed")
        result.append(item)
    return result


class AdyenAdapter(ProcessorAdapter):
    processor = PaymentProcessor.adyen

    async def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        key = settings.ADYEN_WEBHOOK_HMAC_KEY
        if not key:
            logger.warning("ADYEN_WEBHOOK_HMAC_KEY is not set, accepting unsigned Adyen webhook")
            return
        # Adyen signs each item rather than the request.
        for item in _items(self.parse(body)):
            additional = item.get("additionalData")
            received = additional.get("hmacSignature") if isinstance(additional, dict) else None
            if not received:
                raise WebhookVerificationError(f"Adyen item {item.get('pspReference')} is not signed")
            try:
                expected = sign(item, key)
            except (ValueError, binascii.Error) as e:
                raise WebhookVerificationError(f"ADYEN_WEBHOOK_HMAC_KEY is not valid hex: {e}") from e
            if not hmac.compare_digest(expected, received):
                raise WebhookVerificationError(f"Invalid HMAC for Adyen item {item.get('pspReference')}")

    def normalize(self, payload: dict[str, Any]) -> list[SettlementEvent]:
        events = []
        for item in _items(payload):
            event_code = require(item.get("eventCode"), "eventCode", self.processor)
            psp_reference = require(item.get("pspReference"), "pspReference", self.processor)

            kinds = EVENT_KINDS.get(event_code)
            if kinds is None:
                logger.info(f"Ignoring Adyen event {event_code} ({psp_reference})")
                continue

            success = str(item.get("success", "")).lower() == "true"
            kind = kinds[0] if success else kinds[1]
            amount = item.get("amount") or {}

            events.append(SettlementEvent(
                processor=self.processor,
                idempotency_key=psp_reference,
                kind=kind,
                resource_id=item.get("originalReference") or psp_reference,
                event_type=event_code,
                order_reference=item.get("merchantReference"),
                capture_id=psp_reference if event_code == "CAPTURE" else None,
                refund_id=psp_reference if kind in (Kind.refunded, Kind.refund_failed) else None,
                amount_minor=minor_units(amount.get("value")),
                reason=item.get("reason"),
                metadata={"success": success, "merchant_account": item.get("merchantAccountCode")},
                payload=item,
            ))
        return events

    def acknowledge(self) -> Response:
        return PlainTextResponse("[accepted]")
