from typing import Any, Mapping

import stripe
from loguru import logger

from app.core.config import settings
from app.core.exceptions import WebhookVerificationError
from app.enums.payment_processor import PaymentProcessor
from app.enums.settlement_event_kind import SettlementEventKind as Kind
from app.services.payments.adapters.base import ProcessorAdapter, require, minor_units
from app.services.payments.events import SettlementEvent

EVENT_KINDS = {
    "payment_intent.succeeded": Kind.authorized,
    "payment_intent.payment_failed": Kind.capture_failed,
    "charge.captured": Kind.captured,
    "charge.refunded": Kind.refunded,
    "charge.dispute.created": Kind.chargeback_opened,
    "payout.paid": Kind.payout_completed,
    "payout.failed": Kind.payout_failed,
}

# Refund objects only count as failures when their status says so.
REFUND_UPDATE_EVENTS = ("charge.refund.updated", "refund.updated", "refund.failed")


class StripeAdapter(ProcessorAdapter):
    processor = PaymentProcessor.stripe

    async def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        secret = settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            logger.warning("STRIPE_WEBHOOK_SECRET is not set, accepting unsigned Stripe webhook")
            return
        signature = headers.get("stripe-signature")
        if not signature:
            raise WebhookVerificationError("Missing Stripe-Signature header")
        try:
            stripe.WebhookSignature.verify_header(
                body.decode("utf-8"), signature, secret, settings.STRIPE_SIGNATURE_TOLERANCE
            )
        except (stripe.SignatureVerificationError, UnicodeDecodeError) as e:
            raise WebhookVerificationError(f"Invalid Stripe signature: {e}") from e

    def normalize(self, payload: dict[str, Any]) -> list[SettlementEvent]:
        event_id = require(payload.get("id"), "id", self.processor)
        event_type = require(payload.get("type"), "type", self.processor)
        obj = (payload.get("data") or {}).get("object") or {}

        kind = EVENT_KINDS.get(event_type)
        if kind is None and event_type in REFUND_UPDATE_EVENTS and obj.get("status") == "failed":
            kind = Kind.refund_failed
        if kind is None:
            logger.info(f"Ignoring Stripe event {event_type} ({event_id})")
            return []

        object_id = require(obj.get("id"), "data.object.id", self.processor)
        # Charges, refunds and disputes point back at the payment intent the order holds.
        resource_id = obj.get("payment_intent") or obj.get("charge") or object_id
        capture_id = None
        refund_id = None
        amount = minor_units(obj.get("amount"))
        reason = None

        if event_type == "payment_intent.succeeded":
            capture_id = obj.get("latest_charge")
            amount = minor_units(obj.get("amount_received")) or amount
        elif event_type == "payment_intent.payment_failed":
            reason = (obj.get("last_payment_error") or {}).get("message")
        elif event_type == "charge.captured":
            capture_id = object_id
            amount = minor_units(obj.get("amount_captured")) or amount
        elif event_type == "charge.refunded":
            capture_id = object_id
            refunds = (obj.get("refunds") or {}).get("data") or []
            refund_id = refunds[0].get("id") if refunds else None
            amount = minor_units(obj.get("amount_refunded")) or amount
        elif kind == Kind.refund_failed:
            refund_id = object_id
            reason = obj.get("failure_reason")
        elif event_type == "charge.dispute.created":
            reason = obj.get("reason")
        elif kind in (Kind.payout_completed, Kind.payout_failed):
            resource_id = object_id
            reason = obj.get("failure_message")

        return [SettlementEvent(
            processor=self.processor,
            idempotency_key=event_id,
            kind=kind,
            resource_id=resource_id,
            event_type=event_type,
            order_reference=(obj.get("metadata") or {}).get("order_id"),
            capture_id=capture_id,
            refund_id=refund_id,
            amount_minor=amount,
            reason=reason,
            payload=payload,
        )]
