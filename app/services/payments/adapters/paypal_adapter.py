from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

import httpx
from loguru import logger

from app.calculator.money import to_pence
from app.core.config import settings
from app.core.exceptions import WebhookVerificationError
from app.enums.payment_processor import PaymentProcessor
from app.enums.settlement_event_kind import SettlementEventKind as Kind
from app.services.payments.adapters.base import ProcessorAdapter, require
from app.services.payments.events import SettlementEvent

EVENT_KINDS = {
    "CHECKOUT.ORDER.APPROVED": Kind.authorized,
    "PAYMENT.CAPTURE.COMPLETED": Kind.captured,
    "PAYMENT.CAPTURE.DENIED": Kind.capture_failed,
    "PAYMENT.CAPTURE.DECLINED": Kind.capture_failed,
    "PAYMENT.CAPTURE.REFUNDED": Kind.refunded,
    "CUSTOMER.DISPUTE.CREATED": Kind.chargeback_opened,
    "PAYMENT.PAYOUTS-ITEM.SUCCEEDED": Kind.payout_completed,
    "PAYMENT.PAYOUTS-ITEM.FAILED": Kind.payout_failed,
    "PAYMENT.PAYOUTS-ITEM.DENIED": Kind.payout_failed,
    "PAYMENT.PAYOUTS-ITEM.RETURNED": Kind.payout_failed,
}

TRANSMISSION_HEADERS = {
    "auth_algo": "paypal-auth-algo",
    "cert_url": "paypal-cert-url",
    "transmission_id": "paypal-transmission-id",
    "transmission_sig": "paypal-transmission-sig",
    "transmission_time": "paypal-transmission-time",
}


def _amount_pence(amount: dict | None) -> int | None:
    if not amount or amount.get("value") is None:
        return None
    try:
        return to_pence(Decimal(str(amount["value"])))
    except InvalidOperation:
        return None


class PayPalAdapter(ProcessorAdapter):
    processor = PaymentProcessor.paypal

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    async def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        if not settings.PAYPAL_WEBHOOK_ID:
            logger.warning("PAYPAL_WEBHOOK_ID is not set, accepting unverified PayPal webhook")
            return

        request = {}
        for field, header in TRANSMISSION_HEADERS.items():
            value = headers.get(header)
            if not value:
                raise WebhookVerificationError(f"Missing {header} header")
            request[field] = value
        request["webhook_id"] = settings.PAYPAL_WEBHOOK_ID
        request["webhook_event"] = self.parse(body)

        try:
            async with httpx.AsyncClient(base_url=settings.PAYPAL_API_BASE, transport=self._transport, timeout=10.0) as client:
                token = await client.post(
                    "/v1/oauth2/token",
                    data={"grant_type": "client_credentials"},
                    auth=(settings.PAYPAL_CLIENT_ID or "", settings.PAYPAL_CLIENT_SECRET or ""),
                )
                token.raise_for_status()
                response = await client.post(
                    "/v1/notifications/verify-webhook-signature",
                    json=request,
                    headers={"Authorization": f"Bearer {token.json()['access_token']}"},
                )
                response.raise_for_status()
        except (httpx.HTTPError, KeyError, ValueError) as e:
            raise WebhookVerificationError(f"PayPal signature verification failed: {e}") from e

        if response.json().get("verification_status") != "SUCCESS":
            raise WebhookVerificationError("PayPal rejected the webhook signature")

    def normalize(self, payload: dict[str, Any]) -> list[SettlementEvent]:
        event_id = require(payload.get("id"), "id", self.processor)
        event_type = require(payload.get("event_type"), "event_type", self.processor)
        resource = payload.get("resource") or {}

        kind = EVENT_KINDS.get(event_type)
        if kind is None:
            logger.info(f"Ignoring PayPal event {event_type} ({event_id})")
            return []

        related = (resource.get("supplementary_data") or {}).get("related_ids") or {}
        capture_id = None
        refund_id = None
        reason = None

        if kind == Kind.authorized:
            resource_id = resource.get("id")
        elif kind in (Kind.captured, Kind.capture_failed):
            capture_id = resource.get("id")
            resource_id = related.get("order_id") or capture_id
            reason = (resource.get("status_details") or {}).get("reason")
        elif kind == Kind.refunded:
            refund_id = resource.get("id")
            capture_id = related.get("capture_id")
            resource_id = related.get("order_id") or capture_id or refund_id
        elif kind == Kind.chargeback_opened:
            transactions = resource.get("disputed_transactions") or [{}]
            capture_id = transactions[0].get("seller_transaction_id")
            resource_id = capture_id or resource.get("dispute_id")
            reason = resource.get("reason")
        else:
            resource_id = resource.get("payout_item_id") or resource.get("payout_batch_id")
            errors = resource.get("errors") or {}
            reason = errors.get("message") or resource.get("transaction_status")

        return [SettlementEvent(
            processor=self.processor,
            idempotency_key=event_id,
            kind=kind,
            resource_id=require(resource_id, "resource id", self.processor),
            event_type=event_type,
            order_reference=resource.get("custom_id") or resource.get("invoice_id"),
            capture_id=capture_id,
            refund_id=refund_id,
            amount_minor=_amount_pence(resource.get("amount")),
            reason=reason,
            payload=payload,
        )]
