import hashlib
import hmac
import json
import time
import pytest
from httpx import AsyncClient

from app.core.config import settings
from app.enums.alert_type import AlertType
from app.enums.order_status import OrderStatus
from app.enums.payment_processor import PaymentProcessor
from app.models.alert import OperationalAlert
from app.models.listing import Listing
from app.models.order import Order
from app.models.settlement_event import SettlementEventLog
from app.models.user import User
from app.services.finance.order_service import OrderService


def stripe_body(event_id: str, event_type: str, obj: dict) -> bytes:
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": obj}}).encode("utf-8")


@pytest.fixture
async def stripe_order(listing: Listing, buyer: User, fees) -> Order:
    return await OrderService.create_order(listing.id, buyer.id, PaymentProcessor.stripe, "pi_1")


@pytest.mark.asyncio
async def test_stripe_webhook_marks_order_paid(client: AsyncClient, stripe_order: Order):
    body = stripe_body("evt_1", "payment_intent.succeeded", {"id": "pi_1", "amount_received": 10200})

    response = await client.post("/webhooks/stripe", content=body)

    assert response.status_code == 200
    assert response.json() == {"received": True}
    order = await Order.get(id=stripe_order.id)
    assert order.status == OrderStatus.paid


@pytest.mark.asyncio
async def test_duplicate_delivery_acknowledged(client: AsyncClient, stripe_order: Order):
    body = stripe_body("evt_1", "payment_intent.succeeded", {"id": "pi_1"})

    first = await client.post("/webhooks/stripe", content=body)
    second = await client.post("/webhooks/stripe", content=body)

    assert first.status_code == 200
    assert second.status_code == 200
    assert await SettlementEventLog.filter(idempotency_key="evt_1").count() == 1


@pytest.mark.asyncio
async def test_illegal_transition_still_acknowledged(client: AsyncClient, stripe_order: Order):
    body = stripe_body("evt_1", "charge.refunded", {"id": "ch_1", "payment_intent": "pi_1"})

    response = await client.post("/webhooks/stripe", content=body)

    assert response.status_code == 200
    order = await Order.get(id=stripe_order.id)
    assert order.status == OrderStatus.awaiting_payment
    assert await OperationalAlert.filter(alert_type=AlertType.illegal_transition).count() == 1


@pytest.mark.asyncio
async def test_unrecognized_event_acknowledged(client: AsyncClient):
    body = stripe_body("evt_1", "customer.created", {"id": "cus_1"})

    response = await client.post("/webhooks/stripe", content=body)

    assert response.status_code == 200
    assert await SettlementEventLog.all().count() == 0


@pytest.mark.asyncio
async def test_invalid_json_rejected(client: AsyncClient):
    response = await client.post("/webhooks/stripe", content=b"not json")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_missing_fields_rejected(client: AsyncClient):
    response = await client.post("/webhooks/mangopay", content=b'{"EventType": "PAYIN_NORMAL_SUCCEEDED"}')

    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"id": "evt_1", "type": "payment_intent.succeeded", "data": "oops"},
    {"id": 123, "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}},
    {"id": "evt_1", "type": "payment_intent.succeeded", "data": {"object": ["pi_1"]}},
    ["evt_1"],
])
async def test_stripe_wrong_shape_rejected(client: AsyncClient, stripe_order: Order, body):
    response = await client.post("/webhooks/stripe", json=body)

    assert response.status_code == 400
    order = await Order.get(id=stripe_order.id)
    assert order.status == OrderStatus.awaiting_payment


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    {"notificationItems": ["oops"]},
    {"notificationItems": [{"NotificationRequestItem": "oops"}]},
    {"notificationItems": "oops"},
])
async def test_adyen_wrong_shape_rejected(client: AsyncClient, body):
    response = await client.post("/webhooks/adyen", json=body)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_bad_signature_rejected(client: AsyncClient, stripe_order: Order, monkeypatch):
    monkeypatch.setattr(settings, "STRIPE_WEBHOOK_SECRET", "whsec_test")
    body = stripe_body("evt_1", "payment_intent.succeeded", {"id": "pi_1"})
    timestamp = int(time.time())
    signature = hmac.new(b"whsec_wrong", f"{timestamp}.".encode("utf-8") + body, hashlib.sha256).hexdigest()

    response = await client.post(
        "/webhooks/stripe",
        content=body,
        headers={"Stripe-Signature": f"t={timestamp},v1={signature}"}
    )

    assert response.status_code == 400
    order = await Order.get(id=stripe_order.id)
    assert order.status == OrderStatus.awaiting_payment


@pytest.mark.asyncio
async def test_unknown_processor_returns_404(client: AsyncClient):
    response = await client.post("/webhooks/worldpay", content=b"{}")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_mangopay_payin_marks_paid(client: AsyncClient, listing: Listing, buyer: User, fees):
    order = await OrderService.create_order(listing.id, buyer.id, PaymentProcessor.mangopay, "7001")

    paid = await client.post(
        "/webhooks/mangopay",
        content=json.dumps({"EventType": "PAYIN_NORMAL_SUCCEEDED", "RessourceId": "7001"}).encode("utf-8")
    )
    assert paid.status_code == 200

    order = await Order.get(id=order.id)
    assert order.status == OrderStatus.paid


def mangopay_body(event_type: str, resource_id: str) -> bytes:
    return json.dumps({"EventType": event_type, "RessourceId": resource_id, "Date": 1700000000}).encode("utf-8")


@pytest.mark.asyncio
async def test_mangopay_refund_matches_requested_refund(client: AsyncClient, listing: Listing, buyer: User, fees):
    order = await OrderService.create_order(listing.id, buyer.id, PaymentProcessor.mangopay, "7001")
    paid = await client.post("/webhooks/mangopay", content=mangopay_body("PAYIN_NORMAL_SUCCEEDED", "7001"))
    assert paid.status_code == 200

    requested = await client.post(f"/orders/{order.id}/refund", json={"processorRefundId": "9001"})
    assert requested.status_code == 200
    assert requested.json()["refundStatus"] == "processing"
    assert requested.json()["status"] == "paid"

    refunded = await client.post("/webhooks/mangopay", content=mangopay_body("REFUND_NORMAL_SUCCEEDED", "9001"))

    assert refunded.status_code == 200
    order = await Order.get(id=order.id)
    assert order.status == OrderStatus.refunded
    assert order.refund_status == "succeeded"
    assert order.refund_transaction_id == "9001"
    assert order.refund_amount_pence == 10200
    assert order.payout_frozen is True
    assert await OperationalAlert.filter(alert_type=AlertType.unmatched_event).count() == 0


@pytest.mark.asyncio
async def test_mangopay_refund_failure_keeps_order_paid(client: AsyncClient, listing: Listing, buyer: User, fees):
    order = await OrderService.create_order(listing.id, buyer.id, PaymentProcessor.mangopay, "7001")
    await client.post("/webhooks/mangopay", content=mangopay_body("PAYIN_NORMAL_SUCCEEDED", "7001"))
    await OrderService.request_refund(order.id, "9001")

    response = await client.post("/webhooks/mangopay", content=mangopay_body("REFUND_NORMAL_FAILED", "9001"))

    assert response.status_code == 200
    order = await Order.get(id=order.id)
    assert order.status == OrderStatus.paid
    assert order.refund_status == "failed"


@pytest.mark.asyncio
async def test_mangopay_refund_without_request_is_unmatched(client: AsyncClient, listing: Listing, buyer: User, fees):
    order = await OrderService.create_order(listing.id, buyer.id, PaymentProcessor.mangopay, "7001")
    await client.post("/webhooks/mangopay", content=mangopay_body("PAYIN_NORMAL_SUCCEEDED", "7001"))

    response = await client.post("/webhooks/mangopay", content=mangopay_body("REFUND_NORMAL_SUCCEEDED", "9001"))

    assert response.status_code == 200
    order = await Order.get(id=order.id)
    assert order.status == OrderStatus.paid
    assert await OperationalAlert.filter(alert_type=AlertType.unmatched_event).count() == 1


@pytest.mark.asyncio
async def test_adyen_acknowledges_with_accepted(client: AsyncClient, listing: Listing, buyer: User, fees):
    order = await OrderService.create_order(listing.id, buyer.id, PaymentProcessor.adyen, "8835511210681234")
    body = {"live": "false", "notificationItems": [{"NotificationRequestItem": {
        "pspReference": "8835511210681234",
        "merchantAccountCode": "MarketplaceGB",
        "merchantReference": str(order.id),
        "amount": {"value": 10200, "currency": "GBP"},
        "eventCode": "AUTHORISATION",
        "success": "true",
    }}]}

    response = await client.post("/webhooks/adyen", json=body)

    assert response.status_code == 200
    assert response.text == "[accepted]"
    order = await Order.get(id=order.id)
    assert order.status == OrderStatus.paid


@pytest.mark.asyncio
async def test_paypal_approval_by_order_id(client: AsyncClient, listing: Listing, buyer: User, fees):
    order = await OrderService.create_order(listing.id, buyer.id, PaymentProcessor.paypal, "5O190127TN364715T")
    body = {"id": "WH-1", "event_type": "CHECKOUT.ORDER.APPROVED", "resource": {"id": "5O190127TN364715T"}}

    response = await client.post("/webhooks/paypal", json=body)

    assert response.status_code == 200
    order = await Order.get(id=order.id)
    assert order.status == OrderStatus.paid
