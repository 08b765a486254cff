"""Applies normalized settlement events to orders and payouts.

Each event is handled in one transaction: the target row is locked first,
then the idempotency ledger is consulted, then the transition is applied and
recorded. Notifications and alerts are collected while the transaction is
open and only run after it commits.
"""
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional
from uuid import UUID

from loguru import logger
from pydantic import BaseModel
from tortoise.exceptions import IntegrityError
from tortoise.expressions import Q
from tortoise.transactions import in_transaction

from app.calculator.money import from_pence
from app.enums.alert_type import AlertType
from app.enums.event_outcome import EventOutcome
from app.enums.notification_type import NotificationType
from app.enums.order_status import OrderStatus
from app.enums.payout_status import PayoutStatus
from app.enums.settlement_event_kind import SettlementEventKind as Kind
from app.models.listing import Listing
from app.models.order import Order
from app.models.payout import SellerPayout
from app.models.settlement_event import SettlementEventLog
from app.services.communication.alert_service import AlertService
from app.services.communication.notification_service import NotificationService
from app.services.payments.events import SettlementEvent

Effect = Callable[[], Awaitable[object]]

POST_PAYMENT = (OrderStatus.paid, OrderStatus.shipped, OrderStatus.delivered)
PRE_PAYMENT = (OrderStatus.created, OrderStatus.awaiting_payment)

ORDER_TRANSITIONS: dict[tuple[OrderStatus, Kind], OrderStatus] = {}
for _state in PRE_PAYMENT:
    ORDER_TRANSITIONS[(_state, Kind.authorized)] = OrderStatus.paid
    ORDER_TRANSITIONS[(_state, Kind.capture_failed)] = OrderStatus.payment_failed
for _state in POST_PAYMENT:
    ORDER_TRANSITIONS[(_state, Kind.captured)] = _state
    ORDER_TRANSITIONS[(_state, Kind.refunded)] = OrderStatus.refunded
    ORDER_TRANSITIONS[(_state, Kind.refund_failed)] = _state
    ORDER_TRANSITIONS[(_state, Kind.chargeback_opened)] = OrderStatus.disputed
# Authorization went through but the capture did not.
ORDER_TRANSITIONS[(OrderStatus.paid, Kind.capture_failed)] = OrderStatus.payment_failed
# Refund first, chargeback later.
ORDER_TRANSITIONS[(OrderStatus.refunded, Kind.chargeback_opened)] = OrderStatus.disputed

PAYOUT_TRANSITIONS: dict[tuple[PayoutStatus, Kind], PayoutStatus] = {
    (PayoutStatus.pending, Kind.payout_completed): PayoutStatus.completed,
    (PayoutStatus.processing, Kind.payout_completed): PayoutStatus.completed,
    (PayoutStatus.pending, Kind.payout_failed): PayoutStatus.failed,
    (PayoutStatus.processing, Kind.payout_failed): PayoutStatus.failed,
}


class SettlementResult(BaseModel):
    outcome: EventOutcome
    kind: Kind
    idempotency_key: str
    order_id: Optional[UUID] = None
    payout_id: Optional[UUID] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None


class OrderStateMachine:
    @staticmethod
    async def apply(event: SettlementEvent) -> SettlementResult:
        effects: list[Effect] = []
        try:
            async with in_transaction():
                if event.is_payout_event:
                    result = await OrderStateMachine._apply_payout_event(event, effects)
                else:
                    result = await OrderStateMachine._apply_order_event(event, effects)
        except IntegrityError:
            # A concurrent delivery of the same event committed its log row first.
            logger.info(f"Duplicate settlement event {event.describe()} (concurrent delivery)")
            return SettlementResult(outcome=EventOutcome.duplicate, kind=event.kind, idempotency_key=event.idempotency_key)

        await OrderStateMachine._run_effects(event, effects)
        return result

    @staticmethod
    async def _run_effects(event: SettlementEvent, effects: list[Effect]):
        for effect in effects:
            try:
                await effect()
            except Exception as e:
                logger.error(f"Post-commit effect failed for {event.describe()}: {e}")

    @staticmethod
    async def _already_processed(event: SettlementEvent) -> bool:
        return await SettlementEventLog.exists(
            processor=event.processor,
            idempotency_key=event.idempotency_key,
            kind=event.kind,
        )

    @staticmethod
    async def _record(
        event: SettlementEvent,
        outcome: EventOutcome,
        order: Optional[Order] = None,
        payout: Optional[SellerPayout] = None,
        detail: Optional[str] = None,
    ):
        await SettlementEventLog.create(
            processor=event.processor,
            idempotency_key=event.idempotency_key,
            kind=event.kind,
            resource_id=event.resource_id,
            order=order,
            payout=payout,
            outcome=outcome,
            detail=detail,
            payload=event.payload,
        )

    @staticmethod
    async def _find_order(event: SettlementEvent) -> Optional[Order]:
        resource = event.resource_id
        order = await Order.filter(
            Q(processor_transaction_id=resource) | Q(processor_capture_id=resource) | Q(refund_transaction_id=resource),
            processor=event.processor,
        ).select_for_update().first()
        if order is None and event.order_reference:
            try:
                order_id = UUID(event.order_reference)
            except ValueError:
                return None
            order = await Order.filter(id=order_id, processor=event.processor).select_for_update().first()
        return order

    @staticmethod
    def _unmatched(event: SettlementEvent, effects: list[Effect], target: str) -> SettlementResult:
        logger.warning(f"No {target} matches settlement event {event.describe()}")
        effects.append(lambda: AlertService.raise_alert(
            AlertType.unmatched_event,
            f"No {target} matches {event.processor.value} {event.event_type} for {event.resource_id}",
            processor=event.processor.value,
            resource_id=event.resource_id,
            details={"idempotency_key": event.idempotency_key, "kind": event.kind.value},
        ))
        return SettlementResult(outcome=EventOutcome.unmatched, kind=event.kind, idempotency_key=event.idempotency_key)

    @staticmethod
    async def _illegal(
        event: SettlementEvent,
        effects: list[Effect],
        current: str,
        order: Optional[Order] = None,
        payout: Optional[SellerPayout] = None,
    ) -> SettlementResult:
        target = f"order {order.id}" if order else f"payout {payout.id}"
        message = f"IllegalTransition: {target} is {current}, cannot apply {event.kind.value} ({event.describe()})"
        logger.error(message)
        await OrderStateMachine._record(event, EventOutcome.illegal, order=order, payout=payout, detail=message)
        effects.append(lambda: AlertService.raise_alert(
            AlertType.illegal_transition,
            message,
            processor=event.processor.value,
            resource_id=event.resource_id,
            order=order,
            details={"idempotency_key": event.idempotency_key, "kind": event.kind.value, "state": current},
        ))
        return SettlementResult(
            outcome=EventOutcome.illegal,
            kind=event.kind,
            idempotency_key=event.idempotency_key,
            order_id=order.id if order else None,
            payout_id=payout.id if payout else None,
            previous_status=current,
            new_status=current,
        )

    @staticmethod
    async def _apply_order_event(event: SettlementEvent, effects: list[Effect]) -> SettlementResult:
        order = await OrderStateMachine._find_order(event)
        if order is None:
            return OrderStateMachine._unmatched(event, effects, "order")

        if await OrderStateMachine._already_processed(event):
            logger.info(f"Settlement event already processed: {event.describe()}")
            return SettlementResult(
                outcome=EventOutcome.duplicate,
                kind=event.kind,
                idempotency_key=event.idempotency_key,
                order_id=order.id,
                previous_status=order.status.value,
                new_status=order.status.value,
            )

        previous = order.status
        next_status = ORDER_TRANSITIONS.get((previous, event.kind))
        if next_status is None:
            return await OrderStateMachine._illegal(event, effects, previous.value, order=order)

        now = datetime.now(timezone.utc)
        handler = ORDER_HANDLERS[event.kind]
        await handler(order, event, previous, now, effects)
        order.status = next_status
        await order.save()
        await OrderStateMachine._record(event, EventOutcome.applied, order=order)

        logger.info(f"Order {order.id}: {previous.value} -> {next_status.value} on {event.describe()}")
        return SettlementResult(
            outcome=EventOutcome.applied,
            kind=event.kind,
            idempotency_key=event.idempotency_key,
            order_id=order.id,
            previous_status=previous.value,
            new_status=next_status.value,
        )

    @staticmethod
    async def _apply_payout_event(event: SettlementEvent, effects: list[Effect]) -> SettlementResult:
        payout = await SellerPayout.filter(
            processor=event.processor,
            processor_payout_id=event.resource_id,
        ).select_for_update().first()
        if payout is None:
            return OrderStateMachine._unmatched(event, effects, "payout")

        if await OrderStateMachine._already_processed(event):
            logger.info(f"Settlement event already processed: {event.describe()}")
            return SettlementResult(
                outcome=EventOutcome.duplicate,
                kind=event.kind,
                idempotency_key=event.idempotency_key,
                payout_id=payout.id,
                order_id=payout.order_id,
                previous_status=payout.status.value,
                new_status=payout.status.value,
            )

        previous = payout.status
        next_status = PAYOUT_TRANSITIONS.get((previous, event.kind))
        if next_status is None:
            return await OrderStateMachine._illegal(event, effects, previous.value, payout=payout)

        payout.status = next_status
        amount = from_pence(payout.amount_pence)
        if next_status == PayoutStatus.completed:
            payout.completed_at = datetime.now(timezone.utc)
            effects.append(lambda: NotificationService.dispatch(
                payout.seller_id,
                NotificationType.payout_completed,
                title="Funds transferred",
                message=f"£{amount} has been transferred to your account.",
                metadata={"payout_id": str(payout.id), "amount": str(amount)},
            ))
        else:
            payout.needs_review = True
            payout.failure_reason = event.reason
            effects.append(lambda: AlertService.raise_alert(
                AlertType.payout_failed,
                f"Payout {payout.id} of £{amount} failed: {event.reason or 'no reason given'}",
                processor=event.processor.value,
                resource_id=event.resource_id,
                details={"payout_id": str(payout.id), "order_id": str(payout.order_id)},
            ))
        await payout.save()
        await OrderStateMachine._record(event, EventOutcome.applied, payout=payout)

        logger.info(f"Payout {payout.id}: {previous.value} -> {next_status.value} on {event.describe()}")
        return SettlementResult(
            outcome=EventOutcome.applied,
            kind=event.kind,
            idempotency_key=event.idempotency_key,
            payout_id=payout.id,
            order_id=payout.order_id,
            previous_status=previous.value,
            new_status=next_status.value,
        )


async def _set_listing(order: Order, sold: bool):
    listing = await Listing.filter(id=order.listing_id).select_for_update().first()
    if sold:
        listing.mark_sold()
    else:
        listing.release()
    await listing.save()


async def _on_authorized(order: Order, event: SettlementEvent, previous: OrderStatus, now: datetime, effects: list[Effect]):
    order.paid_at = now
    order.processor_status = "authorized"
    order.processor_error = None
    if event.capture_id:
        order.processor_capture_id = event.capture_id
    await _set_listing(order, sold=True)

    amount = from_pence(order.gross_pence)
    effects.append(lambda: NotificationService.dispatch(
        order.seller_id,
        NotificationType.payment_received,
        title="Payment received",
        message=f"Payment of £{amount} was received for your listing.",
        related_order=order,
    ))


async def _on_capture_failed(order: Order, event: SettlementEvent, previous: OrderStatus, now: datetime, effects: list[Effect]):
    order.processor_status = "capture_failed"
    order.processor_error = event.reason
    await _set_listing(order, sold=False)

    effects.append(lambda: NotificationService.dispatch(
        order.buyer_id,
        NotificationType.payment_failed,
        title="Payment failed",
        message=f"Your payment could not be completed{': ' + event.reason if event.reason else ''}.",
        related_order=order,
    ))
    if previous == OrderStatus.paid:
        order.payout_frozen = True
        effects.append(lambda: NotificationService.dispatch(
            order.seller_id,
            NotificationType.payment_failed,
            title="Payment capture failed",
            message="The buyer's payment was authorized but could not be captured. Your listing is back on sale.",
            related_order=order,
        ))


async def _on_captured(order: Order, event: SettlementEvent, previous: OrderStatus, now: datetime, effects: list[Effect]):
    order.processor_status = "captured"
    if event.capture_id:
        order.processor_capture_id = event.capture_id


async def _on_refunded(order: Order, event: SettlementEvent, previous: OrderStatus, now: datetime, effects: list[Effect]):
    order.refund_status = "succeeded"
    order.refunded_at = now
    order.payout_frozen = True
    if event.refund_id:
        order.refund_transaction_id = event.refund_id
    if event.amount_minor:
        order.refund_amount_pence = event.amount_minor
    elif order.refund_amount_pence is None:
        order.refund_amount_pence = order.total_charged_pence
    # The item goes back on sale once the buyer has their money back.
    await _set_listing(order, sold=False)

    amount = from_pence(event.amount_minor if event.amount_minor else order.total_charged_pence)
    effects.append(lambda: NotificationService.dispatch(
        order.buyer_id,
        NotificationType.refund_issued,
        title="Refund issued",
        message=f"A refund of £{amount} has been issued for your order.",
        related_order=order,
        metadata={"amount": str(amount)},
    ))


async def _on_refund_failed(order: Order, event: SettlementEvent, previous: OrderStatus, now: datetime, effects: list[Effect]):
    order.refund_status = "failed"
    if event.refund_id:
        order.refund_transaction_id = event.refund_id

    effects.append(lambda: AlertService.raise_alert(
        AlertType.refund_failed,
        f"Refund for order {order.id} failed: {event.reason or 'no reason given'}",
        processor=event.processor.value,
        resource_id=event.resource_id,
        order=order,
    ))


async def _on_chargeback(order: Order, event: SettlementEvent, previous: OrderStatus, now: datetime, effects: list[Effect]):
    order.dispute_reason = event.reason
    order.dispute_opened_at = now
    order.payout_frozen = True

    effects.append(lambda: AlertService.raise_alert(
        AlertType.chargeback_opened,
        f"Chargeback opened on order {order.id}: {event.reason or 'no reason given'}",
        processor=event.processor.value,
        resource_id=event.resource_id,
        order=order,
        details={"previous_status": previous.value},
    ))


ORDER_HANDLERS = {
    Kind.authorized: _on_authorized,
    Kind.capture_failed: _on_capture_failed,
    Kind.captured: _on_captured,
    Kind.refunded: _on_refunded,
    Kind.refund_failed: _on_refund_failed,
    Kind.chargeback_opened: _on_chargeback,
}
