from uuid import UUID
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from loguru import logger
from tortoise.transactions import in_transaction

from app.calculator.money import from_pence, to_pence
from app.calculator.settlement import compute_settlement
from app.core.exceptions import (
    ListingNotFound,
    ListingNotPurchasable,
    ListingAlreadyReserved,
    SelfPurchaseForbidden,
    OrderNotFound,
    DuplicateProcessorTransaction,
    IllegalTransition,
    InvalidFeeConfiguration,
    InvalidRefundAmount,
    UserNotFound,
)
from app.enums.listing_type import ListingType
from app.enums.notification_type import NotificationType
from app.enums.order_status import OrderStatus, TERMINAL_ORDER_STATUSES
from app.enums.payment_processor import PaymentProcessor
from app.models.auction import Auction
from app.models.listing import Listing
from app.models.order import Order
from app.models.user import User
from app.services.communication.notification_service import NotificationService
from app.services.finance.fee_service import FeeService


class OrderService:
    @staticmethod
    async def get_order(order_id: UUID) -> Order:
        order = await Order.get_or_none(id=order_id)
        if order is None:
            raise OrderNotFound()
        return order

    @staticmethod
    async def create_order(
        listing_id: UUID,
        buyer_id: UUID,
        processor: Optional[PaymentProcessor] = None,
        processor_transaction_id: Optional[str] = None
    ) -> Order:
        """Buy-now purchase of a fixed price listing"""
        async with in_transaction():
            listing = await Listing.filter(id=listing_id).select_for_update().first()
            if listing is None:
                raise ListingNotFound()
            if listing.listing_type == ListingType.auction:
                raise ListingNotPurchasable("Auction listings are sold through bidding")

            order = await OrderService._open_order(
                listing, buyer_id, listing.price_pence,
                processor=processor,
                processor_transaction_id=processor_transaction_id,
            )

        logger.info(f"Order {order.id} created for listing {listing_id} by {buyer_id}")
        return order

    @staticmethod
    async def create_order_from_auction(auction: Auction, buyer_id: UUID, amount_pence: int) -> Order:
        """Settles a closed auction. Must run inside the caller's transaction."""
        listing = await Listing.filter(id=auction.listing_id).select_for_update().first()
        if listing is None:
            raise ListingNotFound()
        return await OrderService._open_order(listing, buyer_id, amount_pence, auction=auction)

    @staticmethod
    async def _open_order(
        listing: Listing,
        buyer_id: UUID,
        gross_pence: int,
        auction: Optional[Auction] = None,
        processor: Optional[PaymentProcessor] = None,
        processor_transaction_id: Optional[str] = None,
    ) -> Order:
        # Caller holds the listing row lock.
        if not await User.exists(id=buyer_id):
            raise UserNotFound()
        if listing.seller_id == buyer_id:
            raise SelfPurchaseForbidden()

        has_open_order = await Order.filter(listing_id=listing.id) \
            .exclude(status__in=list(TERMINAL_ORDER_STATUSES)).exists()
        if has_open_order or listing.is_sold:
            raise ListingAlreadyReserved()
        if not listing.is_active:
            raise ListingNotPurchasable("Listing is not available")

        if processor_transaction_id:
            await OrderService._ensure_transaction_unused(processor, processor_transaction_id)

        fee_config = await FeeService.current_fee_config()
        try:
            breakdown = compute_settlement(gross_pence, fee_config)
        except ValueError as e:
            raise InvalidFeeConfiguration(f"Cannot settle {from_pence(gross_pence)}: {e}") from e

        order = await Order.create(
            listing_id=listing.id,
            buyer_id=buyer_id,
            seller_id=listing.seller_id,
            auction=auction,
            gross_pence=breakdown.gross_pence,
            buyer_fee_pence=breakdown.buyer_fee_pence,
            seller_commission_pence=breakdown.seller_commission_pence,
            payout_pence=breakdown.payout_pence,
            total_charged_pence=breakdown.total_charged_pence,
            currency=listing.currency,
            fee_snapshot=fee_config.snapshot(),
            status=OrderStatus.awaiting_payment if processor_transaction_id else OrderStatus.created,
            processor=processor,
            processor_transaction_id=processor_transaction_id,
        )

        listing.reserve()
        await listing.save()
        return order

    @staticmethod
    async def _ensure_transaction_unused(processor: PaymentProcessor, processor_transaction_id: str, order_id: Optional[UUID] = None):
        query = Order.filter(processor=processor, processor_transaction_id=processor_transaction_id)
        if order_id is not None:
            query = query.exclude(id=order_id)
        if await query.exists():
            raise DuplicateProcessorTransaction()

    @staticmethod
    async def _lock_order(order_id: UUID) -> Order:
        order = await Order.filter(id=order_id).select_for_update().first()
        if order is None:
            raise OrderNotFound()
        return order

    @staticmethod
    def _require_status(order: Order, *allowed: OrderStatus):
        if order.status not in allowed:
            raise IllegalTransition(f"Order {order.id} is {order.status.value}")

    @staticmethod
    async def attach_payment(order_id: UUID, processor: PaymentProcessor, processor_transaction_id: str) -> Order:
        """Links the processor's payment to the order and waits for settlement"""
        async with in_transaction():
            order = await OrderService._lock_order(order_id)
            if (order.status == OrderStatus.awaiting_payment
                    and order.processor == processor
                    and order.processor_transaction_id == processor_transaction_id):
                return order
            OrderService._require_status(order, OrderStatus.created)
            await OrderService._ensure_transaction_unused(processor, processor_transaction_id, order.id)

            order.processor = processor
            order.processor_transaction_id = processor_transaction_id
            order.status = OrderStatus.awaiting_payment
            await order.save()

        logger.info(f"Order {order.id} awaiting {processor.value} payment {processor_transaction_id}")
        return order

    @staticmethod
    async def mark_shipped(order_id: UUID, tracking_number: str, carrier: Optional[str] = None) -> Order:
        async with in_transaction():
            order = await OrderService._lock_order(order_id)
            OrderService._require_status(order, OrderStatus.paid)
            order.status = OrderStatus.shipped
            order.tracking_number = tracking_number
            order.carrier = carrier
            order.shipped_at = datetime.now(timezone.utc)
            await order.save()

        logger.info(f"Order {order.id} shipped ({carrier or 'carrier n/a'} {tracking_number})")
        await NotificationService.dispatch(
            order.buyer_id,
            NotificationType.order_shipped,
            title="Your order has shipped",
            message=f"Tracking number: {tracking_number}" + (f" ({carrier})" if carrier else ""),
            related_order=order,
            metadata={"tracking_number": tracking_number, "carrier": carrier},
        )
        return order

    @staticmethod
    async def mark_delivered(order_id: UUID) -> Order:
        async with in_transaction():
            order = await OrderService._lock_order(order_id)
            OrderService._require_status(order, OrderStatus.shipped)
            order.status = OrderStatus.delivered
            order.delivered_at = datetime.now(timezone.utc)
            await order.save()

        logger.info(f"Order {order.id} delivered")
        await NotificationService.dispatch(
            order.seller_id,
            NotificationType.order_delivered,
            title="Order delivered",
            message=f"Order {order.id} was delivered to the buyer.",
            related_order=order,
        )
        return order

    @staticmethod
    async def cancel_order(order_id: UUID) -> Order:
        """Cancels an unpaid order and puts the listing back on sale"""
        async with in_transaction():
            order = await OrderService._lock_order(order_id)
            OrderService._require_status(order, OrderStatus.created, OrderStatus.awaiting_payment)
            listing = await Listing.filter(id=order.listing_id).select_for_update().first()

            order.status = OrderStatus.cancelled
            order.cancelled_at = datetime.now(timezone.utc)
            await order.save()

            listing.release()
            await listing.save()

        logger.info(f"Order {order.id} cancelled, listing {order.listing_id} released")
        for user_id in (order.buyer_id, order.seller_id):
            await NotificationService.dispatch(
                user_id,
                NotificationType.order_cancelled,
                title="Order cancelled",
                message=f"Order {order.id} for £{from_pence(order.gross_pence)} was cancelled.",
                related_order=order,
            )
        return order

    @staticmethod
    async def request_refund(order_id: UUID, processor_refund_id: str, amount: Optional[Decimal] = None) -> Order:
        """Records a refund issued at the processor so its webhooks can find the order.

        The order only becomes ``refunded`` once the processor confirms it.
        ``amount`` defaults to the full amount charged.
        """
        async with in_transaction():
            order = await OrderService._lock_order(order_id)
            OrderService._require_status(order, OrderStatus.paid, OrderStatus.shipped, OrderStatus.delivered)
            if order.refund_status == "processing" and order.refund_transaction_id == processor_refund_id:
                return order
            if order.refund_status in ("processing", "succeeded"):
                raise IllegalTransition(f"Order {order.id} already has refund {order.refund_transaction_id}")

            amount_pence = to_pence(amount) if amount is not None else order.total_charged_pence
            if amount_pence <= 0 or amount_pence > order.total_charged_pence:
                raise InvalidRefundAmount()

            clash = await Order.filter(processor=order.processor, refund_transaction_id=processor_refund_id) \
                .exclude(id=order.id).exists()
            if clash:
                raise DuplicateProcessorTransaction()

            order.refund_transaction_id = processor_refund_id
            order.refund_status = "processing"
            order.refund_amount_pence = amount_pence
            await order.save()

        logger.info(f"Order {order.id} refund {processor_refund_id} of £{from_pence(amount_pence)} processing")
        return order
