from uuid import UUID

from loguru import logger
from tortoise.transactions import in_transaction

from app.core.exceptions import OrderNotFound, PayoutNotAllowed, DuplicateProcessorTransaction
from app.enums.order_status import OrderStatus
from app.enums.payment_processor import PaymentProcessor
from app.enums.payout_status import PayoutStatus
from app.models.order import Order
from app.models.payout import SellerPayout

PAYABLE_ORDER_STATUSES = (OrderStatus.paid, OrderStatus.shipped, OrderStatus.delivered)


class PayoutService:
    @staticmethod
    async def initiate_payout(order_id: UUID, processor: PaymentProcessor, processor_payout_id: str) -> SellerPayout:
        """Records a transfer of the order's snapshotted payout to the seller.

        The completion or failure arrives later as a settlement event.
        """
        async with in_transaction():
            order = await Order.filter(id=order_id).select_for_update().first()
            if order is None:
                raise OrderNotFound()
            if order.status not in PAYABLE_ORDER_STATUSES:
                raise PayoutNotAllowed(f"Order {order.id} is {order.status.value}")
            if order.payout_frozen:
                raise PayoutNotAllowed("Payout is frozen for this order")

            if await SellerPayout.filter(order_id=order.id).exclude(status=PayoutStatus.failed).exists():
                raise PayoutNotAllowed("Order already has a payout")
            if await SellerPayout.filter(processor=processor, processor_payout_id=processor_payout_id).exists():
                raise DuplicateProcessorTransaction("Processor payout id is already recorded")

            payout = await SellerPayout.create(
                order_id=order.id,
                seller_id=order.seller_id,
                amount_pence=order.payout_pence,
                currency=order.currency,
                status=PayoutStatus.processing,
                processor=processor,
                processor_payout_id=processor_payout_id,
            )

        logger.info(f"Payout {payout.id} of {payout.amount_pence}p initiated for order {order.id} via {processor.value}")
        return payout
