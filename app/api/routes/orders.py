from uuid import UUID

from fastapi import APIRouter, status

from app.schemas.order import (
    OrderCreate,
    OrderResponse,
    PaymentAttach,
    ShipmentUpdate,
    RefundRequest,
    PayoutCreate,
    PayoutResponse,
)
from app.services.finance.order_service import OrderService
from app.services.finance.payout_service import PayoutService

router = APIRouter()


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(order_in: OrderCreate):
    """
    Buy-now purchase. Reserves the listing and fixes the fee breakdown
    with the fee configuration in effect right now.
    """
    order = await OrderService.create_order(
        listing_id=order_in.listing_id,
        buyer_id=order_in.buyer_id,
        processor=order_in.processor,
        processor_transaction_id=order_in.processor_transaction_id,
    )
    return OrderResponse.from_order(order)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: UUID):
    return OrderResponse.from_order(await OrderService.get_order(order_id))


@router.post("/{order_id}/payment", response_model=OrderResponse)
async def attach_payment(order_id: UUID, payment_in: PaymentAttach):
    order = await OrderService.attach_payment(order_id, payment_in.processor, payment_in.processor_transaction_id)
    return OrderResponse.from_order(order)


@router.post("/{order_id}/ship", response_model=OrderResponse)
async def ship_order(order_id: UUID, shipment_in: ShipmentUpdate):
    order = await OrderService.mark_shipped(order_id, shipment_in.tracking_number, shipment_in.carrier)
    return OrderResponse.from_order(order)


@router.post("/{order_id}/deliver", response_model=OrderResponse)
async def deliver_order(order_id: UUID):
    return OrderResponse.from_order(await OrderService.mark_delivered(order_id))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(order_id: UUID):
    return OrderResponse.from_order(await OrderService.cancel_order(order_id))


@router.post("/{order_id}/refund", response_model=OrderResponse)
async def request_refund(order_id: UUID, refund_in: RefundRequest):
    """
    Records a refund already issued at the processor. The order moves to
    refunded when the processor's webhook confirms it.
    """
    order = await OrderService.request_refund(order_id, refund_in.processor_refund_id, refund_in.amount)
    return OrderResponse.from_order(order)


@router.post("/{order_id}/payouts", response_model=PayoutResponse, status_code=status.HTTP_201_CREATED)
async def initiate_payout(order_id: UUID, payout_in: PayoutCreate):
    payout = await PayoutService.initiate_payout(order_id, payout_in.processor, payout_in.processor_payout_id)
    return PayoutResponse.from_payout(payout)
