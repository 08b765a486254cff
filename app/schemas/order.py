from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import Field, field_serializer, model_validator

from app.enums.order_status import OrderStatus
from app.enums.payment_processor import PaymentProcessor
from app.enums.payout_status import PayoutStatus
from app.models.order import Order
from app.models.payout import SellerPayout
from app.schemas.base import CamelModel, pounds


class OrderCreate(CamelModel):
    """Schema for a buy-now purchase"""
    listing_id: UUID
    buyer_id: UUID
    processor: Optional[PaymentProcessor] = None
    processor_transaction_id: Optional[str] = Field(None, max_length=255)

    @model_validator(mode="after")
    def transaction_needs_processor(self):
        if self.processor_transaction_id and self.processor is None:
            raise ValueError("processor is required with processorTransactionId")
        return self


class PaymentAttach(CamelModel):
    processor: PaymentProcessor
    processor_transaction_id: str = Field(..., min_length=1, max_length=255)


class ShipmentUpdate(CamelModel):
    tracking_number: str = Field(..., min_length=1, max_length=128)
    carrier: Optional[str] = Field(None, max_length=64)


class RefundRequest(CamelModel):
    processor_refund_id: str = Field(..., min_length=1, max_length=255)
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)


class PayoutCreate(CamelModel):
    processor: PaymentProcessor
    processor_payout_id: str = Field(..., min_length=1, max_length=255)


class OrderResponse(CamelModel):
    id: UUID
    listing_id: UUID
    buyer_id: UUID
    seller_id: UUID
    auction_id: Optional[UUID] = None
    status: OrderStatus
    gross_amount: Decimal
    buyer_fee: Decimal
    seller_commission: Decimal
    payout_amount: Decimal
    total_charged: Decimal
    currency: str
    fee_snapshot: dict
    processor: Optional[PaymentProcessor] = None
    processor_transaction_id: Optional[str] = None
    processor_status: Optional[str] = None
    refund_status: Optional[str] = None
    refund_transaction_id: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    payout_frozen: bool
    tracking_number: Optional[str] = None
    carrier: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime] = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            listing_id=order.listing_id,
            buyer_id=order.buyer_id,
            seller_id=order.seller_id,
            auction_id=order.auction_id,
            status=order.status,
            gross_amount=pounds(order.gross_pence),
            buyer_fee=pounds(order.buyer_fee_pence),
            seller_commission=pounds(order.seller_commission_pence),
            payout_amount=pounds(order.payout_pence),
            total_charged=pounds(order.total_charged_pence),
            currency=order.currency,
            fee_snapshot=order.fee_snapshot,
            processor=order.processor,
            processor_transaction_id=order.processor_transaction_id,
            processor_status=order.processor_status,
            refund_status=order.refund_status,
            refund_transaction_id=order.refund_transaction_id,
            refund_amount=pounds(order.refund_amount_pence) if order.refund_amount_pence is not None else None,
            payout_frozen=order.payout_frozen,
            tracking_number=order.tracking_number,
            carrier=order.carrier,
            created_at=order.created_at,
            updated_at=order.updated_at,
            paid_at=order.paid_at,
        )

    @field_serializer("id", "listing_id", "buyer_id", "seller_id")
    def serialize_uuid(self, v: UUID, _info):
        return str(v)

    @field_serializer("auction_id")
    def serialize_optional_uuid(self, v: Optional[UUID], _info):
        return str(v) if v else None

    @field_serializer("gross_amount", "buyer_fee", "seller_commission", "payout_amount", "total_charged")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)

    @field_serializer("refund_amount")
    def serialize_optional_amount(self, v: Optional[Decimal], _info):
        return float(v) if v is not None else None


class PayoutResponse(CamelModel):
    id: UUID
    order_id: UUID
    seller_id: UUID
    amount: Decimal
    status: PayoutStatus
    processor: PaymentProcessor
    processor_payout_id: Optional[str] = None
    needs_review: bool
    created_at: datetime

    @classmethod
    def from_payout(cls, payout: SellerPayout) -> "PayoutResponse":
        return cls(
            id=payout.id,
            order_id=payout.order_id,
            seller_id=payout.seller_id,
            amount=pounds(payout.amount_pence),
            status=payout.status,
            processor=payout.processor,
            processor_payout_id=payout.processor_payout_id,
            needs_review=payout.needs_review,
            created_at=payout.created_at,
        )

    @field_serializer("id", "order_id", "seller_id")
    def serialize_uuid(self, v: UUID, _info):
        return str(v)

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)
