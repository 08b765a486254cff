from uuid import UUID
from datetime import datetime
from decimal import Decimal
from pydantic import Field, field_serializer

from app.schemas.base import CamelModel


class BidCreate(CamelModel):
    """Schema for placing a bid"""
    auction_id: UUID
    bidder_id: UUID
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="Bid amount in pounds, must be positive")


class BidPlacedResponse(CamelModel):
    """Schema returned after a bid is accepted"""
    bid_id: UUID
    amount: Decimal

    @field_serializer("bid_id")
    def serialize_id(self, v: UUID, _info):
        return str(v)

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)


class BidResponse(CamelModel):
    id: UUID
    auction_id: UUID
    bidder_id: UUID
    amount: Decimal
    is_winning: bool
    created_at: datetime

    @field_serializer("id", "auction_id", "bidder_id")
    def serialize_uuid(self, v: UUID, _info):
        return str(v)

    @field_serializer("amount")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)


class BidListResponse(CamelModel):
    total: int
    items: list[BidResponse]
