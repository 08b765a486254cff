from uuid import UUID
from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import Field, field_serializer

from app.enums.auction_status import AuctionStatus
from app.schemas.base import CamelModel


class AuctionCreate(CamelModel):
    """Schema for opening an auction on a listing"""
    listing_id: UUID
    starting_bid: Decimal = Field(..., gt=0, decimal_places=2)
    ends_at: datetime
    reserve_price: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    min_bid_increment: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class AuctionSummaryResponse(CamelModel):
    id: UUID
    listing_id: UUID
    seller_id: UUID
    status: AuctionStatus
    starting_bid: Decimal
    min_bid_increment: Decimal
    has_reserve: bool
    reserve_met: bool
    ends_at: datetime
    highest_bid: Optional[Decimal] = None
    highest_bidder_id: Optional[UUID] = None
    bid_count: int
    minimum_next_bid: Decimal

    @field_serializer("id", "listing_id", "seller_id")
    def serialize_uuid(self, v: UUID, _info):
        return str(v)

    @field_serializer("highest_bidder_id")
    def serialize_optional_uuid(self, v: Optional[UUID], _info):
        return str(v) if v else None

    @field_serializer("starting_bid", "min_bid_increment", "minimum_next_bid")
    def serialize_amount(self, v: Decimal, _info):
        return float(v)

    @field_serializer("highest_bid")
    def serialize_optional_amount(self, v: Optional[Decimal], _info):
        return float(v) if v is not None else None
