"""Pure admission rules for a candidate bid.

The checks run in a fixed order and the first failure wins, so callers get
a deterministic error for a given state.
"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.calculator.money import from_pence
from app.core.exceptions import (
    AuctionClosed,
    SelfBidForbidden,
    EntitlementRequired,
    AlreadyHighestBidder,
    BidTooLow,
    InvalidBidAmount,
)
from app.models.auction import Auction


class HighestBid(BaseModel):
    bidder_id: UUID
    amount_pence: int

    model_config = ConfigDict(frozen=True)


def minimum_acceptable_pence(auction: Auction, highest: Optional[HighestBid]) -> int:
    floor = auction.starting_bid_pence
    if highest is not None and highest.amount_pence > floor:
        floor = highest.amount_pence
    # A zero increment still requires a strictly greater amount.
    return floor + max(auction.min_bid_increment_pence or 0, 1)


def validate_bid(
    auction: Optional[Auction],
    bidder_id: UUID,
    amount_pence: int,
    has_entitlement: bool,
    highest: Optional[HighestBid],
    now: datetime,
) -> int:
    """Raises the first violated rule, otherwise returns the accepted amount."""
    if amount_pence <= 0:
        raise InvalidBidAmount()

    if auction is None or not auction.is_open(now):
        raise AuctionClosed()

    if auction.seller_id == bidder_id:
        raise SelfBidForbidden()

    if not has_entitlement:
        raise EntitlementRequired()

    if highest is not None and highest.bidder_id == bidder_id:
        raise AlreadyHighestBidder()

    minimum = minimum_acceptable_pence(auction, highest)
    if amount_pence < minimum:
        minimum_pounds = from_pence(minimum)
        raise BidTooLow(
            f"Bid must be at least {minimum_pounds}",
            minimum_acceptable=minimum_pounds,
        )

    return amount_pence
