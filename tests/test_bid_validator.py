import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4
from pydantic import ValidationError

from app.core.exceptions import (
    AuctionClosed,
    SelfBidForbidden,
    EntitlementRequired,
    AlreadyHighestBidder,
    BidTooLow,
    InvalidBidAmount,
)
from app.enums.auction_status import AuctionStatus
from app.models.auction import Auction
from app.services.auction.bid_validator import HighestBid, validate_bid, minimum_acceptable_pence

NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
SELLER = uuid4()
BIDDER = uuid4()
OTHER = uuid4()


def make_auction(**overrides) -> Auction:
    values = dict(
        id=uuid4(),
        seller_id=SELLER,
        starting_bid_pence=5000,
        min_bid_increment_pence=100,
        ends_at=NOW + timedelta(hours=1),
        status=AuctionStatus.active,
    )
    values.update(overrides)
    # Unsaved instance; the validator only reads attributes.
    return Auction(**values)


@pytest.mark.asyncio
async def test_first_bid_must_clear_starting_bid_plus_increment():
    auction = make_auction()
    with pytest.raises(BidTooLow) as exc:
        validate_bid(auction, BIDDER, 5000, True, None, NOW)
    assert exc.value.minimum_acceptable == Decimal("51.00")
    assert validate_bid(auction, BIDDER, 5100, True, None, NOW) == 5100


@pytest.mark.asyncio
async def test_minimum_acceptable_reported_from_highest_bid():
    auction = make_auction()
    with pytest.raises(BidTooLow) as exc:
        validate_bid(auction, BIDDER, 5500, True, HighestBid(bidder_id=OTHER, amount_pence=6000), NOW)
    assert exc.value.minimum_acceptable == Decimal("61.00")
    assert exc.value.to_dict() == {
        "errorKind": "BidTooLow",
        "message": "Bid must be at least 61.00",
        "minimumAcceptable": 61.0,
    }


@pytest.mark.asyncio
async def test_equal_amount_is_not_enough_with_zero_increment():
    auction = make_auction(min_bid_increment_pence=0)
    with pytest.raises(BidTooLow) as exc:
        validate_bid(auction, BIDDER, 6000, True, HighestBid(bidder_id=OTHER, amount_pence=6000), NOW)
    assert exc.value.minimum_acceptable == Decimal("60.01")
    assert minimum_acceptable_pence(auction, HighestBid(bidder_id=OTHER, amount_pence=6000)) == 6001


@pytest.mark.asyncio
async def test_expired_auction_is_closed_even_if_status_is_active():
    auction = make_auction(ends_at=NOW - timedelta(seconds=1))
    with pytest.raises(AuctionClosed):
        validate_bid(auction, BIDDER, 9000, True, None, NOW)


@pytest.mark.asyncio
async def test_missing_auction_is_reported_as_closed():
    with pytest.raises(AuctionClosed):
        validate_bid(None, BIDDER, 9000, True, None, NOW)


@pytest.mark.asyncio
async def test_checks_run_in_documented_order():
    # Closed wins over self-bid.
    closed = make_auction(status=AuctionStatus.ended)
    with pytest.raises(AuctionClosed):
        validate_bid(closed, SELLER, 100, False, HighestBid(bidder_id=SELLER, amount_pence=9000), NOW)

    auction = make_auction()
    # Self-bid wins over missing entitlement.
    with pytest.raises(SelfBidForbidden):
        validate_bid(auction, SELLER, 100, False, None, NOW)
    # Entitlement wins over already-highest.
    with pytest.raises(EntitlementRequired):
        validate_bid(auction, BIDDER, 100, False, HighestBid(bidder_id=BIDDER, amount_pence=6000), NOW)
    # Already-highest wins over amount, regardless of how high the amount is.
    with pytest.raises(AlreadyHighestBidder):
        validate_bid(auction, BIDDER, 1_000_000, True, HighestBid(bidder_id=BIDDER, amount_pence=6000), NOW)


@pytest.mark.asyncio
async def test_non_positive_amount_rejected():
    with pytest.raises(InvalidBidAmount):
        validate_bid(make_auction(), BIDDER, 0, True, None, NOW)


def test_highest_bid_is_immutable():
    highest = HighestBid(bidder_id=OTHER, amount_pence=6000)
    with pytest.raises(ValidationError):
        highest.amount_pence = 1
