import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from httpx import AsyncClient

from app.core.exceptions import AuctionNotCancellable, InvalidAuction
from app.enums.auction_status import AuctionStatus
from app.enums.fee_type import FeeType
from app.enums.listing_type import ListingType
from app.enums.notification_type import NotificationType
from app.enums.order_status import OrderStatus
from app.models.auction import Auction
from app.models.listing import Listing
from app.models.notification import Notification
from app.models.order import Order
from app.models.user import User
from app.services.auction.auction_service import AuctionService
from app.services.auction.bid_service import BidService
from app.services.finance.fee_service import FeeService


async def expire(auction: Auction):
    auction.ends_at = datetime.now(timezone.utc) - timedelta(seconds=1)
    await auction.save()


@pytest.mark.asyncio
async def test_closer_settles_winning_bid(auction: Auction, bidder_a: User, bidder_b: User, fees):
    await BidService.place_bid(auction.id, bidder_a.id, Decimal("60"))
    await BidService.place_bid(auction.id, bidder_b.id, Decimal("65"))
    await expire(auction)

    closed = await AuctionService.close_expired_auctions()

    assert closed == 1
    auction = await Auction.get(id=auction.id)
    assert auction.status == AuctionStatus.ended

    order = await Order.get(auction_id=auction.id)
    assert order.buyer_id == bidder_b.id
    assert order.status == OrderStatus.created
    assert order.gross_pence == 6500
    assert order.buyer_fee_pence == 200
    assert order.seller_commission_pence == 650
    assert order.total_charged_pence == 6700

    assert await Notification.filter(user_id=bidder_b.id, notification_type=NotificationType.auction_won).count() == 1
    assert await Notification.filter(user_id=auction.seller_id, notification_type=NotificationType.auction_ended).count() == 1


async def open_auction(seller: User, title: str, start_pence: int) -> Auction:
    listing = await Listing.create(seller=seller, title=title, price_pence=start_pence, listing_type=ListingType.auction)
    return await Auction.create(
        listing=listing,
        seller_id=seller.id,
        starting_bid_pence=start_pence,
        min_bid_increment_pence=100,
        ends_at=datetime.now(timezone.utc) + timedelta(hours=1),
    )


@pytest.mark.asyncio
async def test_unsettleable_auction_does_not_block_others(seller: User, bidder_a: User, fees):
    await FeeService.update_fee(FeeType.seller_commission, Decimal("20"), is_percentage=False)
    cheap = await open_auction(seller, "Bike bell", 500)
    dear = await open_auction(seller, "Carbon frame", 10000)
    await BidService.place_bid(cheap.id, bidder_a.id, Decimal("6"))
    await BidService.place_bid(dear.id, bidder_a.id, Decimal("101"))
    await expire(cheap)
    await expire(dear)

    closed = await AuctionService.close_expired_auctions()

    assert closed == 2
    for auction in (cheap, dear):
        stored = await Auction.get(id=auction.id)
        assert stored.status == AuctionStatus.ended
    assert not await Order.exists(auction_id=cheap.id)
    order = await Order.get(auction_id=dear.id)
    assert order.gross_pence == 10100
    assert order.seller_commission_pence == 2000

    notes = await Notification.filter(user_id=seller.id, notification_type=NotificationType.auction_ended)
    messages = [note.message for note in notes]
    assert "Your auction ended without a sale: settlement failed." in messages
    assert len(messages) == 2


@pytest.mark.asyncio
async def test_closer_continues_after_unexpected_error(seller: User, monkeypatch):
    broken = await open_auction(seller, "Bike bell", 500)
    healthy = await open_auction(seller, "Carbon frame", 10000)
    await expire(broken)
    await expire(healthy)
    close_auction = AuctionService.close_auction

    async def flaky_close(auction_id, now=None):
        if str(auction_id) == str(broken.id):
            raise RuntimeError("database went away")
        return await close_auction(auction_id, now)

    monkeypatch.setattr(AuctionService, "close_auction", staticmethod(flaky_close))

    assert await AuctionService.close_expired_auctions() == 1
    assert (await Auction.get(id=healthy.id)).status == AuctionStatus.ended
    assert (await Auction.get(id=broken.id)).status == AuctionStatus.active


@pytest.mark.asyncio
async def test_closer_skips_running_auctions(auction: Auction, bidder_a: User):
    await BidService.place_bid(auction.id, bidder_a.id, Decimal("60"))

    assert await AuctionService.close_expired_auctions() == 0
    auction = await Auction.get(id=auction.id)
    assert auction.status == AuctionStatus.active


@pytest.mark.asyncio
async def test_reserve_not_met_creates_no_order(auction: Auction, bidder_a: User):
    auction.reserve_price_pence = 10000
    await auction.save()
    await BidService.place_bid(auction.id, bidder_a.id, Decimal("60"))
    await expire(auction)

    await AuctionService.close_expired_auctions()

    assert await Order.filter(auction_id=auction.id).count() == 0
    listing = await Listing.get(id=auction.listing_id)
    assert listing.is_active is True
    notes = await Notification.filter(user_id=auction.seller_id, notification_type=NotificationType.auction_ended)
    assert "reserve price not met" in notes[0].message


@pytest.mark.asyncio
async def test_closing_twice_is_a_noop(auction: Auction, bidder_a: User):
    await BidService.place_bid(auction.id, bidder_a.id, Decimal("60"))
    await expire(auction)

    assert await AuctionService.close_auction(auction.id) is True
    assert await AuctionService.close_auction(auction.id) is False
    assert await Order.filter(auction_id=auction.id).count() == 1


@pytest.mark.asyncio
async def test_create_auction_rejects_fixed_price_listing(listing: Listing):
    with pytest.raises(InvalidAuction):
        await AuctionService.create_auction(
            listing.id, Decimal("10"), datetime.now(timezone.utc) + timedelta(days=1)
        )


@pytest.mark.asyncio
async def test_create_auction_rejects_reserve_below_start(auction_listing: Listing):
    with pytest.raises(InvalidAuction):
        await AuctionService.create_auction(
            auction_listing.id, Decimal("50"), datetime.now(timezone.utc) + timedelta(days=1),
            reserve_price=Decimal("40")
        )


@pytest.mark.asyncio
async def test_cancel_only_without_bids(auction: Auction, bidder_a: User):
    await BidService.place_bid(auction.id, bidder_a.id, Decimal("60"))

    with pytest.raises(AuctionNotCancellable):
        await AuctionService.cancel_auction(auction.id)


@pytest.mark.asyncio
async def test_create_and_read_auction_over_http(client: AsyncClient, auction_listing: Listing):
    response = await client.post(
        "/auctions",
        json={
            "listingId": str(auction_listing.id),
            "startingBid": 50,
            "endsAt": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
            "reservePrice": 80,
        }
    )

    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "active"
    assert data["minBidIncrement"] == 1.0
    assert data["hasReserve"] is True
    assert data["reserveMet"] is False
    assert data["bidCount"] == 0
    assert data["minimumNextBid"] == 51.0

    response = await client.get(f"/auctions/{data['id']}")
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_summary_reports_highest_bid(client: AsyncClient, auction: Auction, bidder_a: User):
    await BidService.place_bid(auction.id, bidder_a.id, Decimal("60"))

    response = await client.get(f"/auctions/{auction.id}")

    data = response.json()
    assert data["highestBid"] == 60.0
    assert data["highestBidderId"] == str(bidder_a.id)
    assert data["minimumNextBid"] == 61.0


@pytest.mark.asyncio
async def test_unknown_auction_returns_404(client: AsyncClient):
    response = await client.get("/auctions/00000000-0000-0000-0000-000000000000")

    assert response.status_code == 404
    assert response.json()["errorKind"] == "AuctionNotFound"
