from uuid import UUID
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from loguru import logger
from tortoise.transactions import in_transaction

from app.calculator.money import to_pence, from_pence
from app.core.config import settings
from app.core.exceptions import (
    AuctionNotFound,
    AuctionNotCancellable,
    DomainError,
    InvalidAuction,
    ListingNotFound,
)
from app.enums.auction_status import AuctionStatus
from app.enums.listing_type import ListingType
from app.enums.notification_type import NotificationType
from app.models.auction import Auction
from app.models.bid import Bid
from app.models.listing import Listing
from app.models.order import Order
from app.schemas.auction import AuctionSummaryResponse
from app.services.auction.bid_service import BidService
from app.services.auction.bid_validator import HighestBid, minimum_acceptable_pence
from app.services.communication.notification_service import NotificationService
from app.services.finance.order_service import OrderService


class AuctionService:
    @staticmethod
    async def create_auction(
        listing_id: UUID,
        starting_bid: Decimal,
        ends_at: datetime,
        reserve_price: Optional[Decimal] = None,
        min_bid_increment: Optional[Decimal] = None
    ) -> Auction:
        if ends_at.tzinfo is None:
            ends_at = ends_at.replace(tzinfo=timezone.utc)
        if ends_at <= datetime.now(timezone.utc):
            raise InvalidAuction("Auction end must be in the future")
        if reserve_price is not None and reserve_price < starting_bid:
            raise InvalidAuction("Reserve price cannot be below the starting bid")

        increment = settings.DEFAULT_BID_INCREMENT if min_bid_increment is None else min_bid_increment

        async with in_transaction():
            listing = await Listing.filter(id=listing_id).select_for_update().first()
            if listing is None:
                raise ListingNotFound()
            if listing.listing_type != ListingType.auction:
                raise InvalidAuction("Listing is not an auction listing")
            if not listing.is_active or listing.is_sold:
                raise InvalidAuction("Listing is not available")
            if await Auction.exists(listing_id=listing.id):
                raise InvalidAuction("Listing already has an auction")

            auction = await Auction.create(
                listing_id=listing.id,
                seller_id=listing.seller_id,
                starting_bid_pence=to_pence(starting_bid),
                reserve_price_pence=to_pence(reserve_price) if reserve_price is not None else None,
                min_bid_increment_pence=to_pence(increment),
                ends_at=ends_at,
            )

        logger.info(f"Auction {auction.id} opened on listing {listing_id} until {ends_at.isoformat()}")
        return auction

    @staticmethod
    async def get_auction(auction_id: UUID) -> Auction:
        auction = await Auction.get_or_none(id=auction_id)
        if auction is None:
            raise AuctionNotFound()
        return auction

    @staticmethod
    async def get_auction_summary(auction_id: UUID, now: Optional[datetime] = None) -> AuctionSummaryResponse:
        auction = await AuctionService.get_auction(auction_id)
        highest = await BidService.get_highest_bid(auction.id)
        bid_count = await Bid.filter(auction_id=auction.id).count()
        minimum = minimum_acceptable_pence(
            auction, HighestBid(bidder_id=highest.bidder_id, amount_pence=highest.amount_pence) if highest else None
        )
        reserve = auction.reserve_price_pence

        return AuctionSummaryResponse(
            id=auction.id,
            listing_id=auction.listing_id,
            seller_id=auction.seller_id,
            status=auction.effective_status(now),
            starting_bid=from_pence(auction.starting_bid_pence),
            min_bid_increment=from_pence(auction.min_bid_increment_pence),
            has_reserve=reserve is not None,
            reserve_met=reserve is None or (highest is not None and highest.amount_pence >= reserve),
            ends_at=auction.ends_at,
            highest_bid=from_pence(highest.amount_pence) if highest else None,
            highest_bidder_id=highest.bidder_id if highest else None,
            bid_count=bid_count,
            minimum_next_bid=from_pence(minimum),
        )

    @staticmethod
    async def cancel_auction(auction_id: UUID) -> Auction:
        async with in_transaction():
            auction = await Auction.filter(id=auction_id).select_for_update().first()
            if auction is None:
                raise AuctionNotFound()
            if auction.status != AuctionStatus.active or await Bid.exists(auction_id=auction.id):
                raise AuctionNotCancellable()

            auction.status = AuctionStatus.cancelled
            auction.ended_at = datetime.now(timezone.utc)
            await auction.save()
            await Listing.filter(id=auction.listing_id).update(is_active=False)

        logger.info(f"Auction {auction.id} cancelled")
        return auction

    @staticmethod
    async def close_expired_auctions(now: Optional[datetime] = None) -> int:
        """Ends every active auction past its end time and settles it.

        Each auction is closed in its own transaction.
        """
        now = now or datetime.now(timezone.utc)
        expired_ids = await Auction.filter(status=AuctionStatus.active, ends_at__lte=now).values_list("id", flat=True)

        closed = 0
        for auction_id in expired_ids:
            try:
                if await AuctionService.close_auction(auction_id, now):
                    closed += 1
            except Exception as e:
                # One auction that cannot be closed must not hold back the rest.
                logger.error(f"Failed to close auction {auction_id}: {e}")
        if closed:
            logger.info(f"Closed {closed} expired auctions")
        return closed

    @staticmethod
    async def close_auction(auction_id: UUID, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        order: Optional[Order] = None
        winner = None
        reason = None

        async with in_transaction():
            auction = await Auction.filter(id=auction_id).select_for_update().first()
            if auction is None or auction.status != AuctionStatus.active or not auction.is_expired(now):
                return False

            auction.status = AuctionStatus.ended
            auction.ended_at = now
            await auction.save()

            winner = await BidService.get_highest_bid(auction.id)
            reserve = auction.reserve_price_pence
            if winner is None:
                reason = "no bids"
            elif reserve is not None and winner.amount_pence < reserve:
                reason = "reserve price not met"
            else:
                try:
                    order = await OrderService.create_order_from_auction(auction, winner.bidder_id, winner.amount_pence)
                except DomainError as e:
                    # The auction still ends; settlement needs an operator.
                    logger.warning(f"Auction {auction.id} ended but could not be settled: {e.message}")
                    reason = "settlement failed"

            if order is None and reason != "settlement failed":
                await Listing.filter(id=auction.listing_id).update(is_active=True, is_sold=False)

        if order is not None:
            amount = from_pence(order.gross_pence)
            logger.info(f"Auction {auction.id} won by {winner.bidder_id} at {amount}, order {order.id}")
            await NotificationService.dispatch(
                winner.bidder_id,
                NotificationType.auction_won,
                title="You won the auction",
                message=f"Your bid of £{amount} won. Total to pay: £{from_pence(order.total_charged_pence)}.",
                related_auction=auction,
                related_order=order,
            )
            await NotificationService.dispatch(
                auction.seller_id,
                NotificationType.auction_ended,
                title="Your auction has sold",
                message=f"Your auction ended with a winning bid of £{amount}.",
                related_auction=auction,
                related_order=order,
            )
        else:
            logger.info(f"Auction {auction.id} ended without a sale ({reason})")
            await NotificationService.dispatch(
                auction.seller_id,
                NotificationType.auction_ended,
                title="Your auction ended without a sale",
                message=f"Your auction ended without a sale: {reason}.",
                related_auction=auction,
            )
        return True
