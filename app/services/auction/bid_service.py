from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from loguru import logger
from tortoise.transactions import in_transaction

from app.calculator.money import to_pence, from_pence
from app.core.exceptions import DomainError, InvalidBidAmount
from app.enums.notification_type import NotificationType
from app.models.auction import Auction
from app.models.bid import Bid
from app.services.auction.bid_validator import HighestBid, validate_bid
from app.services.communication.notification_service import NotificationService
from app.services.finance.subscription_service import SubscriptionService


class BidService:
    @staticmethod
    async def get_highest_bid(auction_id: UUID) -> Optional[Bid]:
        # Ties cannot occur for accepted bids; created_at keeps the order stable anyway.
        return await Bid.filter(auction_id=auction_id).order_by("-amount_pence", "created_at").first()

    @staticmethod
    async def place_bid(auction_id: UUID, bidder_id: UUID, amount: Decimal) -> Bid:
        """Admit a bid against the current highest one.

        The highest-bid read and the insert share one transaction holding the
        auction row lock, so two racing bids cannot both become highest.
        Notifications go out only after commit.
        """
        if amount is None or amount <= 0:
            raise InvalidBidAmount()
        amount_pence = to_pence(amount)
        now = datetime.now(timezone.utc)

        try:
            async with in_transaction():
                auction = await Auction.filter(id=auction_id).select_for_update().first()
                has_entitlement = await SubscriptionService.has_active_entitlement(bidder_id, now)
                previous = await BidService.get_highest_bid(auction_id) if auction else None
                highest = None
                if previous is not None:
                    highest = HighestBid(bidder_id=previous.bidder_id, amount_pence=previous.amount_pence)

                validate_bid(auction, bidder_id, amount_pence, has_entitlement, highest, now)

                bid = await Bid.create(auction_id=auction_id, bidder_id=bidder_id, amount_pence=amount_pence)
        except DomainError as e:
            logger.info(f"Bid of {amount} by {bidder_id} on auction {auction_id} rejected: {e.error_kind}")
            raise

        logger.info(f"Bid {bid.id} of {amount} accepted on auction {auction_id}")
        await BidService._notify_bid_placed(auction, bid, previous)
        return bid

    @staticmethod
    async def _notify_bid_placed(auction: Auction, bid: Bid, previous: Optional[Bid]):
        amount = from_pence(bid.amount_pence)
        await NotificationService.dispatch(
            auction.seller_id,
            NotificationType.bid_placed,
            title="New bid on your auction",
            message=f"A new bid of £{amount} was placed on your auction.",
            related_auction=auction,
            metadata={"bid_id": str(bid.id), "amount": str(amount)},
        )

        if previous is not None and previous.bidder_id != bid.bidder_id:
            former = from_pence(previous.amount_pence)
            await NotificationService.dispatch(
                previous.bidder_id,
                NotificationType.outbid,
                title="You have been outbid",
                message=f"Your bid of £{former} was outbid by a new bid of £{amount}.",
                related_auction=auction,
                metadata={"new_amount": str(amount), "your_amount": str(former)},
            )

    @staticmethod
    async def list_bids(auction_id: UUID) -> list[tuple[Bid, bool]]:
        """Bids highest first, each paired with whether it is the current highest"""
        bids = await Bid.filter(auction_id=auction_id).order_by("-amount_pence", "created_at")
        highest_id = bids[0].id if bids else None
        return [(bid, bid.id == highest_id) for bid in bids]
