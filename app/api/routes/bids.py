from fastapi import APIRouter, status

from app.calculator.money import from_pence
from app.schemas.bid import BidCreate, BidPlacedResponse
from app.services.auction.bid_service import BidService

router = APIRouter()


@router.post("", response_model=BidPlacedResponse, status_code=status.HTTP_201_CREATED)
async def place_bid(bid_in: BidCreate):
    """
    Places a bid on an auction.

    Rejections come back as ``{errorKind, message, minimumAcceptable?}``
    with a 4xx status: AuctionClosed, SelfBidForbidden, EntitlementRequired,
    AlreadyHighestBidder or BidTooLow.
    """
    bid = await BidService.place_bid(bid_in.auction_id, bid_in.bidder_id, bid_in.amount)
    return BidPlacedResponse(bid_id=bid.id, amount=from_pence(bid.amount_pence))
