from uuid import UUID

from fastapi import APIRouter, status

from app.calculator.money import from_pence
from app.schemas.auction import AuctionCreate, AuctionSummaryResponse
from app.schemas.bid import BidListResponse, BidResponse
from app.services.auction.auction_service import AuctionService
from app.services.auction.bid_service import BidService

router = APIRouter()


@router.post("", response_model=AuctionSummaryResponse, status_code=status.HTTP_201_CREATED)
async def create_auction(auction_in: AuctionCreate):
    """Opens an auction on an auction-type listing"""
    auction = await AuctionService.create_auction(
        listing_id=auction_in.listing_id,
        starting_bid=auction_in.starting_bid,
        ends_at=auction_in.ends_at,
        reserve_price=auction_in.reserve_price,
        min_bid_increment=auction_in.min_bid_increment,
    )
    return await AuctionService.get_auction_summary(auction.id)


@router.get("/{auction_id}", response_model=AuctionSummaryResponse)
async def get_auction(auction_id: UUID):
    """Auction state with the current highest bid and the next acceptable amount"""
    return await AuctionService.get_auction_summary(auction_id)


@router.get("/{auction_id}/bids", response_model=BidListResponse)
async def list_bids(auction_id: UUID):
    await AuctionService.get_auction(auction_id)
    bids = await BidService.list_bids(auction_id)
    return BidListResponse(
        total=len(bids),
        items=[
            BidResponse(
                id=bid.id,
                auction_id=bid.auction_id,
                bidder_id=bid.bidder_id,
                amount=from_pence(bid.amount_pence),
                is_winning=is_winning,
                created_at=bid.created_at,
            )
            for bid, is_winning in bids
        ],
    )


@router.post("/{auction_id}/cancel", response_model=AuctionSummaryResponse)
async def cancel_auction(auction_id: UUID):
    await AuctionService.cancel_auction(auction_id)
    return await AuctionService.get_auction_summary(auction_id)
