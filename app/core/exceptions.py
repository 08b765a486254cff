from decimal import Decimal
from typing import Optional

from fastapi import status


class DomainError(Exception):
    """Rejection of a business operation, returned synchronously to the caller.

    Domain errors are never retried automatically and are not system faults:
    they are rendered as ``{errorKind, message, minimumAcceptable?}``.
    """

    error_kind: str = "DomainError"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Operation rejected"

    def __init__(self, message: Optional[str] = None, minimum_acceptable: Optional[Decimal] = None):
        self.message = message or self.default_message
        self.minimum_acceptable = minimum_acceptable
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"errorKind": self.error_kind, "message": self.message}
        if self.minimum_acceptable is not None:
            body["minimumAcceptable"] = float(self.minimum_acceptable)
        return body


# Bidding

class AuctionClosed(DomainError):
    error_kind = "AuctionClosed"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Auction is not open for bidding"


class SelfBidForbidden(DomainError):
    error_kind = "SelfBidForbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Sellers cannot bid on their own auction"


class EntitlementRequired(DomainError):
    error_kind = "EntitlementRequired"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "An active bidder subscription is required to bid"


class AlreadyHighestBidder(DomainError):
    error_kind = "AlreadyHighestBidder"
    status_code = status.HTTP_409_CONFLICT
    default_message = "You already hold the highest bid"


class BidTooLow(DomainError):
    error_kind = "BidTooLow"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Bid is below the minimum acceptable amount"


class InvalidBidAmount(DomainError):
    error_kind = "InvalidBidAmount"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Bid amount must be positive"


class AuctionNotFound(DomainError):
    error_kind = "AuctionNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Auction not found"


class AuctionNotCancellable(DomainError):
    error_kind = "AuctionNotCancellable"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Only an active auction without bids can be cancelled"


class InvalidAuction(DomainError):
    error_kind = "InvalidAuction"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Auction cannot be created for this listing"


# Orders

class ListingNotFound(DomainError):
    error_kind = "ListingNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Listing not found"


class ListingNotPurchasable(DomainError):
    error_kind = "ListingNotPurchasable"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Listing cannot be bought directly"


class ListingAlreadyReserved(DomainError):
    error_kind = "ListingAlreadyReserved"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Listing already has an open order"


class SelfPurchaseForbidden(DomainError):
    error_kind = "SelfPurchaseForbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Sellers cannot buy their own listing"


class OrderNotFound(DomainError):
    error_kind = "OrderNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Order not found"


class DuplicateProcessorTransaction(DomainError):
    error_kind = "DuplicateProcessorTransaction"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Processor transaction id is already attached to another order"


class IllegalTransition(DomainError):
    error_kind = "IllegalTransition"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Transition is not allowed from the current state"


class PayoutNotAllowed(DomainError):
    error_kind = "PayoutNotAllowed"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Payout cannot be initiated for this order"


class InvalidRefundAmount(DomainError):
    error_kind = "InvalidRefundAmount"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Refund amount must be positive and no more than the amount charged"


class InvalidFeeConfiguration(DomainError):
    error_kind = "InvalidFeeConfiguration"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Fee configuration is not valid"


class UserNotFound(DomainError):
    error_kind = "UserNotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


# Webhooks

class WebhookError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST


class WebhookVerificationError(WebhookError):
    """Signature or authenticity check failed."""


class WebhookPayloadError(WebhookError):
    """Body could not be parsed into the processor's payload shape."""


class UnknownProcessor(WebhookError):
    status_code = status.HTTP_404_NOT_FOUND
