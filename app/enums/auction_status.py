from enum import Enum


class AuctionStatus(str, Enum):
    active = "active"
    ended = "ended"
    cancelled = "cancelled"
