from enum import Enum


class ListingType(str, Enum):
    fixed_price = "fixed_price"
    auction = "auction"
