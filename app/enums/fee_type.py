from enum import Enum


class FeeType(str, Enum):
    buyer_fee = "buyer_fee"
    seller_commission = "seller_commission"
