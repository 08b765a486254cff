from enum import Enum


class NotificationType(str, Enum):
    info = "info"
    bid_placed = "bid_placed"
    outbid = "outbid"
    auction_won = "auction_won"
    auction_ended = "auction_ended"
    payment_received = "payment_received"
    payment_failed = "payment_failed"
    refund_issued = "refund_issued"
    refund_failed = "refund_failed"
    payout_completed = "payout_completed"
    payout_failed = "payout_failed"
    order_shipped = "order_shipped"
    order_delivered = "order_delivered"
    order_cancelled = "order_cancelled"
    chargeback_opened = "chargeback_opened"
    operational_alert = "operational_alert"
