from enum import Enum


class SettlementEventKind(str, Enum):
    authorized = "authorized"
    capture_failed = "capture_failed"
    captured = "captured"
    refunded = "refunded"
    refund_failed = "refund_failed"
    payout_completed = "payout_completed"
    payout_failed = "payout_failed"
    chargeback_opened = "chargeback_opened"
