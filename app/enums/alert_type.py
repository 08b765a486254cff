from enum import Enum


class AlertType(str, Enum):
    illegal_transition = "illegal_transition"
    unmatched_event = "unmatched_event"
    payout_failed = "payout_failed"
    refund_failed = "refund_failed"
    chargeback_opened = "chargeback_opened"
    webhook_rejected = "webhook_rejected"
