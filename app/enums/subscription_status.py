from enum import Enum


class SubscriptionStatus(str, Enum):
    active = "active"
    past_due = "past_due"
    cancelled = "cancelled"
    expired = "expired"
