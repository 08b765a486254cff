from enum import Enum


class EventOutcome(str, Enum):
    applied = "applied"
    duplicate = "duplicate"
    illegal = "illegal"
    unmatched = "unmatched"
