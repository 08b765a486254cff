from enum import Enum


class CommissionMode(str, Enum):
    percentage = "percentage"
    fixed = "fixed"
