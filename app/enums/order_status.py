from enum import Enum


class OrderStatus(str, Enum):
    created = "created"
    awaiting_payment = "awaiting_payment"
    paid = "paid"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    payment_failed = "payment_failed"
    refunded = "refunded"
    disputed = "disputed"


# Once an order reaches one of these, the listing may carry a new order.
TERMINAL_ORDER_STATUSES = (
    OrderStatus.delivered,
    OrderStatus.cancelled,
    OrderStatus.payment_failed,
    OrderStatus.refunded,
)
