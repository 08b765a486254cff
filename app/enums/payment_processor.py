from enum import Enum


class PaymentProcessor(str, Enum):
    stripe = "stripe"
    paypal = "paypal"
    mangopay = "mangopay"
    adyen = "adyen"
