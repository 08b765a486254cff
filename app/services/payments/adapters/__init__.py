from .base import ProcessorAdapter
from .stripe_adapter import StripeAdapter
from .paypal_adapter import PayPalAdapter
from .mangopay_adapter import MangoPayAdapter
from .adyen_adapter import AdyenAdapter
