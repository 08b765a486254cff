from typing import Any

from app.core.exceptions import UnknownProcessor
from app.enums.payment_processor import PaymentProcessor
from app.services.payments.adapters import (
    ProcessorAdapter,
    StripeAdapter,
    PayPalAdapter,
    MangoPayAdapter,
    AdyenAdapter,
)
from app.services.payments.events import SettlementEvent

_ADAPTERS: dict[PaymentProcessor, ProcessorAdapter] = {
    PaymentProcessor.stripe: StripeAdapter(),
    PaymentProcessor.paypal: PayPalAdapter(),
    PaymentProcessor.mangopay: MangoPayAdapter(),
    PaymentProcessor.adyen: AdyenAdapter(),
}


def get_adapter(processor: str | PaymentProcessor) -> ProcessorAdapter:
    try:
        return _ADAPTERS[PaymentProcessor(processor)]
    except ValueError as e:
        raise UnknownProcessor(f"Unknown payment processor: {processor}") from e


def register_adapter(adapter: ProcessorAdapter):
    _ADAPTERS[adapter.processor] = adapter


def normalize(processor: str | PaymentProcessor, payload: dict[str, Any]) -> list[SettlementEvent]:
    return get_adapter(processor).normalize(payload)
