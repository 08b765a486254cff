from typing import Mapping

from loguru import logger
from pydantic import BaseModel, ValidationError

from app.core.exceptions import WebhookError, WebhookPayloadError
from app.enums.payment_processor import PaymentProcessor
from app.services.payments.adapters.base import ProcessorAdapter
from app.services.payments.normalizer import get_adapter
from app.services.payments.state_machine import OrderStateMachine, SettlementResult


class WebhookResult(BaseModel):
    processor: PaymentProcessor
    results: list[SettlementResult]


class WebhookService:
    @staticmethod
    async def handle(processor: str, body: bytes, headers: Mapping[str, str]) -> tuple[ProcessorAdapter, WebhookResult]:
        """Verify, parse, normalize and apply one webhook delivery.

        Raises WebhookError subclasses only for deliveries that cannot be
        authenticated or parsed. Everything past that point is acknowledged,
        including unrecognized event types and illegal transitions.
        """
        adapter = get_adapter(processor)
        try:
            await adapter.verify(body, headers)
            payload = adapter.parse(body)
            events = WebhookService._normalize(adapter, payload)
        except WebhookError as e:
            logger.warning(f"Rejected {adapter.processor.value} webhook: {e}")
            raise

        results = []
        for event in events:
            results.append(await OrderStateMachine.apply(event))

        return adapter, WebhookResult(processor=adapter.processor, results=results)

    @staticmethod
    def _normalize(adapter: ProcessorAdapter, payload: dict):
        # Valid JSON of the wrong shape is a payload error, not a server fault.
        try:
            return adapter.normalize(payload)
        except (AttributeError, TypeError, KeyError, IndexError, ValidationError) as e:
            raise WebhookPayloadError(f"{adapter.processor.value} payload has an unexpected shape: {e}") from e
