import json
from abc import ABC, abstractmethod
from typing import Any, Mapping

from fastapi.responses import JSONResponse, Response

from app.core.exceptions import WebhookPayloadError
from app.enums.payment_processor import PaymentProcessor
from app.services.payments.events import SettlementEvent


class ProcessorAdapter(ABC):
    """Translates one processor's webhook deliveries into settlement events."""

    processor: PaymentProcessor

    @abstractmethod
    async def verify(self, body: bytes, headers: Mapping[str, str]) -> None:
        """Raises WebhookVerificationError when the delivery is not authentic."""

    def parse(self, body: bytes) -> dict[str, Any]:
        try:
            payload = json.loads(body)
        except (ValueError, UnicodeDecodeError) as e:
            raise WebhookPayloadError(f"{self.processor.value} payload is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise WebhookPayloadError(f"{self.processor.value} payload must be a JSON object")
        return payload

    @abstractmethod
    def normalize(self, payload: dict[str, Any]) -> list[SettlementEvent]:
        """Unrecognized event types normalize to an empty list."""

    def acknowledge(self) -> Response:
        return JSONResponse({"received": True})


def require(value: Any, name: str, processor: PaymentProcessor) -> Any:
    if value in (None, ""):
        raise WebhookPayloadError(f"{processor.value} payload is missing {name}")
    return value


def minor_units(value: Any) -> int | None:
    """Amounts that processors already send in minor units."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
