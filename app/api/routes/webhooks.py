from fastapi import APIRouter, Request

from app.services.payments.webhook_service import WebhookService

router = APIRouter()


@router.post("/{processor}")
async def receive_webhook(processor: str, request: Request):
    """
    Single entry point for stripe, paypal, mangopay and adyen webhooks.

    Returns 200 once the delivery is authenticated and parsed, whatever the
    events did to the ledger, so processors stop retrying. 400 when the
    delivery cannot be verified or parsed, 404 for an unknown processor.
    """
    body = await request.body()
    adapter, _ = await WebhookService.handle(processor, body, request.headers)
    return adapter.acknowledge()
