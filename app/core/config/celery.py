from celery import Celery
from app.core.config import settings

celery_app = Celery(
    'settlement_tasks',
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=['app.tasks.auction']
)

celery_app.conf.update(
    result_backend=settings.celery_result_backend,
    task_serializer='json',
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    broker_connection_retry_on_startup=True,
    accept_content=['json'],
    result_extended=True,
    result_expires=3600,
)

celery_app.conf.beat_schedule = {
    'close-expired-auctions': {
        'task': 'app.tasks.auction.close_expired_auctions_task',
        'schedule': float(settings.AUCTION_CLOSER_INTERVAL_SECONDS),
    },
}
