import asyncio

from celery import shared_task
from loguru import logger

from app.core.database import DatabaseManager
from app.services.auction.auction_service import AuctionService


@shared_task(
    name="app.tasks.auction.close_expired_auctions_task",
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_kwargs={'max_retries': 3},
    soft_time_limit=50,
    time_limit=55
)
def close_expired_auctions_task():
    """Celery beat job that ends auctions whose end time has passed."""
    async def run():
        await DatabaseManager.init()
        try:
            closed = await AuctionService.close_expired_auctions()
            return {'status': 'completed', 'closed': closed}
        finally:
            await DatabaseManager.close()

    logger.debug('Running auction closer')
    return asyncio.run(run())
