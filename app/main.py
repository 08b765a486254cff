import asyncio
import sys
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from loguru import logger

from app.core.config import settings
from app.core.database import DatabaseManager
from app.core.exceptions import DomainError, WebhookError
from app.api.routes import (
    bids_router, auctions_router, orders_router,
    fees_router, webhooks_router, notifications_router
)
from app.services.kafka.producer import get_kafka_producer, close_kafka_producer

logger.remove()
logger.add(sys.stderr, level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting up {settings.app_name} v{settings.version}...")

    db = DatabaseManager()
    await db.init()

    if get_kafka_producer() is not None:
        logger.info(f"Kafka producer connected to {settings.KAFKA_BOOTSTRAP_SERVERS}")
    else:
        logger.info("Kafka disabled, notifications are stored in-app only")

    try:
        yield
    finally:
        logger.info("Shutting down...")
        close_kafka_producer()
        await db.close()

app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan,
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(WebhookError)
async def webhook_error_handler(request: Request, exc: WebhookError):
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.get("/health")
async def health_check():
    return {"status": "healthy"}

app.include_router(
    bids_router,
    prefix="/bids",
    tags=["Bids"]
)

app.include_router(
    auctions_router,
    prefix="/auctions",
    tags=["Auctions"]
)

app.include_router(
    orders_router,
    prefix="/orders",
    tags=["Orders"]
)

app.include_router(
    fees_router,
    prefix="/fees",
    tags=["Fees"]
)

app.include_router(
    webhooks_router,
    prefix="/webhooks",
    tags=["Webhooks"]
)

app.include_router(
    notifications_router,
    prefix="/notifications",
    tags=["Notifications"]
)

async def main():
    """ Main function to run FastAPI with multiple workers. """
    config = uvicorn.Config(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        workers=settings.workers,
        reload=settings.debug
    )
    server = uvicorn.Server(config)
    await server.serve()

if __name__ == "__main__":
    asyncio.run(main())
