from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Конфигурация приложения из .env и другие настройки"""

    # Основные настройки
    app_name: str = "Marketplace Settlement API"
    version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 3
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite://db.sqlite3"

    # Celery
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    # CORS settings
    CORS_ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Kafka Settings (пустой bootstrap = Kafka выключена)
    KAFKA_BOOTSTRAP_SERVERS: str = ""
    KAFKA_TOPIC_NOTIFICATIONS: str = "notifications"
    KAFKA_TOPIC_ALERTS: str = "operational-alerts"

    # Stripe
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    STRIPE_SIGNATURE_TOLERANCE: int = 300

    # PayPal
    PAYPAL_CLIENT_ID: str | None = None
    PAYPAL_CLIENT_SECRET: str | None = None
    PAYPAL_WEBHOOK_ID: str | None = None
    PAYPAL_API_BASE: str = "https://api-m.paypal.com"

    # MangoPay
    MANGOPAY_WEBHOOK_SECRET: str | None = None

    # Adyen (hex-encoded HMAC key)
    ADYEN_WEBHOOK_HMAC_KEY: str | None = None

    # Fees, used when platform_fees has no active row
    DEFAULT_BUYER_FEE: Decimal = Decimal("2.00")
    DEFAULT_SELLER_COMMISSION_RATE: Decimal = Decimal("20")

    # Auctions
    DEFAULT_BID_INCREMENT: Decimal = Decimal("1.00")
    AUCTION_CLOSER_INTERVAL_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def kafka_enabled(self) -> bool:
        return bool(self.KAFKA_BOOTSTRAP_SERVERS)


settings = Settings()
