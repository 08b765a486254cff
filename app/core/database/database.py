from tortoise import Tortoise
from loguru import logger
from app.core.config import settings

TORTOISE_ORM = {
    "connections": {"default": settings.database_url},
    "apps": {
        "models": {
            "models": ["app.models"],
            "default_connection": "default",
        }
    },
    "use_tz": True,
    "timezone": "UTC",
}


class DatabaseManager:
    @staticmethod
    async def init(config: dict | None = None):
        """Initialize database and create missing tables"""
        await Tortoise.init(config=config or TORTOISE_ORM)
        await Tortoise.generate_schemas(safe=True)
        logger.info("✅ Database schema initialized")

    @staticmethod
    async def close():
        """Close database connections"""
        await Tortoise.close_connections()
        logger.info("🛑 Database connections closed")
