from .database import DatabaseManager, TORTOISE_ORM
