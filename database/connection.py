"""Database connection setup for MongoDB and Redis."""
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
import redis.asyncio as redis
from shared.config import settings


class DatabaseConnection:
    """Manages MongoDB and Redis connections."""

    _mongo_client: Optional[AsyncIOMotorClient] = None
    _redis_client: Optional[redis.Redis] = None
    _db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def init_mongo(cls) -> AsyncIOMotorDatabase:
        """Initialize MongoDB connection."""
        if cls._mongo_client is None:
            cls._mongo_client = AsyncIOMotorClient(settings.mongo_url, tz_aware=True)
            cls._db = cls._mongo_client[settings.mongo_db_name]
            await cls._setup_indexes()
        return cls._db

    @classmethod
    async def _setup_indexes(cls):
        """Set up MongoDB indexes for the lifecycle queries."""
        if cls._db is None:
            return

        # Articles collection indexes
        await cls._db.articles.create_index("author_id")
        await cls._db.articles.create_index([("status", 1), ("scheduled_publish_at", 1)])

        # Notifications collection indexes
        await cls._db.notifications.create_index([("recipient_id", 1), ("created_at", -1)])
        await cls._db.notifications.create_index([("is_read", 1), ("created_at", 1)])

        # Users collection indexes
        await cls._db.users.create_index("subscriptions")

    @classmethod
    async def init_redis(cls) -> redis.Redis:
        """Initialize Redis connection."""
        if cls._redis_client is None:
            cls._redis_client = redis.from_url(
                settings.redis_url,
                decode_responses=True
            )
        return cls._redis_client

    @classmethod
    async def close_connections(cls):
        """Close all database connections."""
        if cls._mongo_client:
            cls._mongo_client.close()
            cls._mongo_client = None
            cls._db = None
        if cls._redis_client:
            await cls._redis_client.aclose()
            cls._redis_client = None
