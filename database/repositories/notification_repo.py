"""Notification repository for the Notifications collection."""
from datetime import timedelta
from typing import List, Dict, Any
from motor.motor_asyncio import AsyncIOMotorDatabase
from shared.utils import get_utc_now


class NotificationRepository:
    """Repository for Notification documents. Append-only from the lifecycle core."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db.notifications

    async def insert_notification(self, notification: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a single notification."""
        await self.collection.insert_one(notification)
        return notification

    async def bulk_insert_notifications(self, notifications: List[Dict[str, Any]]) -> int:
        """
        Insert a batch of notifications in one storage call.

        Returns the number of inserted documents. Any error propagates; the
        caller treats a failed batch as a failed fanout.
        """
        if not notifications:
            return 0
        result = await self.collection.insert_many(notifications, ordered=True)
        return len(result.inserted_ids)

    async def cleanup_old_notifications(self, retention_days: int = 30) -> int:
        """Delete notifications that are read and older than the retention window."""
        cutoff = get_utc_now() - timedelta(days=retention_days)
        result = await self.collection.delete_many({
            "created_at": {"$lt": cutoff},
            "is_read": True
        })
        return result.deleted_count
