"""User repository: read-only lookups the lifecycle core needs."""
from typing import Optional, List, Dict, Any
from motor.motor_asyncio import AsyncIOMotorDatabase


class UserStatus:
    """User account status constants."""
    ACTIVE = "active"
    SUSPENDED = "suspended"


class UserRepository:
    """Repository for User lookups."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db.users

    async def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get a user by ID."""
        return await self.collection.find_one({"_id": user_id})

    async def user_exists(self, user_id: str) -> bool:
        """Check whether a user still exists."""
        count = await self.collection.count_documents({"_id": user_id}, limit=1)
        return count > 0

    async def find_subscribers(self, author_id: str) -> List[Dict[str, Any]]:
        """Get all active users whose subscriptions contain author_id."""
        cursor = self.collection.find(
            {"subscriptions": author_id, "status": UserStatus.ACTIVE},
            {"_id": 1, "preferred_language": 1}
        )
        return await cursor.to_list(length=None)

    async def find_active_user_ids(self, role: Optional[str] = None) -> List[str]:
        """Get IDs of all active users, optionally filtered by role."""
        query = {"status": UserStatus.ACTIVE}
        if role:
            query["role"] = role

        cursor = self.collection.find(query, {"_id": 1})
        users = await cursor.to_list(length=None)
        return [user["_id"] for user in users]
