"""Article repository for lifecycle operations on the Articles collection."""
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from api.models.article import ArticleStatusEnum
from shared.utils import generate_article_id, get_utc_now


class WriteOutcome:
    """Outcome constants for conditional writes."""
    SUCCESS = "SUCCESS"
    CONFLICT = "CONFLICT"
    NOT_FOUND = "NOT_FOUND"


class ArticleRepository:
    """Repository for Article documents."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.collection = db.articles

    async def create_article(
        self,
        title: str,
        content: str,
        author_id: str,
        status: ArticleStatusEnum,
        category: Optional[str] = None,
        scheduled_publish_at: Optional[datetime] = None
    ) -> Dict[str, Any]:
        """Create a new article record."""
        now = get_utc_now()
        status = ArticleStatusEnum(status)

        article = {
            "_id": generate_article_id(),
            "title": title,
            "content": content,
            "category": category,
            "author_id": author_id,
            "status": status.value,
            "scheduled_publish_at": scheduled_publish_at if status == ArticleStatusEnum.SCHEDULED else None,
            "reviewer_comment": "",
            "published_at": None,
            "created_at": now,
            "updated_at": now
        }

        await self.collection.insert_one(article)
        return article

    async def get_article(self, article_id: str) -> Optional[Dict[str, Any]]:
        """Get an article by ID."""
        return await self.collection.find_one({"_id": article_id})

    async def compare_and_set_status(
        self,
        article_id: str,
        expected_status: str,
        fields: Dict[str, Any]
    ) -> Tuple[str, Optional[Dict[str, Any]]]:
        """
        Apply fields only if the stored status still equals expected_status.

        Returns (WriteOutcome, updated article). The filter on status is the
        single serialization point for concurrent writers of one article.
        """
        update = dict(fields)
        update["updated_at"] = get_utc_now()

        result = await self.collection.find_one_and_update(
            {"_id": article_id, "status": expected_status},
            {"$set": update},
            return_document=ReturnDocument.AFTER
        )
        if result is not None:
            return WriteOutcome.SUCCESS, result

        # Nothing matched: either the article is gone or its status moved on.
        count = await self.collection.count_documents({"_id": article_id}, limit=1)
        if count == 0:
            return WriteOutcome.NOT_FOUND, None
        return WriteOutcome.CONFLICT, None

    async def find_scheduled_due(self, now: datetime, limit: int = 0) -> List[Dict[str, Any]]:
        """Get every scheduled article whose publish time has elapsed."""
        cursor = self.collection.find({
            "status": ArticleStatusEnum.SCHEDULED.value,
            "scheduled_publish_at": {"$lte": now}
        }).sort("scheduled_publish_at", 1)
        if limit:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit or None)
