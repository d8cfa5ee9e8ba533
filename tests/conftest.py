"""Pytest configuration and fixtures."""
import asyncio
import copy
from datetime import timedelta
from typing import Any, Dict, List, Optional

import pytest
from unittest.mock import MagicMock, AsyncMock

from database.repositories.article_repo import WriteOutcome
from lifecycle.engine import LifecycleEngine
from lifecycle.fanout import NotificationFanout
from shared.utils import get_utc_now


class InMemoryArticleStore:
    """
    Article repository double that enforces compare-and-set like Mongo's
    filtered find_one_and_update. Reads yield to the loop so concurrent
    callers can interleave between load and write.
    """

    def __init__(self):
        self.articles: Dict[str, Dict[str, Any]] = {}
        self.writes: List[Dict[str, Any]] = []

    def add(self, **fields) -> Dict[str, Any]:
        now = get_utc_now()
        article = {
            "title": "Test Article",
            "content": "Body",
            "category": "news",
            "author_id": "user_author",
            "status": "draft",
            "scheduled_publish_at": None,
            "reviewer_comment": "",
            "published_at": None,
            "created_at": now,
            "updated_at": now,
        }
        article.update(fields)
        self.articles[article["_id"]] = article
        return article

    async def create_article(self, title, content, author_id, status, category=None, scheduled_publish_at=None):
        article = self.add(
            _id=f"art_{len(self.articles) + 1:03d}",
            title=title,
            content=content,
            author_id=author_id,
            status=getattr(status, "value", status),
            category=category,
            scheduled_publish_at=scheduled_publish_at,
        )
        return copy.deepcopy(article)

    async def get_article(self, article_id: str) -> Optional[Dict[str, Any]]:
        article = self.articles.get(article_id)
        snapshot = copy.deepcopy(article)
        await asyncio.sleep(0)
        return snapshot

    async def compare_and_set_status(self, article_id, expected_status, fields):
        article = self.articles.get(article_id)
        if article is None:
            return WriteOutcome.NOT_FOUND, None
        if article["status"] != expected_status:
            return WriteOutcome.CONFLICT, None
        article.update(fields)
        article["updated_at"] = get_utc_now()
        self.writes.append({"article_id": article_id, **fields})
        return WriteOutcome.SUCCESS, copy.deepcopy(article)

    async def find_scheduled_due(self, now, limit=0):
        due = [
            copy.deepcopy(a) for a in self.articles.values()
            if a["status"] == "scheduled" and a["scheduled_publish_at"] and a["scheduled_publish_at"] <= now
        ]
        return sorted(due, key=lambda a: a["scheduled_publish_at"])


@pytest.fixture
def article_store():
    """In-memory article repository with compare-and-set semantics."""
    return InMemoryArticleStore()


@pytest.fixture
def mock_mongo_db():
    """Create mock MongoDB database."""
    db = MagicMock()

    # Mock collections
    db.articles = MagicMock()
    db.notifications = MagicMock()
    db.users = MagicMock()

    # Mock common operations
    db.articles.find_one = AsyncMock()
    db.articles.insert_one = AsyncMock()
    db.articles.find_one_and_update = AsyncMock()
    db.articles.count_documents = AsyncMock(return_value=1)
    db.articles.find = MagicMock()

    db.notifications.insert_one = AsyncMock()
    db.notifications.insert_many = AsyncMock()
    db.notifications.delete_many = AsyncMock()

    db.users.find_one = AsyncMock()
    db.users.count_documents = AsyncMock(return_value=1)
    db.users.find = MagicMock()

    return db


@pytest.fixture
def mock_redis_client():
    """Create mock Redis client."""
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    return redis


@pytest.fixture
def sample_author():
    """Create sample author (publisher) data."""
    return {
        "_id": "user_author",
        "name": "Asha Publisher",
        "email": "asha@example.com",
        "role": "publisher",
        "status": "active",
        "preferred_language": "en",
        "subscriptions": [],
    }


@pytest.fixture
def sample_subscribers():
    """Create sample subscribers of the author."""
    return [
        {"_id": "user_sub1", "preferred_language": "en"},
        {"_id": "user_sub2", "preferred_language": "np"},
        {"_id": "user_sub3"},
    ]


@pytest.fixture
def notification_repo():
    """Notification repository double recording every write."""
    repo = MagicMock()
    repo.insert_notification = AsyncMock(side_effect=lambda n: n)
    repo.bulk_insert_notifications = AsyncMock(side_effect=lambda batch: len(batch))
    repo.cleanup_old_notifications = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def user_repo(sample_author, sample_subscribers):
    """User repository double with one author and three subscribers."""
    repo = MagicMock()
    repo.get_user = AsyncMock(side_effect=lambda user_id: sample_author if user_id == sample_author["_id"] else None)
    repo.user_exists = AsyncMock(side_effect=lambda user_id: user_id == sample_author["_id"])
    repo.find_subscribers = AsyncMock(return_value=sample_subscribers)
    repo.find_active_user_ids = AsyncMock(return_value=["user_author", "user_sub1"])
    return repo


@pytest.fixture
def events():
    """Event emitter double."""
    emitter = MagicMock()
    emitter.publish = AsyncMock(return_value=True)
    emitter.publish_to_user = AsyncMock(return_value=True)
    return emitter


@pytest.fixture
def mailer():
    """Mailer double."""
    m = MagicMock()
    m.send = AsyncMock(return_value=True)
    m.notify_moderation_action = AsyncMock(return_value=True)
    m.notify_new_subscriber = AsyncMock(return_value=True)
    return m


@pytest.fixture
def fanout(notification_repo, user_repo, events, mailer):
    """Real fanout over recording doubles."""
    return NotificationFanout(
        notification_repo=notification_repo,
        user_repo=user_repo,
        events=events,
        mailer=mailer,
        locales=["en", "np"],
        default_locale="en",
    )


@pytest.fixture
def engine(article_store, fanout, events):
    """Lifecycle engine over the in-memory store."""
    return LifecycleEngine(article_store, fanout=fanout, events=events, fanout_timeout=1.0)


@pytest.fixture
def sample_article():
    """Create sample article document."""
    now = get_utc_now()
    return {
        "_id": "art_test001",
        "title": "Test Article Title",
        "content": "This is the test article content...",
        "category": "Technology",
        "author_id": "user_author",
        "status": "pending",
        "scheduled_publish_at": None,
        "reviewer_comment": "",
        "published_at": None,
        "created_at": now - timedelta(hours=1),
        "updated_at": now - timedelta(hours=1),
    }
