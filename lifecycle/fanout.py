"""
Notification fanout for article lifecycle events.

Two shapes:

- single-recipient notices (author told about approval, rejection, flagging,
  scheduled publication, comments, likes, new subscribers);
- broadcasts (every subscriber of an author told about a new article, or every
  active user told about a system announcement), persisted as ONE bulk insert
  so a failure leaves zero notifications rather than a half-notified audience.

Nothing in here raises into the lifecycle engine: failures are logged and
swallowed at the public entry points.
"""
import logging
from typing import Any, Dict, List, Optional

from api.models.article import ArticleStatusEnum as Status
from api.models.notification import NotificationTypeEnum as NType
from database.repositories.notification_repo import NotificationRepository
from database.repositories.user_repo import UserRepository
from lifecycle.events import EventEmitter, EventTopic
from lifecycle.mailer import Mailer
from lifecycle.templates import render_all
from shared.config import settings
from shared.utils import generate_notification_id, get_utc_now

logger = logging.getLogger(__name__)


class FanoutFailure(Exception):
    """A fanout batch could not be persisted. Never surfaced to transition callers."""


def notice_type_for(from_status: str, to_status: str) -> Optional[NType]:
    """Author notice type for a transition, or None when nobody is told."""
    if to_status == from_status:
        return None
    if to_status == Status.PUBLISHED:
        if from_status == Status.SCHEDULED:
            return NType.ARTICLE_PUBLISHED
        if from_status in (Status.PENDING, Status.FLAGGED):
            return NType.ARTICLE_APPROVED
        return None
    if to_status == Status.REJECTED:
        return NType.ARTICLE_REJECTED
    if to_status == Status.FLAGGED:
        return NType.ARTICLE_FLAGGED
    return None


class NotificationFanout:
    """Builds, persists and pushes notifications for lifecycle events."""

    def __init__(
        self,
        notification_repo: NotificationRepository,
        user_repo: UserRepository,
        events: Optional[EventEmitter] = None,
        mailer: Optional[Mailer] = None,
        locales: Optional[List[str]] = None,
        default_locale: Optional[str] = None
    ):
        self.notification_repo = notification_repo
        self.user_repo = user_repo
        self.events = events
        self.mailer = mailer
        self.locales = list(locales or settings.supported_locales)
        self.default_locale = default_locale or settings.default_locale

    def _pick_locale(self, user: Optional[Dict[str, Any]]) -> str:
        preferred = (user or {}).get("preferred_language")
        return preferred if preferred in self.locales else self.default_locale

    def build_notification(
        self,
        recipient_id: str,
        notification_type: NType,
        sender_id: Optional[str] = None,
        related_article_id: Optional[str] = None,
        related_user_id: Optional[str] = None,
        locale: Optional[str] = None,
        reason: str = "",
        **params
    ) -> Dict[str, Any]:
        """Build one notification document with every locale rendered."""
        translations = render_all(notification_type, self.locales, reason=reason, **params)
        primary = translations.get(locale or self.default_locale) or translations[self.locales[0]]

        return {
            "_id": generate_notification_id(),
            "recipient_id": recipient_id,
            "sender_id": sender_id,
            "type": NType(notification_type).value,
            "title": primary["title"],
            "message": primary["message"],
            "translations": translations,
            "related_article_id": related_article_id,
            "related_user_id": related_user_id,
            "is_read": False,
            "created_at": get_utc_now()
        }

    async def _push(self, notifications: List[Dict[str, Any]]):
        if self.events is None:
            return
        for notification in notifications:
            await self.events.publish_to_user(
                notification["recipient_id"],
                EventTopic.NOTIFICATION,
                {"notification": notification}
            )

    async def _persist_batch(self, notifications: List[Dict[str, Any]]) -> int:
        try:
            inserted = await self.notification_repo.bulk_insert_notifications(notifications)
        except Exception as e:
            raise FanoutFailure(f"bulk insert of {len(notifications)} notifications failed: {e}") from e
        await self._push(notifications)
        return inserted

    async def _persist_one(self, notification: Dict[str, Any]) -> Dict[str, Any]:
        try:
            await self.notification_repo.insert_notification(notification)
        except Exception as e:
            raise FanoutFailure(f"insert of {notification['type']} notification failed: {e}") from e
        await self._push([notification])
        return notification

    async def handle_transition(
        self,
        article: Dict[str, Any],
        from_status: str,
        to_status: str,
        reason: str = ""
    ):
        """Run every fanout a committed status change calls for."""
        notice_type = notice_type_for(from_status, to_status)
        if notice_type is None:
            return

        try:
            author = await self.user_repo.get_user(article["author_id"])
        except Exception as e:
            logger.error(f"Author lookup failed for article {article['_id']}: {e}", exc_info=True)
            author = None

        await self.notify_author(article, notice_type, reason=reason, author=author)

        if notice_type in (NType.ARTICLE_APPROVED, NType.ARTICLE_REJECTED, NType.ARTICLE_FLAGGED):
            await self._mail_author(author, article, to_status, reason)

        if to_status == Status.PUBLISHED:
            await self.broadcast_new_article(article, author=author)

    async def notify_author(
        self,
        article: Dict[str, Any],
        notification_type: NType,
        reason: str = "",
        author: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """Create the single-recipient notice for an article's author."""
        notification = self.build_notification(
            recipient_id=article["author_id"],
            notification_type=notification_type,
            related_article_id=article["_id"],
            locale=self._pick_locale(author),
            reason=reason,
            title=article.get("title", "")
        )
        try:
            return await self._persist_one(notification)
        except FanoutFailure as e:
            logger.error(f"Author notice for article {article['_id']} failed: {e}", exc_info=True)
            return None

    async def _mail_author(
        self,
        author: Optional[Dict[str, Any]],
        article: Dict[str, Any],
        status: str,
        reason: str
    ):
        if self.mailer is None or not author or not author.get("email"):
            return
        try:
            ok = await self.mailer.notify_moderation_action(author, article, Status(status).value, reason)
            if not ok:
                logger.warning(f"Moderation email for article {article['_id']} was not accepted")
        except Exception as e:
            logger.error(f"Moderation email for article {article['_id']} failed: {e}", exc_info=True)

    async def broadcast_new_article(
        self,
        article: Dict[str, Any],
        author: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Notify every active subscriber of the article's author.

        Returns the number of notifications persisted; 0 when the author is
        gone, nobody subscribes, or the batch failed.
        """
        author_id = article["author_id"]
        try:
            if author is None:
                author = await self.user_repo.get_user(author_id)
            if not author:
                logger.warning(f"Author {author_id} not found, skipping broadcast for {article['_id']}")
                return 0

            subscribers = await self.user_repo.find_subscribers(author_id)
            notifications = [
                self.build_notification(
                    recipient_id=subscriber["_id"],
                    notification_type=NType.NEW_ARTICLE,
                    sender_id=author_id,
                    related_article_id=article["_id"],
                    related_user_id=author_id,
                    locale=self._pick_locale(subscriber),
                    title=article.get("title", ""),
                    author=author.get("name", "")
                )
                for subscriber in subscribers
            ]
            if not notifications:
                return 0

            inserted = await self._persist_batch(notifications)
            logger.info(f"Notified {inserted} subscribers of article {article['_id']}")
            return inserted
        except Exception as e:
            logger.error(f"Broadcast for article {article['_id']} failed: {e}", exc_info=True)
            return 0

    async def notify_new_comment(
        self,
        article: Dict[str, Any],
        commenter: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Tell an author someone commented; silent when they commented themselves."""
        return await self._notify_activity(article, commenter, NType.NEW_COMMENT)

    async def notify_new_like(
        self,
        article: Dict[str, Any],
        liker: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Tell an author someone liked the article; silent for self-likes."""
        return await self._notify_activity(article, liker, NType.NEW_LIKE)

    async def _notify_activity(
        self,
        article: Dict[str, Any],
        actor: Dict[str, Any],
        notification_type: NType
    ) -> Optional[Dict[str, Any]]:
        if str(article["author_id"]) == str(actor["_id"]):
            return None

        notification = self.build_notification(
            recipient_id=article["author_id"],
            notification_type=notification_type,
            sender_id=actor["_id"],
            related_article_id=article["_id"],
            related_user_id=actor["_id"],
            title=article.get("title", ""),
            actor=actor.get("name", "")
        )
        try:
            return await self._persist_one(notification)
        except FanoutFailure as e:
            logger.error(f"{notification_type.value} notice for {article['_id']} failed: {e}", exc_info=True)
            return None

    async def notify_new_subscriber(
        self,
        publisher: Dict[str, Any],
        subscriber: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """Tell a publisher they gained a subscriber, in-app and by mail."""
        notification = self.build_notification(
            recipient_id=publisher["_id"],
            notification_type=NType.NEW_SUBSCRIBER,
            sender_id=subscriber["_id"],
            related_user_id=subscriber["_id"],
            locale=self._pick_locale(publisher),
            actor=subscriber.get("name", "")
        )
        try:
            created = await self._persist_one(notification)
        except FanoutFailure as e:
            logger.error(f"Subscriber notice for {publisher['_id']} failed: {e}", exc_info=True)
            return None

        if self.mailer is not None and publisher.get("email"):
            try:
                await self.mailer.notify_new_subscriber(publisher, subscriber)
            except Exception as e:
                logger.error(f"Subscriber email to {publisher['_id']} failed: {e}", exc_info=True)
        return created

    async def send_system_announcement(
        self,
        title: str,
        message: str,
        translations: Optional[Dict[str, Dict[str, str]]] = None,
        target_role: Optional[str] = None
    ) -> int:
        """Broadcast an announcement to all active users (optionally one role)."""
        try:
            user_ids = await self.user_repo.find_active_user_ids(role=target_role)
            now = get_utc_now()
            notifications = [
                {
                    "_id": generate_notification_id(),
                    "recipient_id": user_id,
                    "sender_id": None,
                    "type": NType.SYSTEM_ANNOUNCEMENT.value,
                    "title": title,
                    "message": message,
                    "translations": translations or {},
                    "related_article_id": None,
                    "related_user_id": None,
                    "is_read": False,
                    "created_at": now
                }
                for user_id in user_ids
            ]
            if not notifications:
                return 0
            return await self._persist_batch(notifications)
        except Exception as e:
            logger.error(f"System announcement failed: {e}", exc_info=True)
            return 0

    async def cleanup_old_notifications(self, retention_days: Optional[int] = None) -> int:
        """Delete read notifications older than the retention window."""
        days = retention_days or settings.notification_retention_days
        deleted = await self.notification_repo.cleanup_old_notifications(days)
        logger.info(f"Cleaned up {deleted} old notifications")
        return deleted
