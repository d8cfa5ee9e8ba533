"""
Article lifecycle engine.

The single gate through which an article's status changes:

    load -> short-circuit no-ops -> policy decision -> conditional write
         -> (background) domain events + notification fanout

The conditional write only commits if the stored status still equals the
status read at load time, so concurrent callers on one article serialize on
that write: one wins, the rest get CONFLICT. Events and fanout run after the
commit as background tasks; their failures are logged and never undo or fail
the transition.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Dict, Optional, Set, Tuple, Union
from motor.motor_asyncio import AsyncIOMotorDatabase
import redis.asyncio as redis

from api.models.article import ArticleStatusEnum as Status, UserRoleEnum as Role
from database.repositories.article_repo import ArticleRepository, WriteOutcome
from database.repositories.notification_repo import NotificationRepository
from database.repositories.user_repo import UserRepository
from lifecycle.events import EventEmitter, EventTopic
from lifecycle.fanout import NotificationFanout, notice_type_for
from lifecycle.mailer import Mailer
from lifecycle.policy import SCHEDULER_AUTHORITY, decide, resolve_create_status
from lifecycle.results import CONFLICT_MESSAGE, TransitionOutcome, TransitionResult
from shared.config import settings
from shared.utils import ensure_utc, format_datetime, get_utc_now

logger = logging.getLogger(__name__)

# Authority the scheduler acts with. Only scheduler code passes it; no HTTP
# route builds a request from it.
SCHEDULER_ROLE = SCHEDULER_AUTHORITY


def _status_value(status: Union[str, Status]) -> str:
    return status.value if isinstance(status, Status) else str(status)


class LifecycleEngine:
    """Validates, persists and announces article status changes."""

    def __init__(
        self,
        article_repo: ArticleRepository,
        fanout: Optional[NotificationFanout] = None,
        events: Optional[EventEmitter] = None,
        fanout_timeout: Optional[float] = None
    ):
        self.article_repo = article_repo
        self.fanout = fanout
        self.events = events
        self.fanout_timeout = fanout_timeout or settings.fanout_timeout
        self._background: Set[asyncio.Task] = set()

    async def create_article(
        self,
        payload: Dict[str, Any],
        author_id: str,
        actor_role: Union[str, Role]
    ) -> Dict[str, Any]:
        """
        Create an article in the status its author is allowed to start with.

        A scheduled article needs a publish time; without one it starts as a
        draft so that scheduled_publish_at is set exactly when status is
        scheduled.
        """
        status = resolve_create_status(payload.get("status"), actor_role)
        scheduled_at = ensure_utc(payload.get("scheduled_publish_at"))
        if status == Status.SCHEDULED and scheduled_at is None:
            logger.info("Scheduled article requested without a publish time, creating as draft")
            status = Status.DRAFT

        article = await self.article_repo.create_article(
            title=payload["title"],
            content=payload["content"],
            author_id=author_id,
            status=status,
            category=payload.get("category"),
            scheduled_publish_at=scheduled_at if status == Status.SCHEDULED else None
        )
        logger.info(f"Created article {article['_id']} as {status.value} for author {author_id}")
        return article

    async def request_transition(
        self,
        article_id: str,
        new_status: Union[str, Status],
        actor_role: Union[str, Role],
        reason: str = ""
    ) -> TransitionResult:
        """Entry point for interactive callers (moderators and authors)."""
        return await self.apply_transition(article_id, new_status, actor_role, reason)

    async def apply_transition(
        self,
        article_id: str,
        requested_status: Union[str, Status],
        actor_role: Union[str, Role],
        reason: str = "",
        expected_status: Optional[Union[str, Status]] = None
    ) -> TransitionResult:
        """
        Move one article to requested_status.

        expected_status, when given, additionally requires the article to be in
        that status at load time; the scheduler uses it so it only ever
        promotes articles that are still scheduled.
        """
        requested = _status_value(requested_status)

        article = await self.article_repo.get_article(article_id)
        if article is None:
            return TransitionResult(
                outcome=TransitionOutcome.NOT_FOUND,
                article_id=article_id,
                to_status=requested,
                message=f"Article {article_id} not found"
            )

        current = article["status"]
        if requested == current:
            return TransitionResult(
                outcome=TransitionOutcome.SUCCESS,
                article_id=article_id,
                article=article,
                from_status=current,
                to_status=requested
            )

        if expected_status is not None and current != _status_value(expected_status):
            return TransitionResult(
                outcome=TransitionOutcome.CONFLICT,
                article_id=article_id,
                article=article,
                from_status=current,
                to_status=requested,
                message=CONFLICT_MESSAGE
            )

        decision = decide(current, requested, actor_role)
        if not decision.allowed:
            logger.debug(f"Denied {current} -> {requested} on {article_id} for {actor_role}: {decision.message}")
            return TransitionResult(
                outcome=decision.outcome,
                article_id=article_id,
                article=article,
                from_status=current,
                to_status=requested,
                message=decision.message
            )

        # Once the write is issued it runs to completion even if the caller is
        # cancelled, so a committed change always gets its events and fanout.
        commit = self._spawn(self._commit(article_id, current, requested, reason))
        outcome, updated = await asyncio.shield(commit)

        if outcome == WriteOutcome.NOT_FOUND:
            return TransitionResult(
                outcome=TransitionOutcome.NOT_FOUND,
                article_id=article_id,
                from_status=current,
                to_status=requested,
                message=f"Article {article_id} not found"
            )
        if outcome == WriteOutcome.CONFLICT:
            logger.info(f"Conflict moving {article_id} {current} -> {requested}")
            return TransitionResult(
                outcome=TransitionOutcome.CONFLICT,
                article_id=article_id,
                from_status=current,
                to_status=requested,
                message=CONFLICT_MESSAGE
            )

        return TransitionResult(
            outcome=TransitionOutcome.SUCCESS,
            article_id=article_id,
            article=updated,
            from_status=current,
            to_status=requested,
            changed=True
        )

    async def _commit(
        self,
        article_id: str,
        current: str,
        requested: str,
        reason: str
    ) -> Tuple[WriteOutcome, Optional[Dict[str, Any]]]:
        fields = self._build_update(requested, reason, get_utc_now())
        outcome, updated = await self.article_repo.compare_and_set_status(article_id, current, fields)
        if outcome != WriteOutcome.SUCCESS:
            return outcome, updated

        logger.info(f"Article {article_id}: {current} -> {requested}")
        self._spawn(self._emit_events(updated, current, requested, reason))
        if self.fanout is not None and notice_type_for(current, requested) is not None:
            self._spawn(self._run_fanout(updated, current, requested, reason))
        return outcome, updated

    @staticmethod
    def _build_update(requested: str, reason: str, now: datetime) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "status": Status(requested).value,
            # No transition leads into scheduled, so the publish time is stale.
            "scheduled_publish_at": None,
        }
        if requested == Status.PUBLISHED:
            fields["published_at"] = now
            if reason:
                fields["reviewer_comment"] = reason
        elif requested in (Status.REJECTED, Status.FLAGGED):
            fields["reviewer_comment"] = reason
        return fields

    def _spawn(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def _emit_events(self, article: Dict[str, Any], from_status: str, to_status: str, reason: str):
        if self.events is None:
            return
        try:
            await self.events.publish(EventTopic.ARTICLE_STATUS_CHANGED, {
                "article_id": article["_id"],
                "from_status": from_status,
                "to_status": to_status,
                "reason": reason
            })
            if to_status == Status.PUBLISHED:
                await self.events.publish(EventTopic.ARTICLE_PUBLISHED, {
                    "article_id": article["_id"],
                    "author_id": article["author_id"],
                    "title": article.get("title"),
                    "published_at": format_datetime(article.get("published_at"))
                })
        except Exception as e:
            logger.error(f"Event emission for article {article['_id']} failed: {e}", exc_info=True)

    async def _run_fanout(self, article: Dict[str, Any], from_status: str, to_status: str, reason: str):
        try:
            await asyncio.wait_for(
                self.fanout.handle_transition(article, from_status, to_status, reason),
                timeout=self.fanout_timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Fanout for article {article['_id']} timed out after {self.fanout_timeout}s")
        except Exception as e:
            logger.error(f"Fanout for article {article['_id']} failed: {e}", exc_info=True)

    @property
    def pending_tasks(self) -> int:
        return len(self._background)

    async def drain(self):
        """Wait for all background event and fanout tasks to finish."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)


def build_engine(db: AsyncIOMotorDatabase, redis_client: redis.Redis) -> LifecycleEngine:
    """Wire the engine with its Mongo repositories, Redis events and mailer."""
    events = EventEmitter(redis_client)
    fanout = NotificationFanout(
        notification_repo=NotificationRepository(db),
        user_repo=UserRepository(db),
        events=events,
        mailer=Mailer()
    )
    return LifecycleEngine(ArticleRepository(db), fanout=fanout, events=events)
