"""
Scheduled publication service.

Each tick re-queries every scheduled article whose publish time has passed
and drives it through the lifecycle engine. Nothing is remembered between
ticks, so a missed or overlapping tick is harmless: already-published
articles short-circuit as no-ops and a lost compare-and-set race comes back
as a conflict that the tick simply ignores.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from api.models.article import ArticleStatusEnum as Status
from database.repositories.article_repo import ArticleRepository
from database.repositories.user_repo import UserRepository
from lifecycle.engine import LifecycleEngine, SCHEDULER_ROLE
from lifecycle.fanout import NotificationFanout
from lifecycle.results import TransitionOutcome
from shared.config import settings
from shared.utils import get_utc_now

logger = logging.getLogger(__name__)


class PromotionStatus:
    """Per-article outcome of a tick."""
    PUBLISHED = "published"
    UNCHANGED = "unchanged"
    CONFLICT = "conflict"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


@dataclass
class TickReport:
    """Summary of one scheduler tick."""
    started_at: datetime
    due: int = 0
    outcomes: Dict[str, str] = field(default_factory=dict)

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes.values() if outcome == status)

    @property
    def published(self) -> int:
        return self.count(PromotionStatus.PUBLISHED)


class ArticleScheduler:
    """Background task that publishes scheduled articles when they fall due."""

    def __init__(
        self,
        engine: LifecycleEngine,
        article_repo: ArticleRepository,
        user_repo: Optional[UserRepository] = None,
        fanout: Optional[NotificationFanout] = None,
        interval: Optional[float] = None,
        article_timeout: Optional[float] = None,
        cleanup_interval: Optional[float] = None,
        clock: Callable[[], datetime] = get_utc_now
    ):
        self.engine = engine
        self.article_repo = article_repo
        self.user_repo = user_repo
        self.fanout = fanout
        self.interval = interval or settings.scheduler_interval
        self.article_timeout = article_timeout or settings.scheduler_article_timeout
        self.cleanup_interval = cleanup_interval or settings.notification_cleanup_interval
        self.clock = clock
        self.running = False
        self._task: Optional[asyncio.Task] = None
        self._last_cleanup: Optional[datetime] = None

    async def start(self):
        """Start the scheduler loop as an owned background task."""
        if self._task is not None and not self._task.done():
            logger.warning("Scheduler is already running")
            return
        self._task = asyncio.create_task(self.run())

    async def stop(self):
        """Stop the loop and wait for it to exit."""
        self.running = False
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Article scheduler stopped")

    async def run(self):
        """Run ticks every interval until stopped."""
        self.running = True
        logger.info(f"Article scheduler started - checking every {self.interval} seconds")

        while self.running:
            try:
                await self.run_tick()
            except Exception as e:
                logger.error(f"Scheduler tick failed: {e}", exc_info=True)

            await self._maybe_cleanup()
            await asyncio.sleep(self.interval)

    async def run_tick(self, now: Optional[datetime] = None) -> TickReport:
        """Publish every scheduled article due at `now`."""
        now = now or self.clock()
        report = TickReport(started_at=now)

        due = await self.article_repo.find_scheduled_due(now)
        report.due = len(due)
        if not due:
            logger.debug("No scheduled articles due")
            return report

        logger.info(f"Scheduler: publishing {len(due)} scheduled articles")
        outcomes = await asyncio.gather(*(self._promote(article) for article in due))
        for article, outcome in zip(due, outcomes):
            report.outcomes[article["_id"]] = outcome

        logger.info(
            f"Scheduler tick done: {report.published} published, "
            f"{report.count(PromotionStatus.CONFLICT)} conflicts, "
            f"{report.count(PromotionStatus.SKIPPED)} skipped, "
            f"{report.count(PromotionStatus.FAILED) + report.count(PromotionStatus.TIMED_OUT)} failed"
        )
        return report

    async def _promote(self, article: Dict[str, Any]) -> str:
        article_id = article["_id"]
        try:
            return await asyncio.wait_for(self._promote_one(article), timeout=self.article_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Publishing scheduled article {article_id} exceeded {self.article_timeout}s; "
                f"a write already issued still completes with its events"
            )
            return PromotionStatus.TIMED_OUT
        except Exception as e:
            logger.error(f"Publishing scheduled article {article_id} failed: {e}", exc_info=True)
            return PromotionStatus.FAILED

    async def _promote_one(self, article: Dict[str, Any]) -> str:
        article_id = article["_id"]

        if self.user_repo is not None and not await self.user_repo.user_exists(article["author_id"]):
            logger.warning(f"Author {article['author_id']} of scheduled article {article_id} no longer exists, skipping")
            return PromotionStatus.SKIPPED

        result = await self.engine.apply_transition(
            article_id,
            Status.PUBLISHED,
            SCHEDULER_ROLE,
            "",
            expected_status=Status.SCHEDULED
        )

        if result.outcome == TransitionOutcome.SUCCESS:
            return PromotionStatus.PUBLISHED if result.changed else PromotionStatus.UNCHANGED
        if result.outcome == TransitionOutcome.CONFLICT:
            logger.info(f"Scheduled article {article_id} changed concurrently, leaving it for the next tick")
            return PromotionStatus.CONFLICT
        logger.warning(f"Scheduled article {article_id} not published: {result.outcome.value} {result.message or ''}")
        return PromotionStatus.SKIPPED

    async def _maybe_cleanup(self):
        if self.fanout is None:
            return
        now = self.clock()
        if self._last_cleanup is not None and now - self._last_cleanup < timedelta(seconds=self.cleanup_interval):
            return
        self._last_cleanup = now
        try:
            await self.fanout.cleanup_old_notifications()
        except Exception as e:
            logger.error(f"Notification cleanup failed: {e}", exc_info=True)
