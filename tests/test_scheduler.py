"""Scheduler tests."""
import asyncio
from datetime import timedelta

import pytest
from unittest.mock import AsyncMock, MagicMock

from api.models.notification import NotificationTypeEnum as NType
from lifecycle.events import EventTopic
from lifecycle.results import TransitionOutcome, TransitionResult
from scheduler.scheduler import ArticleScheduler, PromotionStatus
from shared.utils import get_utc_now


@pytest.fixture
def scheduler(engine, article_store, user_repo, fanout):
    """Scheduler over the in-memory store with a short per-article bound."""
    return ArticleScheduler(
        engine,
        article_store,
        user_repo=user_repo,
        fanout=fanout,
        interval=0.01,
        article_timeout=1.0
    )


class TestRunTick:
    """Tests for ArticleScheduler.run_tick."""

    @pytest.mark.asyncio
    async def test_publishes_due_article(self, scheduler, engine, article_store, notification_repo, events):
        """Test a scheduled article five minutes overdue is published once with one broadcast."""
        now = get_utc_now()
        article_store.add(_id="art_C", status="scheduled", scheduled_publish_at=now - timedelta(minutes=5))

        report = await scheduler.run_tick(now)
        await engine.drain()

        assert report.outcomes == {"art_C": PromotionStatus.PUBLISHED}
        stored = article_store.articles["art_C"]
        assert stored["status"] == "published"
        assert stored["scheduled_publish_at"] is None
        assert stored["published_at"] is not None

        notification_repo.bulk_insert_notifications.assert_awaited_once()
        batch = notification_repo.bulk_insert_notifications.await_args.args[0]
        assert len(batch) == 3
        notice = notification_repo.insert_notification.await_args.args[0]
        assert notice["type"] == NType.ARTICLE_PUBLISHED.value

        topics = [c.args[0] for c in events.publish.await_args_list]
        assert topics.count(EventTopic.ARTICLE_PUBLISHED) == 1

    @pytest.mark.asyncio
    async def test_future_articles_untouched(self, scheduler, article_store):
        """Test articles scheduled in the future stay scheduled."""
        now = get_utc_now()
        article_store.add(_id="art_F", status="scheduled", scheduled_publish_at=now + timedelta(minutes=5))

        report = await scheduler.run_tick(now)

        assert report.due == 0
        assert article_store.articles["art_F"]["status"] == "scheduled"

    @pytest.mark.asyncio
    async def test_two_ticks_publish_once(self, scheduler, engine, article_store, notification_repo):
        """Test back-to-back ticks write once and broadcast once."""
        now = get_utc_now()
        article_store.add(_id="art_C", status="scheduled", scheduled_publish_at=now - timedelta(minutes=5))

        await scheduler.run_tick(now)
        await scheduler.run_tick(now)
        await engine.drain()

        assert len(article_store.writes) == 1
        assert notification_repo.bulk_insert_notifications.await_count == 1

    @pytest.mark.asyncio
    async def test_overlapping_ticks_publish_once(self, scheduler, engine, article_store, notification_repo):
        """Test two ticks racing on the same eligible article commit exactly one write."""
        now = get_utc_now()
        article_store.add(_id="art_C", status="scheduled", scheduled_publish_at=now - timedelta(minutes=5))

        first, second = await asyncio.gather(scheduler.run_tick(now), scheduler.run_tick(now))
        await engine.drain()

        outcomes = sorted([first.outcomes["art_C"], second.outcomes["art_C"]])
        assert PromotionStatus.PUBLISHED in outcomes
        assert outcomes.count(PromotionStatus.PUBLISHED) == 1
        assert len(article_store.writes) == 1
        assert notification_repo.bulk_insert_notifications.await_count == 1

    @pytest.mark.asyncio
    async def test_one_failure_does_not_abort_batch(self, scheduler, engine, article_store):
        """Test an exception on one article leaves the others published."""
        now = get_utc_now()
        for article_id in ("art_1", "art_2", "art_3"):
            article_store.add(_id=article_id, status="scheduled", scheduled_publish_at=now - timedelta(minutes=1))

        real_apply = engine.apply_transition

        async def flaky(article_id, *args, **kwargs):
            if article_id == "art_2":
                raise RuntimeError("storage hiccup")
            return await real_apply(article_id, *args, **kwargs)

        engine.apply_transition = flaky
        report = await scheduler.run_tick(now)

        assert report.outcomes["art_1"] == PromotionStatus.PUBLISHED
        assert report.outcomes["art_2"] == PromotionStatus.FAILED
        assert report.outcomes["art_3"] == PromotionStatus.PUBLISHED
        assert article_store.articles["art_2"]["status"] == "scheduled"

    @pytest.mark.asyncio
    async def test_slow_article_is_abandoned(self, scheduler, engine, article_store):
        """Test a per-article unit exceeding its bound is skipped, not awaited forever."""
        now = get_utc_now()
        article_store.add(_id="art_S", status="scheduled", scheduled_publish_at=now - timedelta(minutes=1))
        scheduler.article_timeout = 0.01

        async def hang(*args, **kwargs):
            await asyncio.sleep(1)

        engine.apply_transition = hang
        report = await scheduler.run_tick(now)

        assert report.outcomes["art_S"] == PromotionStatus.TIMED_OUT

    @pytest.mark.asyncio
    async def test_slow_acknowledged_write_still_announced(
        self, scheduler, engine, article_store, notification_repo, events
    ):
        """Test a write that commits after the per-article bound still gets its events and broadcast."""
        now = get_utc_now()
        article_store.add(_id="art_T", status="scheduled", scheduled_publish_at=now - timedelta(minutes=5))
        scheduler.article_timeout = 0.05
        committed = article_store.compare_and_set_status

        async def slow_ack(*args, **kwargs):
            result = await committed(*args, **kwargs)
            await asyncio.sleep(0.2)
            return result

        article_store.compare_and_set_status = slow_ack
        report = await scheduler.run_tick(now)
        await engine.drain()

        assert report.outcomes["art_T"] == PromotionStatus.TIMED_OUT
        assert article_store.articles["art_T"]["status"] == "published"
        notification_repo.bulk_insert_notifications.assert_awaited_once()
        topics = [c.args[0] for c in events.publish.await_args_list]
        assert topics.count(EventTopic.ARTICLE_PUBLISHED) == 1

    @pytest.mark.asyncio
    async def test_missing_author_skipped(self, scheduler, article_store):
        """Test articles whose author is gone stay scheduled."""
        now = get_utc_now()
        article_store.add(
            _id="art_O", author_id="user_deleted", status="scheduled",
            scheduled_publish_at=now - timedelta(minutes=1)
        )

        report = await scheduler.run_tick(now)

        assert report.outcomes["art_O"] == PromotionStatus.SKIPPED
        assert article_store.articles["art_O"]["status"] == "scheduled"

    @pytest.mark.asyncio
    async def test_conflict_is_benign(self, article_store, user_repo):
        """Test a lost race is reported as a conflict, not a failure."""
        engine = MagicMock()
        engine.apply_transition = AsyncMock(return_value=TransitionResult(
            outcome=TransitionOutcome.CONFLICT, article_id="art_C"
        ))
        scheduler = ArticleScheduler(engine, article_store, user_repo=user_repo, interval=0.01)
        now = get_utc_now()
        article_store.add(_id="art_C", status="scheduled", scheduled_publish_at=now - timedelta(minutes=1))

        report = await scheduler.run_tick(now)

        assert report.outcomes["art_C"] == PromotionStatus.CONFLICT
        kwargs = engine.apply_transition.await_args.kwargs
        assert kwargs["expected_status"] == "scheduled"


class TestLifecycle:
    """Tests for start/stop of the background loop."""

    @pytest.mark.asyncio
    async def test_start_runs_ticks_and_stop_ends_loop(self, scheduler, engine, article_store, notification_repo):
        """Test the owned task publishes due articles and stops cleanly."""
        article_store.add(
            _id="art_L", status="scheduled", scheduled_publish_at=get_utc_now() - timedelta(seconds=1)
        )

        await scheduler.start()
        for _ in range(100):
            published = article_store.articles["art_L"]["status"] == "published"
            if published and notification_repo.cleanup_old_notifications.await_count:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()
        await engine.drain()

        assert article_store.articles["art_L"]["status"] == "published"
        assert not scheduler.running
        notification_repo.cleanup_old_notifications.assert_awaited()

    @pytest.mark.asyncio
    async def test_stop_without_start(self, scheduler):
        """Test stop is safe when never started."""
        await scheduler.stop()
        assert not scheduler.running

    @pytest.mark.asyncio
    async def test_tick_errors_keep_loop_alive(self, scheduler, article_store):
        """Test a failing query is logged and the loop keeps ticking."""
        calls = []

        async def broken(now, limit=0):
            calls.append(now)
            raise RuntimeError("mongo unavailable")

        article_store.find_scheduled_due = broken
        await scheduler.start()
        for _ in range(100):
            if len(calls) >= 2:
                break
            await asyncio.sleep(0.01)
        await scheduler.stop()

        assert len(calls) >= 2
