"""Standalone scheduler entry point."""
import asyncio
import signal
import logging
from database.connection import DatabaseConnection
from database.repositories.user_repo import UserRepository
from lifecycle.engine import build_engine
from scheduler.scheduler import ArticleScheduler
from shared.config import settings

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main():
    """Main entry point for the scheduler service."""
    logger.info("Starting article scheduler process")

    # Initialize database connections
    db = await DatabaseConnection.init_mongo()
    redis_client = await DatabaseConnection.init_redis()

    engine = build_engine(db, redis_client)
    scheduler = ArticleScheduler(
        engine,
        engine.article_repo,
        user_repo=UserRepository(db),
        fanout=engine.fanout
    )

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def signal_handler():
        logger.info("Received shutdown signal")
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await scheduler.start()
        await stop_event.wait()
    except Exception as e:
        logger.error(f"Scheduler error: {e}", exc_info=True)
    finally:
        await scheduler.stop()
        await engine.drain()
        await DatabaseConnection.close_connections()
        logger.info("Scheduler shutdown complete")


if __name__ == "__main__":
    asyncio.run(main())
