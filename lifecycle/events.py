"""Event emitter publishing lifecycle events to Redis for WebSocket listeners."""
import json
import logging
from typing import Any, Dict
import redis.asyncio as redis
from shared.config import settings

logger = logging.getLogger(__name__)


class EventTopic:
    """Event topic constants."""
    ARTICLE_STATUS_CHANGED = "article_status_changed"
    ARTICLE_PUBLISHED = "article_published"
    NOTIFICATION = "notification"


class EventEmitter:
    """
    Fire-and-forget publisher over Redis pub/sub.

    Errors are logged and swallowed: a lost event must never fail the
    transition that produced it.
    """

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client
        self.event_channel = settings.redis_event_channel
        self.user_channel_prefix = settings.redis_user_channel_prefix

    def user_channel(self, user_id: str) -> str:
        """Channel carrying push messages for a single user."""
        return f"{self.user_channel_prefix}:{user_id}"

    async def publish(self, topic: str, payload: Dict[str, Any]) -> bool:
        """Publish an event to every connected client."""
        message = {"type": topic, **payload}
        return await self._send(self.event_channel, message)

    async def publish_to_user(self, user_id: str, topic: str, payload: Dict[str, Any]) -> bool:
        """Push an event to a single user's channel."""
        message = {"type": topic, "user_id": user_id, **payload}
        return await self._send(self.user_channel(user_id), message)

    async def _send(self, channel: str, message: Dict[str, Any]) -> bool:
        try:
            await self.redis.publish(channel, json.dumps(message, default=str))
            return True
        except Exception as e:
            logger.error(f"Failed to publish {message.get('type')} on {channel}: {e}", exc_info=True)
            return False
