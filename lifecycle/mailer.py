"""
Mail transport (mock implementation).

Messages are written to the log instead of being delivered; a real
transport only has to provide the same send() coroutine.
"""
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


class Mailer:
    """Best-effort mail sender used for author notices."""

    async def send(self, to: str, subject: str, body: str) -> bool:
        """Send one message. Returns True when the transport accepted it."""
        logger.info(f"Email to={to} subject={subject!r}: {body}")
        return True

    async def notify_moderation_action(
        self,
        author: Dict[str, Any],
        article: Dict[str, Any],
        status: str,
        reason: str = ""
    ) -> bool:
        """Tell an author that a moderator changed their article's status."""
        subject = f"Article Status Update: {article['title']}"
        if status == "published":
            body = f'Congratulations! Your article "{article["title"]}" has been approved and published.'
        else:
            body = f'Your article "{article["title"]}" was {status}.'
            if reason:
                body += f" Reason: {reason}"

        return await self.send(author["email"], subject, body)

    async def notify_new_subscriber(self, publisher: Dict[str, Any], subscriber: Dict[str, Any]) -> bool:
        """Tell a publisher they gained a subscriber."""
        return await self.send(
            publisher["email"],
            "New Subscriber!",
            f"{subscriber.get('name', 'Someone')} has subscribed to your news feed."
        )
