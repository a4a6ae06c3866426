"""ReplyRouter implementation."""

from typing import Protocol

import httpx

from ..errors import ConfigurationError, ReplyDeliveryError
from ..event_bus import IEventBus
from ..logging_config import get_logger, log_context
from ..models import BusMessage, Topic
from ..tracker import ITracker

logger = get_logger(__name__)


class IReplySender(Protocol):
    """Delivers a reply text through the messaging channel."""

    async def reply(self, reply_token: str, text: str) -> bool:
        ...


class ReplyRouter:
    """Delivers REPLY messages to users with the turn's reply token."""

    actor = "reply_router"

    def __init__(
        self,
        event_bus: IEventBus,
        sender: IReplySender,
        tracker: ITracker,
    ):
        self._event_bus = event_bus
        self._sender = sender
        self._tracker = tracker

    async def start(self) -> None:
        """Subscribe to REPLY topic."""
        self._event_bus.subscribe(Topic.REPLY, self._handle_reply)

    async def stop(self) -> None:
        self._event_bus.unsubscribe(Topic.REPLY, self._handle_reply)

    async def _handle_reply(self, bus_message: BusMessage) -> None:
        payload = bus_message.payload
        user_id = payload.get("user_id", "unknown")
        reply_token = payload.get("reply_token")
        content = payload.get("content", "")

        if not reply_token:
            logger.warning(f"No reply token for user {user_id}, reply dropped")
            await self._track("reply_dropped", user_id, content, reason="no_reply_token")
            return

        try:
            delivered = await self._sender.reply(reply_token, content)
        except (ConfigurationError, ReplyDeliveryError, httpx.HTTPError) as e:
            logger.error(
                f"Error sending reply to user {user_id}: {e}",
                extra=log_context(user_id=user_id, reply_token=reply_token),
            )
            await self._track("reply_failed", user_id, content, reason=str(e))
            return

        if delivered:
            logger.info(
                f"Reply delivered to user {user_id}",
                extra=log_context(user_id=user_id, reply_token=reply_token),
            )
            await self._track("reply_delivered", user_id, content)
        else:
            await self._track("reply_dropped", user_id, content, reason="empty_reply")

    async def _track(self, event_type: str, user_id: str, content: str, **extra) -> None:
        await self._tracker.track(
            event_type=event_type,
            actor=self.actor,
            data={
                "target_user_id": user_id,
                "content_summary": content[:100],
                **extra,
            },
        )
