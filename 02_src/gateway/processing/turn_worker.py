"""TurnWorker: runs each aggregated turn through the orchestrator."""

import uuid
from datetime import datetime, timezone
from typing import Protocol

from ..event_bus import IEventBus
from ..logging_config import get_logger
from ..models import BusMessage, Topic, Turn
from ..orchestration import RunOrchestrator
from ..tracker import ITracker

logger = get_logger(__name__)


class ITurnWorker(Protocol):
    """Consumes TURN messages and publishes REPLY messages."""

    async def start(self) -> None:
        """Subscribe to EventBus topic: TURN."""
        ...

    async def stop(self) -> None:
        """Unsubscribe from EventBus."""
        ...


def turn_message(turn: Turn, source: str = "debouncer") -> BusMessage:
    """Wrap a flushed turn for the bus."""
    return BusMessage(
        id=str(uuid.uuid4()),
        topic=Topic.TURN,
        payload={
            "user_id": turn.user_id,
            "text": turn.text,
            "reply_token": turn.reply_token,
            "turn": turn,
        },
        source=source,
        timestamp=datetime.now(timezone.utc),
    )


class TurnWorker:
    """Bridges the bus and the orchestrator."""

    actor = "turn_worker"

    def __init__(
        self,
        event_bus: IEventBus,
        orchestrator: RunOrchestrator,
        tracker: ITracker,
    ):
        self._event_bus = event_bus
        self._orchestrator = orchestrator
        self._tracker = tracker

    async def start(self) -> None:
        self._event_bus.subscribe(Topic.TURN, self._handle_turn)

    async def stop(self) -> None:
        self._event_bus.unsubscribe(Topic.TURN, self._handle_turn)

    async def _handle_turn(self, bus_message: BusMessage) -> None:
        turn = bus_message.payload.get("turn")
        if not isinstance(turn, Turn):
            logger.warning(f"TURN message {bus_message.id} carries no turn, skipping")
            return

        await self._tracker.track(
            event_type="turn_started",
            actor=self.actor,
            data={"user_id": turn.user_id, "text_summary": turn.text[:100]},
        )

        result = await self._orchestrator.run_turn(turn)
        reply = result.value if result.ok else result.error

        await self._tracker.track(
            event_type="turn_completed" if result.ok else "turn_failed",
            actor=self.actor,
            data={
                "user_id": turn.user_id,
                "error_code": result.error_code,
                "reply_summary": (reply or "")[:100],
            },
        )

        await self._event_bus.publish(
            BusMessage(
                id=str(uuid.uuid4()),
                topic=Topic.REPLY,
                payload={
                    "user_id": turn.user_id,
                    "reply_token": turn.reply_token,
                    "content": reply or "",
                },
                source=self.actor,
                timestamp=datetime.now(timezone.utc),
            )
        )
