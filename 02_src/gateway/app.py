"""Application bootstrap and lifecycle management."""

import asyncio
from typing import Protocol

from .assistant import AssistantClient, IAssistantClient
from .channel import ImageFetcher, LineClient
from .config import Settings
from .dialogue import TurnDebouncer
from .event_bus import EventBus
from .logging_config import get_logger
from .models import InboundMessage, Turn
from .orchestration import AnswerCache, ReplyClassifier, RunOrchestrator
from .output_router import ReplyRouter
from .processing import TurnWorker
from .processing.turn_worker import turn_message
from .sessions import SessionRegistry
from .tools import PricingTool, SchedulingTool, ToolDispatchTable, build_dispatch_table
from .tracker import Tracker

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Drop buffers, sessions, cached answers and trace events."""
        ...

    async def receive(self, message: InboundMessage) -> int:
        """Buffer one inbound message. Returns the user's buffered count."""
        ...


class Application:
    """Main application bootstrap.

    Clients passed in are borrowed and left open on stop(); clients built
    here from the settings are owned and closed.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        assistant_client: IAssistantClient | None = None,
        line_client: LineClient | None = None,
        tools: ToolDispatchTable | None = None,
        sleep=asyncio.sleep,
    ):
        self._settings = settings
        self._assistant_client = assistant_client
        self._line_client = line_client
        self._tools = tools
        self._sleep = sleep
        self._owned_clients: list = []

        # Components (will be initialized in start())
        self._event_bus: EventBus | None = None
        self._tracker: Tracker | None = None
        self._sessions: SessionRegistry | None = None
        self._cache: AnswerCache | None = None
        self._orchestrator: RunOrchestrator | None = None
        self._turn_worker: TurnWorker | None = None
        self._reply_router: ReplyRouter | None = None
        self._debouncer: TurnDebouncer | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        if self._settings is None:
            self._settings = Settings.from_env()
        settings = self._settings

        # 1. EventBus (no dependencies)
        self._event_bus = EventBus()

        # 2. Tracker (depends on EventBus)
        self._tracker = Tracker(self._event_bus)
        await self._tracker.start()

        # 3. Remote clients
        if self._assistant_client is None:
            client = AssistantClient(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.http_timeout_seconds,
            )
            self._assistant_client = client
            self._owned_clients.append(client)
        if self._line_client is None:
            self._line_client = LineClient(
                access_token=settings.line_channel_access_token,
                api_base_url=settings.line_api_base_url,
                data_api_base_url=settings.line_data_api_base_url,
                timeout=settings.http_timeout_seconds,
            )
            self._owned_clients.append(self._line_client)
        if not settings.openai_api_key or not settings.assistant_id:
            logger.warning("Assistant credentials missing; every turn will get a failure reply")

        # 4. Tools
        if self._tools is None:
            self._tools = build_dispatch_table(
                PricingTool.from_path(settings.pricing_config_path),
                SchedulingTool(settings.scheduling_url, timeout=settings.http_timeout_seconds),
            )
        logger.info(f"Tools registered: {', '.join(self._tools.names())}")

        # 5. Orchestration (depends on clients and tools)
        classifier = ReplyClassifier(settings.min_reply_length)
        self._sessions = SessionRegistry(
            self._assistant_client, idle_ttl_seconds=settings.session_idle_ttl_seconds
        )
        self._cache = AnswerCache(classifier)
        self._orchestrator = RunOrchestrator(
            client=self._assistant_client,
            sessions=self._sessions,
            cache=self._cache,
            tools=self._tools,
            settings=settings,
            classifier=classifier,
            images=ImageFetcher(self._line_client, max_bytes=settings.max_image_bytes),
            sleep=self._sleep,
        )

        # 6. TurnWorker and ReplyRouter (depend on EventBus)
        self._turn_worker = TurnWorker(self._event_bus, self._orchestrator, self._tracker)
        await self._turn_worker.start()
        self._reply_router = ReplyRouter(self._event_bus, self._line_client, self._tracker)
        await self._reply_router.start()

        # 7. Debouncer last: it is the entry point for user input
        self._debouncer = TurnDebouncer(
            settings.debounce_seconds, self._publish_turn, sleep=self._sleep
        )
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._debouncer:
            await self._debouncer.stop()
        if self._reply_router:
            await self._reply_router.stop()
        if self._turn_worker:
            await self._turn_worker.stop()
        if self._tracker:
            await self._tracker.stop()
        for client in self._owned_clients:
            await client.close()
        self._owned_clients.clear()
        logger.info("Application stopped")

    async def reset(self) -> None:
        """Reset in-memory state between test runs."""
        if self._debouncer:
            await self._debouncer.reset()
        if self._sessions:
            self._sessions.reset()
        if self._cache:
            self._cache.clear()
        if self._orchestrator:
            self._orchestrator.reset()
        if self._tracker:
            self._tracker.clear()
        logger.info("Reset complete")

    async def receive(self, message: InboundMessage) -> int:
        """Hand one inbound message to the debouncer."""
        count = await self.debouncer.on_message(
            message.user_id, message.content, message.reply_token
        )
        await self.tracker.track(
            event_type="message_buffered",
            actor="webhook",
            data={
                "user_id": message.user_id,
                "kind": message.content.kind,
                "buffered": count,
            },
        )
        return count

    async def _publish_turn(self, turn: Turn) -> None:
        await self.tracker.track(
            event_type="turn_flushed",
            actor="debouncer",
            data={
                "user_id": turn.user_id,
                "message_count": len(turn.contents),
                "text_summary": turn.text[:100],
            },
        )
        await self.event_bus.publish(turn_message(turn))

    def _require(self, component, name: str):
        if component is None:
            raise RuntimeError(f"Application not started ({name} missing)")
        return component

    @property
    def settings(self) -> Settings:
        return self._require(self._settings, "settings")

    @property
    def event_bus(self) -> EventBus:
        return self._require(self._event_bus, "event_bus")

    @property
    def tracker(self) -> Tracker:
        """Get tracker instance."""
        return self._require(self._tracker, "tracker")

    @property
    def debouncer(self) -> TurnDebouncer:
        return self._require(self._debouncer, "debouncer")

    @property
    def orchestrator(self) -> RunOrchestrator:
        return self._require(self._orchestrator, "orchestrator")

    @property
    def sessions(self) -> SessionRegistry:
        return self._require(self._sessions, "sessions")

    @property
    def cache(self) -> AnswerCache:
        return self._require(self._cache, "cache")
