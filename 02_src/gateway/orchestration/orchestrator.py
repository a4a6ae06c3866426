"""RunOrchestrator: one assistant invocation per aggregated turn."""

import asyncio
import json
import re
from datetime import datetime
from typing import Any, Awaitable, Callable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from .. import replies
from ..assistant import IAssistantClient
from ..channel import ImageFetcher
from ..config import Settings
from ..errors import (
    AssistantAPIError,
    ConfigurationError,
    ImageUnavailableError,
    PollTimeoutError,
    RunCreationError,
    SessionCreationError,
    UpstreamReplyError,
)
from ..logging_config import get_logger, log_context
from ..models import Run, TextContent, ToolCall, Turn
from ..sessions import SessionRegistry
from ..tools import PricingTool, ToolDispatchTable
from .answer_cache import AnswerCache
from .classifier import ReplyClassifier
from .result import Result
from .run_state import PollAction, RunTracker

logger = get_logger(__name__)


Sleeper = Callable[[float], Awaitable[None]]

ACTIVE_RUN_MARKER = "already has an active run"
_RUN_ID_PATTERNS = (
    re.compile(r"\b(run_[A-Za-z0-9]+)"),
    re.compile(r"\bid[=:]\s*([A-Za-z0-9_\-]+)"),
)
# Field markers of a pricing request written out as text instead of a tool call
PRICING_MARKERS = ("service_type", "item_type")

# Calls whose failure means the remote side is unreachable or misbehaving
_UPSTREAM_ERRORS = (AssistantAPIError, httpx.HTTPError)


def extract_active_run_id(message: str) -> str | None:
    """Run id named in an "already has an active run" error, if any."""
    if ACTIVE_RUN_MARKER not in message:
        return None
    for pattern in _RUN_ID_PATTERNS:
        match = pattern.search(message)
        if match:
            return match.group(1).rstrip(".")
    return None


def extract_pricing_arguments(text: str) -> dict[str, Any] | None:
    """Pricing arguments embedded as JSON in a prose reply, if any."""
    if not all(marker in text for marker in PRICING_MARKERS):
        return None
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end == -1 or start >= end:
        logger.info("No valid JSON found in response")
        return None
    try:
        args = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        logger.info(f"Failed to parse extracted JSON: {e}")
        return None
    return args if isinstance(args, dict) else None


class RunOrchestrator:
    """Drives the remote assistant's run-and-poll protocol for one turn at a time per user.

    Turns from the same user are serialized; different users run concurrently.
    Every failure is recovered here and turned into a reply, so the caller
    always has something to send back.
    """

    def __init__(
        self,
        client: IAssistantClient,
        sessions: SessionRegistry,
        cache: AnswerCache,
        tools: ToolDispatchTable,
        settings: Settings,
        classifier: ReplyClassifier | None = None,
        images: ImageFetcher | None = None,
        sleep: Sleeper = asyncio.sleep,
        now: Callable[[], datetime] | None = None,
    ):
        self._client = client
        self._sessions = sessions
        self._cache = cache
        self._tools = tools
        self._settings = settings
        self._classifier = classifier or ReplyClassifier(settings.min_reply_length)
        self._images = images
        self._sleep = sleep
        self._now = now or self._local_clock(settings.timezone)
        self._turn_locks: dict[str, asyncio.Lock] = {}
        self._in_flight: dict[str, int] = {}

    @staticmethod
    def _local_clock(tz_name: str) -> Callable[[], datetime]:
        try:
            tz = ZoneInfo(tz_name)
        except ZoneInfoNotFoundError:
            logger.warning(f"Unknown timezone {tz_name}, using local time")
            return lambda: datetime.now().astimezone()
        return lambda: datetime.now(tz)

    async def process_text(self, user_id: str, text: str) -> str:
        """Process a plain-text turn."""
        return await self.process_turn(
            Turn(user_id=user_id, contents=[TextContent(text)], text=text)
        )

    async def process_turn(self, turn: Turn) -> str:
        """Run one turn and return the reply text. Never raises for remote failures."""
        result = await self.run_turn(turn)
        if result.ok:
            return result.value or ""
        return result.error or replies.NO_REPLY

    async def run_turn(self, turn: Turn) -> Result[str]:
        """Run one turn; the Result says whether the reply is a real answer."""
        user_id = turn.user_id
        lock = self._turn_locks.setdefault(user_id, asyncio.Lock())
        self._in_flight[user_id] = self._in_flight.get(user_id, 0) + 1
        try:
            async with lock:
                return await self._run_turn(turn)
        finally:
            self._in_flight[user_id] -= 1
            if not self._in_flight[user_id]:
                del self._in_flight[user_id]
                self._prune_turn_locks()

    def _prune_turn_locks(self) -> int:
        """Drop turn locks of users whose session has expired and who have no turn in flight."""
        self._sessions.evict_idle()
        stale = [
            user_id
            for user_id in self._turn_locks
            if user_id not in self._in_flight and user_id not in self._sessions
        ]
        for user_id in stale:
            del self._turn_locks[user_id]
        return len(stale)

    async def _run_turn(self, turn: Turn) -> Result[str]:
        user_id, question = turn.user_id, turn.text
        context = log_context(user_id=user_id, reply_token=turn.reply_token)
        logger.info(f"Processing turn for user {user_id}: {question[:100]}", extra=context)

        cached = self._cache.lookup(user_id, question)
        if cached is not None:
            logger.info(
                f"Duplicate question detected for user {user_id}, returning cached answer",
                extra=context,
            )
            return Result.success(cached)

        reply = ""
        try:
            reply = await self._invoke(turn)
            self._accept(reply)
        except ConfigurationError as e:
            logger.error(f"Configuration error for user {user_id}: {e}", extra=context)
            return Result.failure(replies.TRANSIENT_FAILURE, "configuration")
        except SessionCreationError as e:
            logger.error(f"Session error for user {user_id}: {e}", extra=context)
            return Result.failure(replies.TRANSIENT_FAILURE, "session")
        except RunCreationError as e:
            logger.error(f"Failed to start run for user {user_id}: {e}", extra=context)
            return Result.failure(replies.RUN_START_FAILED, "run_creation")
        except UpstreamReplyError as e:
            # Returned as-is, never cached
            logger.info(f"Not caching error response for user {user_id}: {e}", extra=context)
            return Result.failure(reply or replies.NO_REPLY, "upstream_reply")
        except _UPSTREAM_ERRORS as e:
            logger.error(
                f"Assistant call failed for user {user_id}: {e}", exc_info=True, extra=context
            )
            return Result.failure(replies.NO_REPLY, "upstream")
        except Exception as e:
            logger.error(
                f"Unexpected error in turn for user {user_id}: {e}", exc_info=True, extra=context
            )
            return Result.failure(replies.NO_REPLY, "internal")

        self._cache.put(user_id, question, reply)
        logger.info(f"Cached successful response for user {user_id}", extra=context)
        return Result.success(reply)

    def _accept(self, reply: str) -> None:
        reason = self._classifier.reason(reply)
        if reason is not None:
            raise UpstreamReplyError(reason)

    def _check_configuration(self) -> None:
        if not self._settings.openai_api_key:
            raise ConfigurationError("OpenAI API key not configured")
        if not self._settings.assistant_id:
            raise ConfigurationError("OPENAI_ASSISTANT_ID not set")

    async def _invoke(self, turn: Turn) -> str:
        self._check_configuration()
        thread_id = await self._sessions.get_or_create(turn.user_id)

        # The remote refuses new messages while a run is active
        await self._cancel_active_runs(thread_id)
        await self._client.add_message(thread_id, await self._build_content(turn))

        run = await self._start_run(thread_id)
        logger.info(f"Assistant run started with ID: {run.id}, initial status: {run.status.value}")

        try:
            await self._poll(thread_id, run)
        except PollTimeoutError as e:
            logger.warning(f"{e}; reading whatever reply is available")

        return await self._extract_reply(thread_id, run.id)

    async def _build_content(self, turn: Turn) -> str | list[dict]:
        prefix = replies.TIME_PREFIX.format(now=self._now().strftime("%Y-%m-%dT%H:%M:%S"))
        text = turn.text
        if not turn.has_images:
            return prefix + text

        image_urls = []
        for image in turn.images:
            try:
                if self._images is None:
                    raise ImageUnavailableError("no image source configured")
                image_urls.append(await self._images.resolve(image.message_id))
            except ImageUnavailableError as e:
                logger.warning(f"Image {image.message_id} degraded to placeholder: {e}")
                text = text.replace(image.render(), replies.IMAGE_PLACEHOLDER)

        if not image_urls:
            return prefix + text

        parts: list[dict] = [
            {"type": "text", "text": f"{prefix}{replies.IMAGE_INSTRUCTION}\n{text}"}
        ]
        parts.extend({"type": "image_url", "image_url": {"url": url}} for url in image_urls)
        return parts

    async def _cancel_active_runs(self, thread_id: str) -> None:
        """Best-effort cancel of runs left over from earlier turns."""
        try:
            runs = await self._client.list_runs(thread_id)
        except _UPSTREAM_ERRORS as e:
            logger.warning(f"Could not list runs on thread {thread_id}: {e}")
            return

        for run in runs:
            if not run.status.is_active:
                continue
            logger.info(f"Found active run {run.id} with status {run.status.value}, cancelling it")
            try:
                await self._client.cancel_run(thread_id, run.id)
            except _UPSTREAM_ERRORS as e:
                logger.warning(f"Failed to cancel run {run.id}: {e}")

    async def _start_run(self, thread_id: str) -> Run:
        """Create a run, resolving one active-run conflict with a single retry."""
        assistant_id = self._settings.assistant_id
        logger.info(f"Running assistant {assistant_id} on thread {thread_id}")
        try:
            run = await self._client.create_run(thread_id, assistant_id)
        except AssistantAPIError as e:
            conflicting = extract_active_run_id(e.message)
            if conflicting is None:
                raise RunCreationError(f"Run creation failed: {e.message}") from e
            run = await self._retry_after_conflict(thread_id, conflicting)
        except httpx.HTTPError as e:
            raise RunCreationError(f"Run creation failed: {e}") from e

        if not run.id:
            raise RunCreationError("Run creation returned no run id")
        return run

    async def _retry_after_conflict(self, thread_id: str, conflicting_run_id: str) -> Run:
        logger.info(f"Attempting to cancel active run: {conflicting_run_id}")
        try:
            await self._client.cancel_run(thread_id, conflicting_run_id)
        except _UPSTREAM_ERRORS as e:
            raise RunCreationError(
                f"Could not cancel conflicting run {conflicting_run_id}: {e}"
            ) from e

        await self._sleep(self._settings.conflict_retry_delay_seconds)

        try:
            run = await self._client.create_run(thread_id, self._settings.assistant_id)
        except _UPSTREAM_ERRORS as e:
            raise RunCreationError(f"Run creation retry failed: {e}") from e
        logger.info(f"Retry created run {run.id}")
        return run

    async def _poll(self, thread_id: str, run: Run) -> Run:
        """Poll until the run completes or gives up, answering tool calls on the way.

        Raises:
            PollTimeoutError: the poll budget ran out first.
        """
        tracker = RunTracker(run_id=run.id, status=run.status)
        max_attempts = self._settings.poll_max_attempts

        for attempt in range(1, max_attempts + 1):
            run = await self._client.get_run(thread_id, run.id)
            action = tracker.observe(run)
            logger.info(f"Run status: {run.status.value} (poll {attempt}/{max_attempts})")

            if action is PollAction.FINISH:
                return run
            if action is PollAction.ABANDON:
                logger.warning(
                    f"Run {run.id} ended as {run.status.value}: {run.last_error or 'no detail'}"
                )
                return run
            if action is PollAction.AWAIT_SUBMITTED:
                logger.info(
                    f"Tool outputs already submitted for signature {','.join(run.signature)}; waiting..."
                )
                await self._sleep(self._settings.duplicate_wait_seconds)
                continue
            if action is PollAction.DISPATCH_TOOLS:
                await self._answer_tool_calls(thread_id, run, tracker)
                await self._sleep(self._settings.tool_submit_settle_seconds)
                continue

            await self._sleep(self._settings.poll_interval_seconds)

        raise PollTimeoutError(run.id, max_attempts, tracker.status.value)

    async def _answer_tool_calls(self, thread_id: str, run: Run, tracker: RunTracker) -> None:
        logger.info(f"Function calls required: {len(run.tool_calls)}")
        outputs = await self._tools.dispatch_all(run.tool_calls)
        try:
            await self._client.submit_tool_outputs(thread_id, run.id, outputs)
        except _UPSTREAM_ERRORS as e:
            # Not marked as submitted, so the next poll tries again
            logger.error(f"Error submitting aggregated tool outputs: {e}")
            return
        tracker.mark_submitted(run.signature)
        logger.info(f"Submitted {len(outputs)} tool outputs for run {run.id}")

    async def _extract_reply(self, thread_id: str, run_id: str) -> str:
        messages = await self._client.list_messages(thread_id)
        reply = ""
        for message in messages:
            if message.role != "assistant" or not message.text:
                continue
            # Skip answers left over from earlier runs
            if message.run_id and message.run_id != run_id:
                continue
            reply = message.text
            break

        if not reply:
            return ""
        logger.info(f"Assistant text response: {reply[:200]}")

        args = extract_pricing_arguments(reply)
        if args is not None:
            logger.info("Detected JSON pricing parameters in text response, calling pricing directly")
            priced = await self._price_directly(args)
            if priced:
                return priced
        return reply

    async def _price_directly(self, args: dict[str, Any]) -> str:
        """Price through the dispatch table; an error output keeps the assistant's own reply."""
        if PricingTool.name not in self._tools:
            return ""
        output = await self._tools.dispatch(ToolCall("text_fallback", PricingTool.name, args))
        if self._classifier.is_error(output):
            logger.warning(f"Direct pricing failed, keeping assistant reply: {output[:200]}")
            return ""
        return output

    def reset(self) -> None:
        self._turn_locks.clear()
        self._in_flight.clear()
