"""TurnDebouncer implementation."""

import asyncio
from typing import Awaitable, Callable

from ..logging_config import get_logger, log_context
from ..models import Content, Turn
from .aggregation import aggregate

logger = get_logger(__name__)


TurnHandler = Callable[[Turn], Awaitable[None]]
Sleeper = Callable[[float], Awaitable[None]]


class TurnDebouncer:
    """Collects a user's messages until a quiet window passes, then emits one turn.

    Every new message cancels the user's pending timer and starts a fresh one,
    so a user who keeps typing faster than the window never flushes.
    """

    def __init__(
        self,
        window_seconds: float,
        on_turn: TurnHandler,
        sleep: Sleeper = asyncio.sleep,
    ):
        self._window = window_seconds
        self._on_turn = on_turn
        self._sleep = sleep

        self._lock = asyncio.Lock()
        self._buffers: dict[str, list[Content]] = {}
        self._reply_tokens: dict[str, str | None] = {}
        self._timers: dict[str, asyncio.Task] = {}
        # Flushes already past the lock; kept so stop() can wait for them
        self._in_flight: set[asyncio.Task] = set()

    @property
    def window_seconds(self) -> float:
        return self._window

    async def on_message(
        self, user_id: str, content: Content, reply_token: str | None = None
    ) -> int:
        """Buffer a message and restart the user's quiet-window timer.

        Returns the number of messages now buffered for the user.
        """
        async with self._lock:
            buffer = self._buffers.setdefault(user_id, [])
            buffer.append(content)
            self._reply_tokens[user_id] = reply_token

            previous = self._timers.pop(user_id, None)
            if previous is not None:
                previous.cancel()

            self._timers[user_id] = asyncio.create_task(
                self._timer(user_id), name=f"debounce:{user_id}"
            )
            size = len(buffer)

        logger.info(
            f"Message buffered for user {user_id} (total: {size} messages). "
            f"Timer set for {self._window:g} seconds.",
            extra=log_context(user_id=user_id, buffered=size),
        )
        return size

    def pending(self, user_id: str) -> list[Content]:
        """Messages buffered for a user and not yet flushed."""
        return list(self._buffers.get(user_id, []))

    def has_timer(self, user_id: str) -> bool:
        return user_id in self._timers

    async def flush_now(self, user_id: str) -> Turn | None:
        """Flush a user's buffer immediately, bypassing the timer."""
        async with self._lock:
            timer = self._timers.pop(user_id, None)
            if timer is not None:
                timer.cancel()
            turn = self._take(user_id)
        if turn is not None:
            await self._emit(turn)
        return turn

    async def stop(self) -> None:
        """Cancel pending timers and wait for flushes already running."""
        async with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, return_exceptions=True)
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def reset(self) -> None:
        """Drop all buffers and pending timers."""
        await self.stop()
        async with self._lock:
            self._buffers.clear()
            self._reply_tokens.clear()

    async def _timer(self, user_id: str) -> None:
        """Wait out the quiet window, then flush."""
        try:
            await self._sleep(self._window)
        except asyncio.CancelledError:
            return

        async with self._lock:
            # Replaced while waiting for the lock; the newer timer owns the buffer
            if self._timers.get(user_id) is not asyncio.current_task():
                return
            del self._timers[user_id]
            turn = self._take(user_id)

        if turn is None:
            logger.info(f"No messages to process for user {user_id}")
            return

        # Past this point the flush is irrevocable
        task = asyncio.current_task()
        self._in_flight.add(task)
        try:
            await self._emit(turn)
        finally:
            self._in_flight.discard(task)

    def _take(self, user_id: str) -> Turn | None:
        """Take and clear a user's buffer. Caller holds the lock."""
        contents = self._buffers.pop(user_id, [])
        reply_token = self._reply_tokens.pop(user_id, None)
        if not contents:
            return None
        return Turn(
            user_id=user_id,
            contents=contents,
            reply_token=reply_token,
            text=aggregate(contents),
        )

    async def _emit(self, turn: Turn) -> None:
        if len(turn.contents) == 1:
            logger.info(f"Single message from user {turn.user_id}: {turn.text[:100]}")
        else:
            logger.info(
                f"Multiple messages ({len(turn.contents)}) from user {turn.user_id}",
                extra=log_context(user_id=turn.user_id, messages=len(turn.contents)),
            )
        try:
            await self._on_turn(turn)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Turn handler error for {turn.user_id}: {e}", exc_info=True)
