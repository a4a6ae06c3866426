"""SessionRegistry implementation."""

import asyncio
import time
from typing import Callable, Protocol

from ..errors import SessionCreationError
from ..logging_config import get_logger
from ..models import SessionRecord

logger = get_logger(__name__)


class ThreadFactory(Protocol):
    """Anything that can create a remote conversation thread."""

    async def create_thread(self) -> str:
        ...


class SessionRegistry:
    """Maps a user to one remote thread, created lazily and reused.

    Creation is guarded per user, so two concurrent turns for the same user
    share one thread while other users never wait behind that network call.
    With ``idle_ttl_seconds`` > 0, a thread unused for longer is retired and
    the next turn starts a fresh one.
    """

    def __init__(
        self,
        client: ThreadFactory,
        idle_ttl_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._client = client
        self._idle_ttl = idle_ttl_seconds
        self._clock = clock
        self._sessions: dict[str, SessionRecord] = {}
        self._creation_locks: dict[str, asyncio.Lock] = {}

    async def get_or_create(self, user_id: str) -> str:
        """Return the user's thread id, creating it on first use.

        Raises:
            SessionCreationError: remote failure or empty id. Nothing is cached.
        """
        thread_id = self.get(user_id)
        if thread_id:
            logger.debug(f"Reusing thread {thread_id} for user {user_id}")
            return thread_id

        lock = self._creation_locks.setdefault(user_id, asyncio.Lock())
        async with lock:
            # Another caller may have created it while we waited
            thread_id = self.get(user_id)
            if thread_id:
                return thread_id

            try:
                thread_id = await self._client.create_thread()
            except Exception as e:
                logger.error(f"Error creating thread for user {user_id}: {e}")
                raise SessionCreationError(
                    f"Failed to create thread for user {user_id}: {e}"
                ) from e

            if not thread_id:
                logger.error(f"Failed to create thread for user {user_id}: empty id")
                raise SessionCreationError(
                    f"Failed to create thread for user {user_id}: empty id"
                )

            self._sessions[user_id] = SessionRecord(
                user_id=user_id, thread_id=thread_id, last_used=self._clock()
            )
            logger.info(f"Created thread {thread_id} for user {user_id}")
            return thread_id

    def get(self, user_id: str) -> str | None:
        """Cached thread id for a user, refreshing its idle clock."""
        record = self._sessions.get(user_id)
        if record is None:
            return None

        now = self._clock()
        if self._idle_ttl > 0 and now - record.last_used > self._idle_ttl:
            logger.info(
                f"Thread {record.thread_id} for user {user_id} idle too long, retiring"
            )
            del self._sessions[user_id]
            return None

        record.last_used = now
        return record.thread_id

    def forget(self, user_id: str) -> None:
        self._sessions.pop(user_id, None)

    def evict_idle(self) -> int:
        """Drop every session idle longer than the TTL. Returns how many were dropped."""
        if self._idle_ttl <= 0:
            return 0
        now = self._clock()
        expired = [
            user_id
            for user_id, record in self._sessions.items()
            if now - record.last_used > self._idle_ttl
        ]
        for user_id in expired:
            del self._sessions[user_id]
            self._creation_locks.pop(user_id, None)
        return len(expired)

    def reset(self) -> None:
        self._sessions.clear()
        self._creation_locks.clear()

    def __contains__(self, user_id: str) -> bool:
        """Whether the user has a session, without touching its idle clock."""
        return user_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)
