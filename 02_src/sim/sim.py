"""SIM implementation - scripted LINE webhook bursts for local testing."""

import asyncio
import random
import uuid
from typing import Protocol

import httpx

from gateway.logging_config import get_logger
from gateway.tracker import ITracker

logger = get_logger(__name__)

# Each inner list is one burst, sent faster than the debounce window
SCENARIO = {
    "Usim_001": [
        ["สวัสดีครับ", "อยากทำความสะอาดที่นอน", "ขนาด 6 ฟุต ราคาเท่าไหร่ครับ"],
        ["ขอดูคิวว่างเดือนหน้าได้ไหมครับ"],
    ],
    "Usim_002": [
        ["โซฟา 3 ที่นั่ง ซักได้ไหมคะ"],
        ["สมาชิกมีส่วนลดไหมคะ", "ขอบคุณค่ะ"],
    ],
}


class ISim(Protocol):
    """Generate test traffic against the webhook."""

    async def start(self) -> None:
        """Start the scripted scenario."""
        ...

    async def stop(self) -> None:
        """Stop scenario."""
        ...


def text_event(user_id: str, text: str) -> dict:
    """A LINE text message event as the platform would post it."""
    return {
        "type": "message",
        "replyToken": f"sim-{uuid.uuid4().hex}",
        "source": {"type": "user", "userId": user_id},
        "message": {"type": "text", "id": uuid.uuid4().hex[:12], "text": text},
    }


class Sim:
    """Posts scripted message bursts to the webhook."""

    def __init__(
        self,
        api_url: str = "http://localhost:8000",
        tracker: ITracker | None = None,
        burst_gap: tuple[float, float] = (0.5, 2.0),
        pause_between_bursts: float = 20.0,
    ):
        self._api_url = api_url
        self._tracker = tracker
        self._burst_gap = burst_gap
        self._pause = pause_between_bursts
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    def set_tracker(self, tracker: ITracker) -> None:
        """Inject tracker for SIM trace events."""
        self._tracker = tracker

    async def start(self) -> None:
        """Start scripted scenario."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient()
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _run_scenario(self) -> None:
        summary = {
            "scenario": "line_bursts",
            "user_count": len(SCENARIO),
            "message_count": sum(len(b) for bursts in SCENARIO.values() for b in bursts),
        }
        try:
            if self._tracker:
                await self._tracker.track("sim_started", "sim", summary)

            rounds = max(len(bursts) for bursts in SCENARIO.values())
            for i in range(rounds):
                if not self._running:
                    break
                # Users burst concurrently; each burst lands inside one window
                await asyncio.gather(
                    *[
                        self._send_burst(user_id, bursts[i])
                        for user_id, bursts in SCENARIO.items()
                        if i < len(bursts)
                    ]
                )
                await asyncio.sleep(self._pause)

        except asyncio.CancelledError:
            pass
        except httpx.HTTPError as e:
            logger.error(f"SIM scenario error: {e}")
        finally:
            if self._tracker:
                await self._tracker.track("sim_completed", "sim", summary)

    async def _send_burst(self, user_id: str, texts: list[str]) -> None:
        for text in texts:
            if not self._running:
                return
            await self._send_message(user_id, text)
            await asyncio.sleep(random.uniform(*self._burst_gap))

    async def _send_message(self, user_id: str, text: str) -> None:
        """Post one text event to the webhook."""
        if not self._client:
            return

        try:
            response = await self._client.post(
                f"{self._api_url}/webhook",
                json={"destination": "sim", "events": [text_event(user_id, text)]},
                timeout=10.0,
            )
        except httpx.HTTPError as e:
            logger.error(f"SIM: Failed to send message: {e}")
            return

        if response.status_code == 200:
            logger.info(f"SIM: {user_id} -> {text}")
        else:
            logger.error(f"SIM: Error sending message: {response.status_code}")
