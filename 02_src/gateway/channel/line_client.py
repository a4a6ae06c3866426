"""LINE Messaging API client: replies and message content."""

import httpx

from ..errors import ConfigurationError, ReplyDeliveryError
from ..logging_config import get_logger

logger = get_logger(__name__)


class LineClient:
    """Thin httpx wrapper around the two LINE endpoints the gateway uses."""

    def __init__(
        self,
        access_token: str,
        api_base_url: str = "https://api.line.me",
        data_api_base_url: str = "https://api-data.line.me",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._access_token = access_token
        self._api_base_url = api_base_url.rstrip("/")
        self._data_api_base_url = data_api_base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self._access_token:
            raise ConfigurationError("LINE channel access token not set")
        return {"Authorization": f"Bearer {self._access_token}"}

    async def reply(self, reply_token: str, text: str) -> bool:
        """Send one text reply. Returns False when there is nothing to send."""
        if not text:
            logger.info("No message to reply.")
            return False

        response = await self._client.post(
            f"{self._api_base_url}/v2/bot/message/reply",
            headers=self._headers(),
            json={
                "replyToken": reply_token,
                "messages": [{"type": "text", "text": text}],
            },
        )
        if response.status_code != 200:
            logger.error(f"LINE reply error: {response.status_code} {response.text}")
            raise ReplyDeliveryError(
                f"LINE reply failed: {response.status_code} {response.text}"
            )
        return True

    async def get_content(self, message_id: str) -> tuple[bytes, str]:
        """Download the binary content of a message. Returns (data, content type)."""
        response = await self._client.get(
            f"{self._data_api_base_url}/v2/bot/message/{message_id}/content",
            headers=self._headers(),
        )
        response.raise_for_status()
        content_type = response.headers.get("Content-Type") or "image/jpeg"
        return response.content, content_type
