"""Image collaborator: LINE image message -> embeddable data URL."""

import base64
from typing import Protocol

import httpx

from ..errors import ConfigurationError, ImageUnavailableError
from ..logging_config import get_logger

logger = get_logger(__name__)


class ContentSource(Protocol):
    async def get_content(self, message_id: str) -> tuple[bytes, str]:
        ...


class ImageFetcher:
    """Fetches an image and returns it as a ``data:`` URL the assistant can view."""

    def __init__(self, source: ContentSource, max_bytes: int = 5 * 1024 * 1024):
        self._source = source
        self._max_bytes = max_bytes

    async def resolve(self, message_id: str) -> str:
        """Data URL for the image.

        Raises:
            ImageUnavailableError: the content cannot be fetched or is too large.
        """
        try:
            data, content_type = await self._source.get_content(message_id)
        except (httpx.HTTPError, ConfigurationError) as e:
            logger.error(f"Error getting image {message_id}: {e}")
            raise ImageUnavailableError(f"image {message_id} unavailable: {e}") from e

        if not data:
            raise ImageUnavailableError(f"image {message_id} is empty")
        if len(data) > self._max_bytes:
            logger.warning(
                f"Image {message_id} too large: {len(data)} bytes (limit {self._max_bytes})"
            )
            raise ImageUnavailableError(
                f"image {message_id} is {len(data)} bytes, limit is {self._max_bytes}"
            )

        encoded = base64.b64encode(data).decode("ascii")
        return f"data:{content_type};base64,{encoded}"
