"""Available-slot lookup, proxied to a spreadsheet-backed web endpoint."""

from typing import Any

import httpx

from ..logging_config import get_logger

logger = get_logger(__name__)

MONTH_NOT_FOUND = "ไม่พบเดือน"


class SchedulingTool:
    """The ``get_available_slots_with_months`` tool handler.

    The endpoint takes the month sheet name (for example ``"ตุลาคม 2568"``)
    as the ``sheet`` query parameter and answers with the free slots as text.
    """

    name = "get_available_slots_with_months"

    def __init__(
        self,
        endpoint_url: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._endpoint_url = endpoint_url
        self._timeout = timeout
        self._transport = transport

    async def __call__(self, args: dict[str, Any]) -> str:
        month = str(args.get("thai_month_year") or "").strip()
        if not month:
            return MONTH_NOT_FOUND
        if not self._endpoint_url:
            return "Scheduling endpoint not configured."

        logger.info(f"Fetching available slots for {month}")
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.get(self._endpoint_url, params={"sheet": month})
        except httpx.HTTPError as e:
            logger.error(f"Scheduling endpoint failed for {month}: {e}")
            return "Error calling scheduling service."

        if response.status_code != 200:
            logger.error(
                f"Scheduling endpoint returned {response.status_code} for {month}"
            )
            return f"Error calling scheduling service: HTTP {response.status_code}"

        return response.text
