"""Client for the remote assistant's threads-and-runs API (OpenAI Assistants v2)."""

from typing import Any, Protocol

import httpx

from ..errors import AssistantAPIError
from ..logging_config import get_logger
from ..models import Run, RunStatus, ThreadMessage, ToolCall

logger = get_logger(__name__)


class IAssistantClient(Protocol):
    """Abstraction for the stateful assistant API."""

    async def create_thread(self) -> str:
        """Create a conversation thread and return its id."""
        ...

    async def add_message(self, thread_id: str, content: str | list[dict]) -> None:
        """Append a user message (plain text or content parts) to a thread."""
        ...

    async def list_runs(self, thread_id: str) -> list[Run]:
        """List the thread's runs, newest first."""
        ...

    async def cancel_run(self, thread_id: str, run_id: str) -> None:
        """Ask the remote side to cancel a run."""
        ...

    async def create_run(self, thread_id: str, assistant_id: str) -> Run:
        """Start a run of the assistant over the thread."""
        ...

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        """Fetch the current state of a run."""
        ...

    async def submit_tool_outputs(
        self, thread_id: str, run_id: str, outputs: list[dict]
    ) -> None:
        """Submit one batch of tool outputs for a run."""
        ...

    async def list_messages(self, thread_id: str) -> list[ThreadMessage]:
        """List the thread's messages, newest first."""
        ...


def parse_run(data: dict[str, Any]) -> Run:
    """Build a Run from the remote JSON representation."""
    tool_calls: list[ToolCall] = []
    required = data.get("required_action") or {}
    if required.get("type") == "submit_tool_outputs":
        for call in (required.get("submit_tool_outputs") or {}).get("tool_calls") or []:
            function = call.get("function") or {}
            tool_calls.append(
                ToolCall(
                    id=call.get("id", ""),
                    name=function.get("name", ""),
                    arguments=function.get("arguments"),
                )
            )

    last_error = data.get("last_error") or {}
    return Run(
        id=data.get("id", ""),
        status=RunStatus.parse(data.get("status")),
        tool_calls=tool_calls,
        last_error=last_error.get("message") if isinstance(last_error, dict) else None,
    )


def parse_message(data: dict[str, Any]) -> ThreadMessage:
    """Build a ThreadMessage, keeping the first text part only."""
    text = ""
    for part in data.get("content") or []:
        if part.get("type") == "text":
            text = (part.get("text") or {}).get("value", "")
            break
    return ThreadMessage(
        id=data.get("id", ""),
        role=data.get("role", ""),
        text=text,
        run_id=data.get("run_id"),
    )


class AssistantClient:
    """httpx-based client. Every request carries the configured timeout."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "OpenAI-Beta": "assistants=v2",
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def create_thread(self) -> str:
        data = await self._request("POST", "/threads", json={})
        return data.get("id", "")

    async def add_message(self, thread_id: str, content: str | list[dict]) -> None:
        await self._request(
            "POST",
            f"/threads/{thread_id}/messages",
            json={"role": "user", "content": content},
        )

    async def list_runs(self, thread_id: str) -> list[Run]:
        data = await self._request("GET", f"/threads/{thread_id}/runs")
        return [parse_run(item) for item in data.get("data") or []]

    async def cancel_run(self, thread_id: str, run_id: str) -> None:
        await self._request("POST", f"/threads/{thread_id}/runs/{run_id}/cancel")

    async def create_run(self, thread_id: str, assistant_id: str) -> Run:
        data = await self._request(
            "POST",
            f"/threads/{thread_id}/runs",
            json={"assistant_id": assistant_id},
        )
        return parse_run(data)

    async def get_run(self, thread_id: str, run_id: str) -> Run:
        data = await self._request("GET", f"/threads/{thread_id}/runs/{run_id}")
        return parse_run(data)

    async def submit_tool_outputs(
        self, thread_id: str, run_id: str, outputs: list[dict]
    ) -> None:
        await self._request(
            "POST",
            f"/threads/{thread_id}/runs/{run_id}/submit_tool_outputs",
            json={"tool_outputs": outputs},
        )

    async def list_messages(self, thread_id: str) -> list[ThreadMessage]:
        data = await self._request("GET", f"/threads/{thread_id}/messages")
        return [parse_message(item) for item in data.get("data") or []]

    async def _request(
        self, method: str, path: str, json: dict | None = None
    ) -> dict[str, Any]:
        response = await self._client.request(method, path, json=json)
        logger.debug(f"Assistant API {method} {path}: {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            error = data.get("error") if isinstance(data, dict) else None
            if not isinstance(error, dict):
                error = {}
            message = error.get("message") or response.text
            logger.error(f"Assistant API error on {method} {path}: {message}")
            raise AssistantAPIError(
                status_code=response.status_code,
                message=message,
                error_type=error.get("type", ""),
            )

        return data if isinstance(data, dict) else {}
