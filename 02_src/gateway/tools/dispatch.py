"""Tool dispatch table: tool name -> local handler returning a string."""

import inspect
import json
from typing import Any, Awaitable, Callable, Union

from ..errors import ToolArgumentParseError
from ..logging_config import get_logger
from ..models import ToolCall

logger = get_logger(__name__)


ToolHandler = Callable[[dict[str, Any]], Union[str, Awaitable[str]]]


def parse_arguments(raw: Any) -> dict[str, Any]:
    """Decode tool-call arguments into a dict.

    Accepts an object, JSON text of an object, or JSON text that itself
    wraps JSON text (string-encoded twice). Empty input means no arguments.

    Raises:
        ToolArgumentParseError: the input does not decode to an object.
    """
    value = raw
    # At most two layers of string wrapping
    for _ in range(3):
        if value is None:
            return {}
        if isinstance(value, dict):
            return value
        if isinstance(value, (bytes, bytearray)):
            value = value.decode("utf-8")
        if not isinstance(value, str):
            break
        if not value.strip():
            return {}
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise ToolArgumentParseError(f"invalid JSON arguments: {e}") from e

    raise ToolArgumentParseError(
        f"arguments must be a JSON object, got {type(value).__name__}"
    )


class ToolDispatchTable:
    """Registry of tool handlers, consulted once per requested tool call."""

    def __init__(self):
        self._handlers: dict[str, ToolHandler] = {}

    def register(self, name: str, handler: ToolHandler) -> None:
        self._handlers[name] = handler

    def names(self) -> list[str]:
        return list(self._handlers)

    def get(self, name: str) -> ToolHandler | None:
        return self._handlers.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._handlers

    async def dispatch(self, call: ToolCall) -> str:
        """Run one tool call. Failures become the output text, never an exception."""
        logger.info(f"Processing function call: {call.name}")
        handler = self._handlers.get(call.name)
        if handler is None:
            logger.warning(f"Unknown tool requested: {call.name}")
            return f"Error calling tool: unknown tool '{call.name}'"

        try:
            args = parse_arguments(call.arguments)
        except ToolArgumentParseError as e:
            logger.warning(f"Failed to parse {call.name} arguments: {e}")
            return f"Error parsing {call.name} arguments: {e}"

        logger.debug(f"{call.name} called with arguments: {args}")
        try:
            result = handler(args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.error(f"Tool {call.name} failed: {e}", exc_info=True)
            return f"Error calling {call.name}: {e}"

        return "" if result is None else str(result)

    async def dispatch_all(self, calls: list[ToolCall]) -> list[dict[str, str]]:
        """One output per call, in call order, ready for a single batch submission."""
        outputs = []
        for call in calls:
            output = await self.dispatch(call)
            outputs.append({"tool_call_id": call.id, "output": output})
        return outputs
