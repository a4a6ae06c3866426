"""Assistant API module."""

from .client import AssistantClient, IAssistantClient, parse_message, parse_run

__all__ = ["AssistantClient", "IAssistantClient", "parse_message", "parse_run"]
