"""Core data models for the gateway."""

from .agents import BusMessage, Topic
from .dialogue import QACacheEntry, SessionRecord
from .messages import Content, ImageContent, InboundMessage, TextContent, Turn
from .runs import Run, RunStatus, ThreadMessage, ToolCall, ToolCallSignature
from .tracing import TraceEvent

__all__ = [
    # Messages
    "Content",
    "TextContent",
    "ImageContent",
    "InboundMessage",
    "Turn",
    # Dialogue
    "QACacheEntry",
    "SessionRecord",
    # Runs
    "Run",
    "RunStatus",
    "ThreadMessage",
    "ToolCall",
    "ToolCallSignature",
    # Bus
    "BusMessage",
    "Topic",
    # Tracing
    "TraceEvent",
]
