"""Run-related data models for the remote assistant protocol."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RunStatus(str, Enum):
    """Remote run states."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"

    @classmethod
    def parse(cls, value: str | None) -> "RunStatus":
        """Map a remote status string, treating unknown values as queued."""
        try:
            return cls(value)
        except ValueError:
            return cls.QUEUED

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        """A run that blocks new runs on the same thread."""
        return self in (RunStatus.IN_PROGRESS, RunStatus.REQUIRES_ACTION)


TERMINAL_STATUSES = frozenset(
    {
        RunStatus.CANCELLED,
        RunStatus.FAILED,
        RunStatus.COMPLETED,
        RunStatus.INCOMPLETE,
        RunStatus.EXPIRED,
    }
)


ToolCallSignature = tuple[str, ...]


@dataclass(frozen=True)
class ToolCall:
    """A function call requested by the assistant."""

    id: str
    name: str
    arguments: Any = None  # raw: JSON text, JSON-in-JSON text or an object


@dataclass
class Run:
    """Snapshot of one remote run."""

    id: str
    status: RunStatus
    tool_calls: list[ToolCall] = field(default_factory=list)
    last_error: str | None = None

    @property
    def signature(self) -> ToolCallSignature:
        """Ids of the outstanding tool calls, in the order the remote sent them."""
        return tuple(call.id for call in self.tool_calls)


@dataclass
class ThreadMessage:
    """One entry of a thread's message list."""

    id: str
    role: str
    text: str
    run_id: str | None = None
