"""Dialogue-related data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class QACacheEntry:
    """Last question/answer pair for a user."""

    question: str
    answer: str


@dataclass
class SessionRecord:
    """A user's remote thread and when it was last used."""

    user_id: str
    thread_id: str
    last_used: float
