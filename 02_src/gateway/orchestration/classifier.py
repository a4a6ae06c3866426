"""Heuristic classification of assistant replies."""

from typing import Iterable

from ..replies import ERROR_KEYWORDS

# Measured in UTF-8 bytes; a Thai character counts as three
DEFAULT_MIN_LENGTH = 10


def reply_size(reply: str) -> int:
    """Size of the stripped reply in UTF-8 bytes."""
    return len(reply.strip().encode("utf-8"))


class ReplyClassifier:
    """Flags replies that read as failures: empty, too short, or keyword-matched."""

    def __init__(
        self,
        min_length: int = DEFAULT_MIN_LENGTH,
        keywords: Iterable[str] = ERROR_KEYWORDS,
    ):
        self.min_length = min_length
        self.keywords = tuple(keywords)

    def is_error(self, reply: str | None) -> bool:
        return self.reason(reply) is not None

    def reason(self, reply: str | None) -> str | None:
        """Why a reply is classified as an error, or None if it is not."""
        if not reply or not reply.strip():
            return "empty"
        for keyword in self.keywords:
            if keyword in reply:
                return f"keyword:{keyword.strip()}"
        if reply_size(reply) < self.min_length:
            return "too_short"
        return None
