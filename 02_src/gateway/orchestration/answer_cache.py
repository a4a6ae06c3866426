"""Per-user duplicate-answer cache."""

from ..logging_config import get_logger
from ..models import QACacheEntry
from .classifier import ReplyClassifier

logger = get_logger(__name__)


class AnswerCache:
    """Remembers the last question/answer pair per user. Single entry, no history."""

    def __init__(self, classifier: ReplyClassifier):
        self._classifier = classifier
        self._entries: dict[str, QACacheEntry] = {}

    def get(self, user_id: str) -> tuple[str, str, bool]:
        """Return (question, answer, found)."""
        entry = self._entries.get(user_id)
        if entry is None:
            return "", "", False
        return entry.question, entry.answer, True

    def put(self, user_id: str, question: str, answer: str) -> bool:
        """Store a pair unless the answer is classified as an error."""
        if self._classifier.is_error(answer):
            logger.info(f"Not caching error response for user {user_id}")
            return False
        self._entries[user_id] = QACacheEntry(question=question, answer=answer)
        return True

    def lookup(self, user_id: str, question: str) -> str | None:
        """Cached answer for a repeated question, if it still passes the classifier."""
        cached_question, answer, found = self.get(user_id)
        if not found or cached_question != question or not answer:
            return None
        if self._classifier.is_error(answer):
            logger.info(
                f"Cached response is an error, will generate new response for user {user_id}"
            )
            return None
        return answer

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
