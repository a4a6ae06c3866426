"""Turning a burst of buffered messages into one turn text."""

from ..models import Content
from ..replies import MULTI_MESSAGE_PREFIX


def aggregate(contents: list[Content]) -> str:
    """Join buffered contents into one turn text.

    A single message passes through verbatim. Several messages are listed in
    arrival order under a prefix saying how many were summarized.
    """
    if not contents:
        return ""
    if len(contents) == 1:
        return contents[0].render()

    lines = [MULTI_MESSAGE_PREFIX.format(count=len(contents))]
    lines.extend(f"{i}. {content.render()}" for i, content in enumerate(contents, 1))
    return "\n".join(lines)
