"""Message-related data models."""

from dataclasses import dataclass, field
from typing import Literal, Union


@dataclass(frozen=True)
class TextContent:
    """Plain text sent by the user."""

    text: str
    kind: Literal["text"] = "text"

    def render(self) -> str:
        return self.text


@dataclass(frozen=True)
class ImageContent:
    """A picture sent by the user, referenced by its platform message id."""

    message_id: str
    kind: Literal["image"] = "image"

    def render(self) -> str:
        return f"[image:{self.message_id}]"


Content = Union[TextContent, ImageContent]


@dataclass
class Turn:
    """One logical unit of user input, possibly aggregated from several messages."""

    user_id: str
    contents: list[Content]
    reply_token: str | None = None
    text: str = ""

    @property
    def images(self) -> list[ImageContent]:
        """Image contents in arrival order."""
        return [c for c in self.contents if isinstance(c, ImageContent)]

    @property
    def has_images(self) -> bool:
        return any(isinstance(c, ImageContent) for c in self.contents)


@dataclass
class InboundMessage:
    """A single message event accepted from the webhook."""

    user_id: str
    content: Content
    reply_token: str | None = None
    metadata: dict = field(default_factory=dict)
