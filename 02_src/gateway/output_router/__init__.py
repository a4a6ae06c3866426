"""OutputRouter module."""

from .router import IReplySender, ReplyRouter

__all__ = ["IReplySender", "ReplyRouter"]
