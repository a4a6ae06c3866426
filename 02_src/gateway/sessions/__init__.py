"""Sessions module."""

from .registry import SessionRegistry, ThreadFactory

__all__ = ["SessionRegistry", "ThreadFactory"]
