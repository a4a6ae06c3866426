"""Messaging-channel module (LINE)."""

from .images import ContentSource, ImageFetcher
from .line_client import LineClient

__all__ = ["ContentSource", "ImageFetcher", "LineClient"]
