"""Processing module: turns in, replies out."""

from .turn_worker import ITurnWorker, TurnWorker

__all__ = ["ITurnWorker", "TurnWorker"]
