"""Dialogue module."""

from .aggregation import aggregate
from .debouncer import TurnDebouncer, TurnHandler

__all__ = ["TurnDebouncer", "TurnHandler", "aggregate"]
