"""LINE assistant gateway: debounced turns, assistant runs, tool dispatch."""

from .app import Application, IApplication
from .config import Settings

__all__ = ["Application", "IApplication", "Settings"]
