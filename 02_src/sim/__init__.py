"""SIM package: scripted LINE traffic for local runs."""

from .sim import ISim, Sim

__all__ = ["ISim", "Sim"]
