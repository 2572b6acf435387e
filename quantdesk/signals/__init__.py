"""QuantDesk live signal generation."""

from .generator import SignalGenerator

__all__ = ["SignalGenerator"]
