"""QuantDesk technical indicators."""

from .engine import (
    IndicatorCache,
    IndicatorEngine,
    IndicatorSeries,
    calculate_indicators,
    fingerprint,
)

__all__ = [
    "IndicatorCache",
    "IndicatorEngine",
    "IndicatorSeries",
    "calculate_indicators",
    "fingerprint",
]
