"""QuantDesk strategy scanners."""

from .base import ScanContext, StrategyScanner
from .breakout import VolatilityBreakoutScanner, breakout_levels
from .crossover import ShortTermCrossoverScanner
from .registry import SCANNERS, build_scanners, get_scanner
from .vwlm import INTRADAY_CONFIG, SWING_CONFIG, VWLMConfig, VWLMScanner

__all__ = [
    "ScanContext",
    "StrategyScanner",
    "VolatilityBreakoutScanner",
    "breakout_levels",
    "ShortTermCrossoverScanner",
    "VWLMConfig",
    "VWLMScanner",
    "SWING_CONFIG",
    "INTRADAY_CONFIG",
    "SCANNERS",
    "build_scanners",
    "get_scanner",
]
