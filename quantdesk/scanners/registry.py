"""
Strategy scanner registry.

One scanner per Strategy; callers look scanners up by enum member.
"""

from typing import Dict

from quantdesk.core.enums import Strategy

from .base import StrategyScanner
from .breakout import VolatilityBreakoutScanner
from .crossover import ShortTermCrossoverScanner
from .vwlm import INTRADAY_CONFIG, SWING_CONFIG, VWLMScanner


def build_scanners() -> Dict[Strategy, StrategyScanner]:
    """Fresh scanner instances for every strategy."""
    return {
        Strategy.VOLATILITY_BREAKOUT: VolatilityBreakoutScanner(),
        Strategy.SHORT_TERM_CROSSOVER: ShortTermCrossoverScanner(),
        Strategy.VWLM: VWLMScanner(Strategy.VWLM, SWING_CONFIG),
        Strategy.VWLM_INTRADAY: VWLMScanner(Strategy.VWLM_INTRADAY, INTRADAY_CONFIG),
    }


SCANNERS: Dict[Strategy, StrategyScanner] = build_scanners()


def get_scanner(strategy: Strategy) -> StrategyScanner:
    return SCANNERS[strategy]
