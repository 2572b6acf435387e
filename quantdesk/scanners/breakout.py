"""
Volatility Breakout Scanner

Live: a volume spike (RVOL > 3) on any of the recently scanned bars.
The trend read and the stop/target pair come from the latest bar and are
assembled by the signal generator.

Backtest entry: raw volume above 3x the prior 20-bar mean, ADX > 25 with
+DI leading, and a positive 7-bar ATR. Stop sits 3 ATR7 below the close,
target at twice that risk above it. No signal exit; stop or target only.
"""

import logging
from typing import Optional, Tuple

import numpy as np

from quantdesk.core.enums import Side, Strategy
from quantdesk.core.models import Trigger

from .base import ScanContext, StrategyScanner

logger = logging.getLogger(__name__)

SPIKE_RVOL = 3.0
VOLUME_WINDOW = 20
TREND_ADX = 25.0
STOP_ATR_MULT = 3.0
REWARD_MULT = 2.0


def breakout_levels(close: float, atr7: float) -> Tuple[float, float]:
    """Stop 3 x ATR7 under the close, target at 2R."""
    stop = close - STOP_ATR_MULT * atr7
    target = close + REWARD_MULT * (close - stop)
    return stop, target


class VolatilityBreakoutScanner(StrategyScanner):
    """Volume-spike breakout confirmed by trend strength."""

    strategy = Strategy.VOLATILITY_BREAKOUT
    min_index = 0

    def detect(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        rvol = ctx.at("rvol", i)
        if rvol is None or rvol <= SPIKE_RVOL:
            return None
        return ctx.trigger(self.strategy, Side.BUY, i)

    def entry_signal(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        if i < VOLUME_WINDOW:
            return None

        avg_volume = float(np.sum(ctx.volume[i - VOLUME_WINDOW:i])) / VOLUME_WINDOW
        if not (avg_volume > 0 and ctx.volume[i] > avg_volume * SPIKE_RVOL):
            return None

        adx = ctx.at("adx", i)
        plus_di = ctx.at("plus_di", i)
        minus_di = ctx.at("minus_di", i)
        atr7 = ctx.at("atr7", i)
        if None in (adx, plus_di, minus_di, atr7):
            return None
        if not (adx > TREND_ADX and plus_di > minus_di and atr7 > 0):
            return None

        stop, target = breakout_levels(float(ctx.close[i]), atr7)
        return ctx.trigger(self.strategy, Side.BUY, i, stop_loss=stop, target=target)
