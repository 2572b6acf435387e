"""
Short-term Crossover Scanner

SMA20 / SMA50 crossover.

- Golden cross (SMA20 crosses above SMA50) -> buy. Stop is the lowest low of
  the 20 bars before the cross, target the highest high of the 50 before.
- Death cross -> sell, with the levels mirrored (highest high / lowest low).

The backtest only takes golden crosses whose reward/risk against the
50-bar high is at least 1.5, and exits on the next death cross.
"""

import logging
from typing import Optional

from quantdesk.core.enums import Side, Strategy
from quantdesk.core.models import Trigger

from .base import ScanContext, StrategyScanner

logger = logging.getLogger(__name__)

STOP_WINDOW = 20
TARGET_WINDOW = 50
MIN_REWARD_RISK = 1.5


class ShortTermCrossoverScanner(StrategyScanner):
    """SMA20/SMA50 golden and death crosses."""

    strategy = Strategy.SHORT_TERM_CROSSOVER
    min_index = 20

    def _averages(self, ctx: ScanContext, i: int):
        if i < 1 or not (ctx.defined(i, "sma20", "sma50") and ctx.defined(i - 1, "sma20", "sma50")):
            return None
        return (
            ctx.at("sma20", i - 1),
            ctx.at("sma50", i - 1),
            ctx.at("sma20", i),
            ctx.at("sma50", i),
        )

    def is_golden_cross(self, ctx: ScanContext, i: int) -> bool:
        averages = self._averages(ctx, i)
        return averages is not None and self.crossed_above(*averages)

    def is_death_cross(self, ctx: ScanContext, i: int) -> bool:
        averages = self._averages(ctx, i)
        return averages is not None and self.crossed_below(*averages)

    def detect(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        if self.is_golden_cross(ctx, i):
            stop = self.window_min(ctx.low, i - STOP_WINDOW, i)
            target = self.window_max(ctx.high, i - TARGET_WINDOW, i)
            if stop is not None and target is not None:
                return ctx.trigger(self.strategy, Side.BUY, i, stop_loss=stop, target=target)

        if self.is_death_cross(ctx, i):
            stop = self.window_max(ctx.high, i - STOP_WINDOW, i)
            target = self.window_min(ctx.low, i - TARGET_WINDOW, i)
            if stop is not None and target is not None:
                return ctx.trigger(self.strategy, Side.SELL, i, stop_loss=stop, target=target)

        return None

    def entry_signal(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        if not self.is_golden_cross(ctx, i):
            return None

        stop = self.window_min(ctx.low, i - STOP_WINDOW, i)
        target = self.window_max(ctx.high, i - TARGET_WINDOW, i)
        if stop is None or target is None:
            return None

        entry = float(ctx.close[i])
        risk = entry - stop
        reward = target - entry
        if risk <= 0 or reward / risk < MIN_REWARD_RISK:
            return None

        return ctx.trigger(self.strategy, Side.BUY, i, stop_loss=stop, target=target)

    def exit_signal(self, ctx: ScanContext, i: int) -> bool:
        return self.is_death_cross(ctx, i)
