"""
VWLM Scanners (Volume-Weighted Log Momentum)

Xt = log(close / prev close) * RVOL. A trigger is a crossover of a fast
EMA of Xt over a slow one, confirmed by the raw Xt reading.

    Swing:    EMA9(Xt) x EMA21(Xt), |Xt| >= 0.10, ADX > 25, RSI vs 50
              stop 2 x ATR7, target 4 x ATR7
    Intraday: EMA3(Xt) x EMA9(Xt),  |Xt| >= 0.05, no ADX / RSI gate
              stop 1.5 x ATR3, target 3 x ATR3

Only the swing variant is backtested: long on the buy cross, exit on the
sell cross.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from quantdesk.core.enums import Side, Strategy
from quantdesk.core.models import Trigger

from .base import ScanContext, StrategyScanner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VWLMConfig:
    """Parameters for one VWLM variant."""

    fast: str
    slow: str
    threshold: float
    atr: str
    stop_mult: float
    target_mult: float
    trend_gate: bool
    min_adx: float = 25.0
    rsi_pivot: float = 50.0


SWING_CONFIG = VWLMConfig(
    fast="ema9_xt",
    slow="ema21_xt",
    threshold=0.1,
    atr="atr7",
    stop_mult=2.0,
    target_mult=4.0,
    trend_gate=True,
)

INTRADAY_CONFIG = VWLMConfig(
    fast="ema3_xt",
    slow="ema9_xt",
    threshold=0.05,
    atr="atr3",
    stop_mult=1.5,
    target_mult=3.0,
    trend_gate=False,
)


class VWLMScanner(StrategyScanner):
    """Fast/slow EMA-of-Xt crossover scanner."""

    min_index = 21

    def __init__(self, strategy: Strategy = Strategy.VWLM, config: VWLMConfig = SWING_CONFIG):
        super().__init__()
        self.strategy = strategy
        self.config = config

    def _required(self):
        names = ["xt", self.config.fast, self.config.slow]
        if self.config.trend_gate:
            names += ["adx", "rsi"]
        return names

    def _cross(self, ctx: ScanContext, i: int) -> Optional[Side]:
        """Side of a confirmed crossover at ``i``, or None."""
        cfg = self.config
        if i < 1 or not ctx.defined(i, *self._required()):
            return None
        if not ctx.defined(i - 1, cfg.fast, cfg.slow):
            return None

        fast = ctx.at(cfg.fast, i)
        slow = ctx.at(cfg.slow, i)
        fast_prev = ctx.at(cfg.fast, i - 1)
        slow_prev = ctx.at(cfg.slow, i - 1)
        xt = ctx.at("xt", i)

        trend_ok = True
        rsi = None
        if cfg.trend_gate:
            trend_ok = ctx.at("adx", i) > cfg.min_adx
            rsi = ctx.at("rsi", i)

        if (
            self.crossed_above(fast_prev, slow_prev, fast, slow)
            and xt >= cfg.threshold
            and trend_ok
            and (rsi is None or rsi > cfg.rsi_pivot)
        ):
            return Side.BUY

        if (
            self.crossed_below(fast_prev, slow_prev, fast, slow)
            and xt <= -cfg.threshold
            and trend_ok
            and (rsi is None or rsi < cfg.rsi_pivot)
        ):
            return Side.SELL

        return None

    def detect(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        side = self._cross(ctx, i)
        if side is None:
            return None

        atr = ctx.at(self.config.atr, i)
        if atr is None:
            return None

        close = float(ctx.close[i])
        if side == Side.BUY:
            stop = close - self.config.stop_mult * atr
            target = close + self.config.target_mult * atr
        else:
            stop = close + self.config.stop_mult * atr
            target = close - self.config.target_mult * atr
        return ctx.trigger(self.strategy, side, i, stop_loss=stop, target=target)

    def entry_signal(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        found = self.detect(ctx, i)
        if found is None or found.side != Side.BUY:
            return None
        if found.entry_price <= found.stop_loss:
            return None
        return found

    def exit_signal(self, ctx: ScanContext, i: int) -> bool:
        return self._cross(ctx, i) == Side.SELL
