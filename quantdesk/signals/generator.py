"""
QuantDesk Signal Generator

Builds a ticker's SignalSnapshot at its latest bar:

1. Volume / trend: spike scan over the recent window, ADX/DI trend read,
   ATR7-based stop and 2R target, suggested share count.
2. SMA crossover, VWLM swing and VWLM intraday: most recent trigger in the
   window, each from its own scanner.
3. Factor attribution at the latest bar.

Every strategy is evaluated independently; the snapshot is rebuilt from
scratch on every call.
"""

import logging
from typing import Any, Dict, Optional

import pandas as pd

from quantdesk.core.enums import (
    Strategy,
    TrendSignal,
    VolumeEmaSignal,
    VolumeSignal,
    VolumeStatus,
)
from quantdesk.core.exceptions import QuantDeskDataError
from quantdesk.core.models import SignalSnapshot
from quantdesk.indicators.engine import IndicatorSeries
from quantdesk.intelligence.factor_attribution import FactorAttributionEngine
from quantdesk.risk.position_sizer import SUGGESTED_RISK_CAPITAL, suggested_shares
from quantdesk.scanners.base import ScanContext, StrategyScanner
from quantdesk.scanners.breakout import TREND_ADX, breakout_levels
from quantdesk.scanners.registry import build_scanners

logger = logging.getLogger(__name__)

SIGNAL_LOOKBACK = 5
HIGH_RVOL = 1.5
LOW_RVOL = 0.5


class SignalGenerator:
    """
    Evaluate every strategy for one ticker at its latest bar.

    Looks back ``lookback`` bars (the latest bar plus ``lookback`` before it)
    for crossover-style triggers.
    """

    def __init__(
        self,
        settings: Any = None,
        lookback: Optional[int] = None,
        risk_capital: Optional[float] = None,
        scanners: Optional[Dict[Strategy, StrategyScanner]] = None,
        attribution: Optional[FactorAttributionEngine] = None,
    ):
        # Explicit arguments win over settings, settings over module defaults
        if lookback is None:
            lookback = getattr(settings, "signal_lookback_bars", SIGNAL_LOOKBACK)
        if risk_capital is None:
            risk_capital = getattr(settings, "suggested_risk_capital", SUGGESTED_RISK_CAPITAL)
        self.lookback = lookback
        self.risk_capital = risk_capital

        self.scanners = scanners or build_scanners()
        self.attribution = attribution or FactorAttributionEngine()

    def generate(
        self,
        ticker: str,
        bars: pd.DataFrame,
        indicators: IndicatorSeries,
    ) -> SignalSnapshot:
        """Snapshot for ``ticker`` at its last bar."""
        if len(bars) == 0:
            raise QuantDeskDataError(f"[{ticker}] no bars to evaluate")

        ctx = ScanContext.from_frame(ticker, bars, indicators)
        last = ctx.last_index
        close = float(ctx.close[last])

        # Volume / trend
        spike = self.scanners[Strategy.VOLATILITY_BREAKOUT].scan(ctx, self.lookback)
        trend = self._trend(ctx, last)

        atr7 = ctx.at("atr7", last)
        stop_loss: Optional[float] = None
        target: Optional[float] = None
        if atr7 is not None:
            stop_loss, target = breakout_levels(close, atr7)

        ema10 = ctx.at("ema10", last)
        xt = ctx.at("xt", last)

        snapshot = SignalSnapshot(
            ticker=ticker,
            date=ctx.dates[last],
            close=close,
            volume_signal=VolumeSignal.SPIKE if spike is not None else VolumeSignal.NORMAL,
            volume_spike_date=spike.date if spike is not None else None,
            trend_signal=trend,
            volume_ema_signal=self._volume_ema(ctx, last),
            volume_status=self._volume_status(ctx.at("rvol", last)),
            price_above_ema10=ema10 is not None and close > ema10,
            stop_loss=stop_loss,
            target=target,
            suggested_shares=suggested_shares(self.risk_capital, close, stop_loss),
            crossover=self.scanners[Strategy.SHORT_TERM_CROSSOVER].scan(ctx, self.lookback),
            vwlm=self.scanners[Strategy.VWLM].scan(ctx, self.lookback),
            vwlm_intraday=self.scanners[Strategy.VWLM_INTRADAY].scan(ctx, self.lookback),
            vwlm_strength=xt,
            vwlm_intraday_strength=xt,
            factors=self.attribution.attribute(indicators, ctx.close),
        )

        if snapshot.long_strategies:
            logger.debug(
                "[%s] long signals: %s",
                ticker, ", ".join(sorted(s.value for s in snapshot.long_strategies)),
            )
        return snapshot

    @staticmethod
    def _trend(ctx: ScanContext, i: int) -> TrendSignal:
        adx = ctx.at("adx", i)
        plus_di = ctx.at("plus_di", i)
        minus_di = ctx.at("minus_di", i)
        if None in (adx, plus_di, minus_di) or adx <= TREND_ADX:
            return TrendSignal.WEAK
        if plus_di > minus_di:
            return TrendSignal.UPTREND
        if minus_di > plus_di:
            return TrendSignal.DOWNTREND
        return TrendSignal.WEAK

    @staticmethod
    def _volume_ema(ctx: ScanContext, i: int) -> VolumeEmaSignal:
        fast = ctx.at("vol_ema5", i)
        slow = ctx.at("vol_ema20", i)
        if fast is None or slow is None:
            return VolumeEmaSignal.NEUTRAL
        if fast > slow:
            return VolumeEmaSignal.BULLISH
        if fast < slow:
            return VolumeEmaSignal.BEARISH
        return VolumeEmaSignal.NEUTRAL

    @staticmethod
    def _volume_status(rvol: Optional[float]) -> VolumeStatus:
        if rvol is None:
            return VolumeStatus.NA
        if rvol > HIGH_RVOL:
            return VolumeStatus.HIGH
        if rvol < LOW_RVOL:
            return VolumeStatus.LOW
        return VolumeStatus.AVERAGE
