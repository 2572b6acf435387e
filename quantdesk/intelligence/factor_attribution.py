"""
Factor Attribution

Breaks a ticker's latest state into four 0-100 driver scores:

    Momentum   = 0.4 * norm(RSI, 40..80)
               + 0.3 * (75 if close > EMA9 else 25)
               + 0.3 * (80 if MACD histogram > 0 else 20)
    Volume     = 0.7 * norm(RVOL, 0.5..3.5)
               + 0.3 * (80 if OBV rose over 5 bars else 20)
    Trend      = 0.6 * norm(ADX, 15..50)
               + 0.4 * (80 if +DI > -DI else 20)
    Volatility = 0.5 * norm(Volatility%, 0.5..4.0)
               + 0.5 * (80 if ATR expanded over 20 bars else 40)

The highest score names the dominant factor, unless the top two sit
within 10 points of each other (BALANCED).
"""

import logging
import math
from typing import Optional

import numpy as np

from quantdesk.core.enums import DominantFactor
from quantdesk.core.models import SignalFactors, is_defined
from quantdesk.indicators.engine import IndicatorSeries

logger = logging.getLogger(__name__)

BALANCED_MARGIN = 10.0
OBV_LOOKBACK = 5
ATR_LOOKBACK = 20


def normalize(value: Optional[float], low: float, high: float) -> float:
    """Clamp ``value`` into [low, high] and rescale to 0-100 (0 if undefined)."""
    if not is_defined(value):
        return 0.0
    clamped = max(low, min(high, value))
    return (clamped - low) / (high - low) * 100


def _round_score(score: float) -> int:
    # Halves round up, not to even
    return int(math.floor(score + 0.5))


def _at(series: np.ndarray, index: int, default: float) -> float:
    if index < 0 or index >= len(series):
        return default
    value = float(series[index])
    return value if is_defined(value) else default


class FactorAttributionEngine:
    """Scores the drivers behind a ticker's signal at a given bar."""

    def attribute(
        self,
        indicators: IndicatorSeries,
        closes: np.ndarray,
        index: Optional[int] = None,
    ) -> SignalFactors:
        last = len(closes) - 1 if index is None else index
        price = float(closes[last])

        # Momentum
        rsi = _at(indicators.rsi, last, 50.0)
        ema9 = _at(indicators.ema9, last, price)
        macd_hist = _at(indicators.macd_line, last, np.nan) - _at(indicators.macd_signal, last, np.nan)
        if not is_defined(macd_hist):
            macd_hist = 0.0
        momentum = (
            normalize(rsi, 40, 80) * 0.4
            + (75 if price > ema9 else 25) * 0.3
            + (80 if macd_hist > 0 else 20) * 0.3
        )

        # Volume
        rvol = _at(indicators.rvol, last, 1.0)
        obv_now = _at(indicators.obv, last, 0.0)
        obv_before = _at(indicators.obv, last - OBV_LOOKBACK, 0.0)
        volume = normalize(rvol, 0.5, 3.5) * 0.7 + (80 if obv_now > obv_before else 20) * 0.3

        # Trend
        adx = _at(indicators.adx, last, 0.0)
        plus_di = _at(indicators.plus_di, last, 0.0)
        minus_di = _at(indicators.minus_di, last, 0.0)
        trend = normalize(adx, 15, 50) * 0.6 + (80 if plus_di > minus_di else 20) * 0.4

        # Volatility
        vol_pct = _at(indicators.volatility_pct, last, 1.0)
        atr_now = _at(indicators.atr, last, 0.0)
        atr_before = _at(indicators.atr, last - ATR_LOOKBACK, atr_now)
        volatility = normalize(vol_pct, 0.5, 4.0) * 0.5 + (80 if atr_now > atr_before else 40) * 0.5

        return SignalFactors(
            momentum=_round_score(momentum),
            volume=_round_score(volume),
            trend=_round_score(trend),
            volatility=_round_score(volatility),
            dominant_factor=self._dominant(momentum, volume, trend, volatility),
        )

    @staticmethod
    def _dominant(momentum: float, volume: float, trend: float, volatility: float) -> DominantFactor:
        ranked = sorted(
            [
                (DominantFactor.MOMENTUM, momentum),
                (DominantFactor.VOLUME, volume),
                (DominantFactor.TREND, trend),
                (DominantFactor.VOLATILITY, volatility),
            ],
            key=lambda item: item[1],
            reverse=True,
        )
        if ranked[0][1] - ranked[1][1] < BALANCED_MARGIN:
            return DominantFactor.BALANCED
        return ranked[0][0]
