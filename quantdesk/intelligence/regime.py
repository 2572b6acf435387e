"""
QuantDesk Regime Detector
Classifies the aggregate market regime across the scanned universe.

REGIMES (first match wins):
- RISK_OFF: breadth < 30% and average volatility > 2.0%
- HIGH_VOLATILITY: average volatility > 2.5%
- TRENDING: average ADX > 25 and breadth > 60%
- RANGE_BOUND: average ADX < 20 and directional correlation < 0.3
- NEUTRAL: anything else

KEY INDICATORS:
- ADX: Trend strength, averaged over tickers
- Volatility%: ATR / close, averaged over tickers
- Breadth: % of tickers closing above their 50 SMA
- Correlation: |advancers - decliners| / total, a one-bar co-movement proxy
"""

import logging
from typing import Dict, Sequence

from quantdesk.core.enums import RegimeType
from quantdesk.core.models import MarketRegime, ProcessedStock, is_defined

logger = logging.getLogger(__name__)


REGIME_DESCRIPTIONS: Dict[RegimeType, str] = {
    RegimeType.RISK_OFF: "Capital Preservation Mode. High volatility and weak breadth detected.",
    RegimeType.HIGH_VOLATILITY: "Dislocated Market. Wide stops required. Reduce position sizing.",
    RegimeType.TRENDING: "High Momentum. Breakout strategies favored. Aggressive sizing permitted.",
    RegimeType.RANGE_BOUND: "Choppy Environment. Breakouts likely to fail. Use mean reversion.",
    RegimeType.NEUTRAL: "Mixed signals. Selectivity required.",
}

INSUFFICIENT_DATA = "INSUFFICIENT DATA"


class RegimeDetector:
    """
    Detect the market regime from each ticker's latest indicators.

    Tickers whose ADX, volatility or SMA50 is still undefined are left out
    of that one average (and its denominator) rather than counted as zero.
    """

    def __init__(
        self,
        adx_trend_threshold: float = 25.0,
        adx_range_threshold: float = 20.0,
        high_volatility: float = 2.5,
        risk_off_volatility: float = 2.0,
        risk_off_breadth: float = 30.0,
        trend_breadth: float = 60.0,
        range_correlation: float = 0.3,
    ):
        """
        Initialize regime detector.

        Args:
            adx_trend_threshold: average ADX above this = trending
            adx_range_threshold: average ADX below this = range-bound candidate
            high_volatility: average volatility% above this = dislocated
            risk_off_volatility: volatility% floor for the risk-off call
            risk_off_breadth: breadth% ceiling for the risk-off call
            trend_breadth: breadth% floor for the trending call
            range_correlation: correlation ceiling for the range-bound call
        """
        self.adx_trend_threshold = adx_trend_threshold
        self.adx_range_threshold = adx_range_threshold
        self.high_volatility = high_volatility
        self.risk_off_volatility = risk_off_volatility
        self.risk_off_breadth = risk_off_breadth
        self.trend_breadth = trend_breadth
        self.range_correlation = range_correlation

    def detect(self, stocks: Sequence[ProcessedStock]) -> MarketRegime:
        """Aggregate the universe and classify it."""
        if not stocks:
            return MarketRegime(
                type=RegimeType.NEUTRAL,
                avg_adx=0.0,
                avg_volatility=0.0,
                breadth_sma50=0.0,
                correlation=0.0,
                description=INSUFFICIENT_DATA,
            )

        adx_values = []
        vol_values = []
        above_sma50 = 0
        sma50_count = 0
        advances = 0
        declines = 0

        for stock in stocks:
            ind = stock.indicators
            price = stock.current_price

            adx = ind.value("adx")
            if adx is not None:
                adx_values.append(adx)

            vol = ind.value("volatility_pct")
            if vol is not None:
                vol_values.append(vol)

            sma50 = ind.value("sma50")
            if sma50 is not None:
                sma50_count += 1
                if price > sma50:
                    above_sma50 += 1

            closes = stock.bars["close"]
            prev_close = float(closes.iloc[-2]) if len(closes) > 1 else price
            if not is_defined(prev_close) or prev_close == 0:
                prev_close = price
            if price > prev_close:
                advances += 1
            else:
                declines += 1

        avg_adx = sum(adx_values) / len(adx_values) if adx_values else 0.0
        avg_volatility = sum(vol_values) / len(vol_values) if vol_values else 0.0
        breadth = above_sma50 / sma50_count * 100 if sma50_count else 0.0
        correlation = abs(advances - declines) / len(stocks)

        regime = self.classify(avg_adx, avg_volatility, breadth, correlation)
        logger.debug(
            "Regime %s: adx=%.1f vol=%.2f%% breadth=%.0f%% corr=%.2f (%d tickers)",
            regime.type.value, avg_adx, avg_volatility, breadth, correlation, len(stocks),
        )
        return regime

    def classify(
        self,
        avg_adx: float,
        avg_volatility: float,
        breadth_sma50: float,
        correlation: float,
    ) -> MarketRegime:
        """Apply the regime gates to pre-aggregated statistics."""
        if breadth_sma50 < self.risk_off_breadth and avg_volatility > self.risk_off_volatility:
            regime_type = RegimeType.RISK_OFF
        elif avg_volatility > self.high_volatility:
            regime_type = RegimeType.HIGH_VOLATILITY
        elif avg_adx > self.adx_trend_threshold and breadth_sma50 > self.trend_breadth:
            regime_type = RegimeType.TRENDING
        elif avg_adx < self.adx_range_threshold and correlation < self.range_correlation:
            regime_type = RegimeType.RANGE_BOUND
        else:
            regime_type = RegimeType.NEUTRAL

        return MarketRegime(
            type=regime_type,
            avg_adx=avg_adx,
            avg_volatility=avg_volatility,
            breadth_sma50=breadth_sma50,
            correlation=correlation,
            description=REGIME_DESCRIPTIONS[regime_type],
        )
