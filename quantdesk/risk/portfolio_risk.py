"""
Portfolio Risk Aggregator - worst-case view over every live long signal.

Exposure assumes every active daily strategy (breakout, crossover, VWLM
swing) is executed at once: a ticker long in N of them carries N x its
suggested share count. VWLM intraday signals add no exposure.

Rules:
- Volatility bucket by ATR / price: < 1.5% defensive, 1.5-2.5% cyclical,
  > 2.5% speculative
- VaR (daily) = exposure x weighted volatility% x 1.5
- CRITICAL: exposure > 1.2x capital or > 50% of tickers in several strategies
- CAUTION: exposure > 0.8x capital or > 60% of exposure speculative
"""

import logging
from typing import Any, Dict, Optional, Sequence

from quantdesk.core.enums import RiskStatus
from quantdesk.core.models import Concentration, ProcessedStock, RiskAnalysis

logger = logging.getLogger(__name__)

INITIAL_CAPITAL = 100_000.0
DEFENSIVE_MAX_VOL = 1.5
CYCLICAL_MAX_VOL = 2.5
VAR_MULTIPLIER = 1.5

CRITICAL_EXPOSURE = 1.2
CRITICAL_OVERLAP = 50.0
CAUTION_EXPOSURE = 0.8
CAUTION_SPECULATIVE = 0.6

RECOMMENDATIONS = {
    RiskStatus.SAFE: "Portfolio balanced. Execution approved.",
    RiskStatus.CAUTION: "High beta exposure detected. Tighten stops on speculative assets.",
    RiskStatus.CRITICAL: "LIQUIDITY CRUNCH IMMINENT. Reduce position sizing immediately.",
}


class RiskAggregator:
    """
    Aggregates live signals into a single RiskAnalysis.

    Tickers whose ATR is undefined are bucketed as speculative and carry no
    weight in the VaR volatility average.
    """

    def __init__(self, settings: Any = None, total_capital: Optional[float] = None):
        if total_capital is None:
            total_capital = getattr(settings, "initial_capital", INITIAL_CAPITAL)
        self.total_capital = total_capital

    def analyze(self, stocks: Sequence[ProcessedStock]) -> RiskAnalysis:
        total_exposure = 0.0
        defensive = 0.0
        cyclical = 0.0
        speculative = 0.0
        weighted_vol = 0.0

        largest_position = 0.0
        largest_ticker = "N/A"

        positions: Dict[str, float] = {}
        strategy_counts: Dict[str, int] = {}

        for stock in stocks:
            active = stock.signals.risk_strategies
            shares = stock.signals.suggested_shares * len(active)
            if shares <= 0:
                continue

            price = stock.current_price
            position_value = shares * price
            total_exposure += position_value
            positions[stock.ticker] = positions.get(stock.ticker, 0.0) + position_value
            strategy_counts[stock.ticker] = len(active)

            if position_value > largest_position:
                largest_position = position_value
                largest_ticker = stock.ticker

            atr = stock.indicators.value("atr")
            vol_pct = atr / price * 100 if atr is not None and price > 0 else None

            if vol_pct is not None and vol_pct < DEFENSIVE_MAX_VOL:
                defensive += position_value
            elif vol_pct is not None and vol_pct <= CYCLICAL_MAX_VOL:
                cyclical += position_value
            else:
                speculative += position_value

            if vol_pct is not None:
                weighted_vol += position_value * vol_pct

        exposure_ratio = total_exposure / self.total_capital if self.total_capital else 0.0
        avg_vol = weighted_vol / total_exposure if total_exposure > 0 else 0.0
        var_daily = total_exposure * (avg_vol / 100) * VAR_MULTIPLIER

        multi = sum(1 for count in strategy_counts.values() if count > 1)
        overlap = multi / len(strategy_counts) * 100 if strategy_counts else 0.0

        speculative_share = speculative / total_exposure if total_exposure > 0 else 0.0

        if exposure_ratio > CRITICAL_EXPOSURE or overlap > CRITICAL_OVERLAP:
            status = RiskStatus.CRITICAL
        elif exposure_ratio > CAUTION_EXPOSURE or speculative_share > CAUTION_SPECULATIVE:
            status = RiskStatus.CAUTION
        else:
            status = RiskStatus.SAFE

        def share(amount: float) -> float:
            return amount / total_exposure * 100 if total_exposure > 0 else 0.0

        analysis = RiskAnalysis(
            total_capital=self.total_capital,
            total_exposure=total_exposure,
            exposure_ratio=exposure_ratio,
            var_daily=var_daily,
            concentration=Concentration(
                defensive=share(defensive),
                cyclical=share(cyclical),
                speculative=share(speculative),
            ),
            strategy_overlap=overlap,
            max_single_position_risk=share(largest_position),
            max_single_position_ticker=largest_ticker,
            status=status,
            recommendation=RECOMMENDATIONS[status],
            positions=positions,
        )

        if status != RiskStatus.SAFE:
            logger.warning(
                "Risk desk %s: exposure %.2fx capital, overlap %.0f%%, speculative %.0f%%",
                status.value, exposure_ratio, overlap, speculative_share * 100,
            )
        return analysis
