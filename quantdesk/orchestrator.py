"""
QuantDesk Scan Pipeline

One synchronous pass over a ticker universe:

1. Filter the universe (minimum last close, minimum history)
2. Compute indicators (through the caller's IndicatorCache, if any)
3. Build each ticker's live SignalSnapshot
4. Replay the backtested strategies over 1Y / 3Y / 5Y / 10Y
5. Classify the market regime
6. Aggregate risk over the live long signals

Everything returned is read-only.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

import pandas as pd

from quantdesk.backtest.models import BacktestResult
from quantdesk.backtest.simulator import BacktestSimulator
from quantdesk.config.settings import settings as default_settings
from quantdesk.core.enums import Direction
from quantdesk.core.models import MarketRegime, ProcessedStock, RiskAnalysis
from quantdesk.indicators.engine import IndicatorCache, IndicatorEngine
from quantdesk.intelligence.regime import RegimeDetector
from quantdesk.risk.portfolio_risk import RiskAggregator
from quantdesk.signals.generator import SignalGenerator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ScanReport:
    """Result of one pipeline run."""

    stocks: Tuple[ProcessedStock, ...]
    regime: MarketRegime
    risk: RiskAnalysis
    backtests: Tuple[BacktestResult, ...]
    skipped: Tuple[str, ...] = ()

    @property
    def tickers(self) -> List[str]:
        return [s.ticker for s in self.stocks]

    @property
    def active_signals(self) -> List[ProcessedStock]:
        """Stocks whose snapshot has a net direction."""
        return [s for s in self.stocks if s.signals.direction != Direction.NEUTRAL]

    def get(self, ticker: str) -> Optional[ProcessedStock]:
        for stock in self.stocks:
            if stock.ticker == ticker:
                return stock
        return None


class ScanPipeline:
    """
    Wires the indicator engine, signal generator, backtest simulator,
    regime detector and risk aggregator together.

    Usage:
        pipeline = ScanPipeline(cache=IndicatorCache())
        report = pipeline.run({"AAPL": aapl_bars, "MSFT": msft_bars})
    """

    def __init__(self, settings: Any = None, cache: Optional[IndicatorCache] = None):
        self.settings = settings if settings is not None else default_settings
        self.cache = cache

        self.min_price = getattr(self.settings, "min_price", 35.0)
        self.min_history = getattr(self.settings, "min_history_bars", 252)

        self.engine = IndicatorEngine(cache=cache)
        self.signals = SignalGenerator(settings=self.settings)
        self.simulator = BacktestSimulator(settings=self.settings)
        self.regime = RegimeDetector()
        self.risk = RiskAggregator(settings=self.settings)

    def process(self, histories: Mapping[str, pd.DataFrame]) -> Tuple[List[ProcessedStock], List[str]]:
        """Filter the universe and build each ticker's snapshot."""
        stocks: List[ProcessedStock] = []
        skipped: List[str] = []

        for ticker, bars in histories.items():
            if len(bars) < self.min_history:
                logger.debug("[%s] %d bars, below minimum %d", ticker, len(bars), self.min_history)
                skipped.append(ticker)
                continue
            price = float(bars["close"].iloc[-1])
            if price < self.min_price:
                logger.debug("[%s] last close %.2f below %.2f", ticker, price, self.min_price)
                skipped.append(ticker)
                continue

            indicators = self.engine.compute(bars)
            snapshot = self.signals.generate(ticker, bars, indicators)
            stocks.append(ProcessedStock(ticker=ticker, bars=bars, indicators=indicators, signals=snapshot))

        return stocks, skipped

    def run(
        self,
        histories: Mapping[str, pd.DataFrame],
        as_of: Optional[pd.Timestamp] = None,
        run_backtest: bool = True,
    ) -> ScanReport:
        stocks, skipped = self.process(histories)
        logger.info("Processed %d tickers (%d filtered out)", len(stocks), len(skipped))

        backtests: List[BacktestResult] = []
        if run_backtest and stocks:
            universe = {s.ticker: s.bars for s in stocks}
            indicators = {s.ticker: s.indicators for s in stocks}
            backtests = self.simulator.run_all(universe, as_of=as_of, indicators=indicators)
            logger.info("Backtest produced %d results", len(backtests))

        regime = self.regime.detect(stocks)
        risk = self.risk.analyze(stocks)
        logger.info("Regime %s, risk desk %s", regime.type.value, risk.status.value)

        return ScanReport(
            stocks=tuple(stocks),
            regime=regime,
            risk=risk,
            backtests=tuple(backtests),
            skipped=tuple(skipped),
        )
