"""
Portfolio Backtest Simulator

Replays each backtested strategy over the 1Y / 3Y / 5Y / 10Y windows with
one shared cash account per run:

1. Pre-scan every ticker with enough history at every bar from the warmup
   onwards, collecting date-keyed entry triggers and exit dates.
2. Per run, merge the window's dates across eligible tickers and walk them
   in order. Each day: close positions (stop, then target, then exit
   signal; never on the entry day), mark to market, then open new ones.
3. Size every entry with the fixed-fractional sizer against the day's
   pre-open equity.

Runs are independent of each other and may execute on a thread pool.
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

import pandas as pd

from quantdesk.backtest.models import BacktestResult, EquityPoint, OpenPosition, Trade
from quantdesk.backtest.statistics import StatisticsCalculator
from quantdesk.core.enums import BacktestPeriod, ExitCondition, Strategy
from quantdesk.core.models import Trigger
from quantdesk.indicators.engine import IndicatorCache, IndicatorEngine, IndicatorSeries
from quantdesk.risk.position_sizer import FixedFractionalSizer
from quantdesk.scanners.base import ScanContext, StrategyScanner
from quantdesk.scanners.registry import build_scanners

logger = logging.getLogger(__name__)

INITIAL_CAPITAL = 100_000.0
MIN_HISTORY = 201
WARMUP_BARS = 200
DAYS_PER_YEAR = 365

# (high, low, close) for one ticker on one date
DayBar = Tuple[float, float, float]


@dataclass(eq=False)
class SignalBook:
    """Pre-scanned backtest signals for one strategy."""

    strategy: Strategy
    entries: Dict[pd.Timestamp, List[Trigger]] = field(default_factory=lambda: defaultdict(list))
    exits: Dict[pd.Timestamp, Set[str]] = field(default_factory=lambda: defaultdict(set))

    def entries_on(self, date: pd.Timestamp) -> List[Trigger]:
        return self.entries.get(date, [])

    def exits_on(self, date: pd.Timestamp) -> Set[str]:
        return self.exits.get(date, set())

    @property
    def entry_count(self) -> int:
        return sum(len(v) for v in self.entries.values())


class BacktestSimulator:
    """
    Multi-ticker, single-account portfolio simulation.

    Every (strategy, period) run starts from the same initial capital and
    shares nothing with the other runs.
    """

    def __init__(
        self,
        settings: Any = None,
        initial_capital: Optional[float] = None,
        workers: Optional[int] = None,
        scanners: Optional[Dict[Strategy, StrategyScanner]] = None,
        sizer: Optional[FixedFractionalSizer] = None,
    ):
        """
        Initialize simulator.

        Args:
            settings: Optional settings object; supplies initial_capital,
                      risk_per_trade_pct, max_position_pct, backtest_min_history,
                      backtest_warmup_bars and backtest_workers.
            initial_capital: Starting equity; wins over settings (default 100,000).
            workers: Thread pool size for independent runs; wins over
                     settings (default 1).
            scanners: Strategy scanners (default: the full registry).
            sizer: Position sizer (default: 2% risk, 25% cap).
        """
        if initial_capital is None:
            initial_capital = getattr(settings, "initial_capital", INITIAL_CAPITAL)
        if workers is None:
            workers = getattr(settings, "backtest_workers", 1)
        self.initial_capital = initial_capital
        self.workers = workers
        self.min_history = getattr(settings, "backtest_min_history", MIN_HISTORY)
        self.warmup = getattr(settings, "backtest_warmup_bars", WARMUP_BARS)

        self.scanners = scanners or build_scanners()
        self.sizer = sizer or FixedFractionalSizer(settings=settings)
        self.stats = StatisticsCalculator()

    # ------------------------------------------------------------------
    # Pre-scan
    # ------------------------------------------------------------------

    def prescan(
        self,
        histories: Mapping[str, pd.DataFrame],
        indicators: Optional[Mapping[str, IndicatorSeries]] = None,
        cache: Optional[IndicatorCache] = None,
        strategies: Optional[List[Strategy]] = None,
    ) -> Dict[Strategy, SignalBook]:
        """Historical entry/exit signals for every strategy, keyed by date."""
        strategies = strategies or Strategy.backtested()
        books = {s: SignalBook(strategy=s) for s in strategies}
        engine = IndicatorEngine(cache=cache)

        for ticker, bars in histories.items():
            if len(bars) < self.min_history:
                logger.debug("[%s] %d bars, below pre-scan minimum %d", ticker, len(bars), self.min_history)
                continue

            series = indicators.get(ticker) if indicators else None
            if series is None:
                series = engine.compute(bars)
            ctx = ScanContext.from_frame(ticker, bars, series)

            for i in range(self.warmup, len(ctx)):
                date = ctx.dates[i]
                for strategy in strategies:
                    scanner = self.scanners[strategy]
                    entry = scanner.entry_signal(ctx, i)
                    if entry is not None:
                        books[strategy].entries[date].append(entry)
                    if scanner.exit_signal(ctx, i):
                        books[strategy].exits[date].add(ticker)

        for strategy, book in books.items():
            logger.debug("Pre-scan %s: %d entry signals", strategy.value, book.entry_count)
        return books

    # ------------------------------------------------------------------
    # Single run
    # ------------------------------------------------------------------

    def simulate(
        self,
        book: SignalBook,
        period: BacktestPeriod,
        histories: Mapping[str, pd.DataFrame],
        as_of: Optional[pd.Timestamp] = None,
    ) -> Optional[BacktestResult]:
        """
        Replay one strategy over one window.

        Returns None when no eligible ticker has a bar inside the window.
        """
        as_of = pd.Timestamp(as_of) if as_of is not None else pd.Timestamp.today().normalize()
        start = as_of - pd.Timedelta(days=period.years * DAYS_PER_YEAR)

        day_bars: Dict[str, Dict[pd.Timestamp, DayBar]] = {}
        timeline: Set[pd.Timestamp] = set()
        for ticker, bars in histories.items():
            if len(bars) < period.min_bars:
                continue
            dates = pd.DatetimeIndex(bars["date"])
            day_bars[ticker] = dict(
                zip(
                    dates,
                    zip(
                        bars["high"].to_numpy(dtype=float),
                        bars["low"].to_numpy(dtype=float),
                        bars["close"].to_numpy(dtype=float),
                    ),
                )
            )
            timeline.update(dates[(dates >= start) & (dates <= as_of)])

        if not timeline:
            logger.debug("%s %s: no eligible dates", book.strategy.value, period.value)
            return None

        cash = self.initial_capital
        open_positions: List[OpenPosition] = []
        closed: List[Trade] = []
        curve: List[EquityPoint] = []
        peak = self.initial_capital
        max_drawdown = 0.0

        for date in sorted(timeline):
            # 1. Close
            exits = book.exits_on(date)
            still_open: List[OpenPosition] = []
            for pos in open_positions:
                trade = self._check_exit(pos, date, day_bars[pos.ticker].get(date), exits)
                if trade is None:
                    still_open.append(pos)
                else:
                    cash += trade.exit_capital
                    closed.append(trade)
            open_positions = still_open

            # 2. Mark to market
            open_value = 0.0
            for pos in open_positions:
                bar = day_bars[pos.ticker].get(date)
                open_value += pos.market_value(bar[2] if bar is not None else None)
            equity = cash + open_value

            if equity > peak:
                peak = equity
            drawdown = (peak - equity) / peak * 100
            if drawdown > max_drawdown:
                max_drawdown = drawdown
            curve.append(EquityPoint(date=date, total_equity=equity, cash=cash, max_drawdown=max_drawdown))

            # 3. Open
            held = {pos.ticker for pos in open_positions}
            for signal in book.entries_on(date):
                if signal.ticker not in day_bars or signal.ticker in held:
                    continue
                size = self.sizer.size(signal.entry_price, signal.stop_loss, equity)
                if size.shares == 0:
                    continue
                if cash >= size.position_value:
                    cash -= size.position_value
                    open_positions.append(
                        OpenPosition(
                            ticker=signal.ticker,
                            entry_date=date,
                            entry_price=signal.entry_price,
                            shares=size.shares,
                            stop_loss=signal.stop_loss,
                            target=signal.target,
                        )
                    )
                    held.add(signal.ticker)

        final_capital = curve[-1].total_equity
        winners = sum(1 for t in closed if t.pnl > 0)
        win_rate = winners / len(closed) * 100 if closed else 0.0
        total_return = (final_capital / self.initial_capital - 1) * 100
        cagr = ((final_capital / self.initial_capital) ** (1 / period.years) - 1) * 100

        result = BacktestResult(
            strategy=book.strategy,
            period=period,
            trades=tuple(closed),
            equity_curve=tuple(curve),
            initial_capital=self.initial_capital,
            final_capital=final_capital,
            total_return=total_return,
            cagr=cagr,
            max_drawdown=max_drawdown,
            win_rate=win_rate,
            summary=self.stats.calculate(closed),
        )
        logger.info(
            "%s: %d trades, return %.2f%%, max DD %.2f%%, win rate %.1f%%",
            result.label, result.total_trades, total_return, max_drawdown, win_rate,
        )
        return result

    @staticmethod
    def _check_exit(
        pos: OpenPosition,
        date: pd.Timestamp,
        bar: Optional[DayBar],
        exit_tickers: Set[str],
    ) -> Optional[Trade]:
        if bar is None or date <= pos.entry_date:
            return None

        high, low, close = bar
        if low <= pos.stop_loss:
            return pos.close(date, pos.stop_loss, ExitCondition.STOP_LOSS)
        if high >= pos.target:
            return pos.close(date, pos.target, ExitCondition.TAKE_PROFIT)
        if pos.ticker in exit_tickers:
            return pos.close(date, close, ExitCondition.SIGNAL)
        return None

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run_all(
        self,
        histories: Mapping[str, pd.DataFrame],
        as_of: Optional[pd.Timestamp] = None,
        cache: Optional[IndicatorCache] = None,
        indicators: Optional[Mapping[str, IndicatorSeries]] = None,
    ) -> List[BacktestResult]:
        """
        Every backtested strategy over every period.

        Results come back strategy-major (all periods of the first strategy,
        then the next), skipping periods without eligible dates.
        """
        if not histories:
            return []

        books = self.prescan(histories, indicators=indicators, cache=cache)
        jobs = [(books[s], p) for s in Strategy.backtested() for p in BacktestPeriod]

        def run(job):
            book, period = job
            return self.simulate(book, period, histories, as_of=as_of)

        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(run, jobs))
        else:
            results = [run(job) for job in jobs]

        return [r for r in results if r is not None]
