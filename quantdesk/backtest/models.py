"""Backtest data models."""

from dataclasses import dataclass, field
from typing import Optional, Tuple

import pandas as pd

from quantdesk.core.enums import BacktestPeriod, ExitCondition, Strategy


@dataclass(frozen=True)
class OpenPosition:
    """A long position held by the simulator, before it is closed."""

    ticker: str
    entry_date: pd.Timestamp
    entry_price: float
    shares: int
    stop_loss: float
    target: float

    @property
    def entry_capital(self) -> float:
        return self.shares * self.entry_price

    def market_value(self, close: Optional[float]) -> float:
        """Value at ``close``; entry price when the ticker has no bar that day."""
        price = close if close is not None else self.entry_price
        return self.shares * price

    def close(self, exit_date: pd.Timestamp, exit_price: float, condition: ExitCondition) -> "Trade":
        return Trade(
            ticker=self.ticker,
            entry_date=self.entry_date,
            entry_price=self.entry_price,
            exit_date=exit_date,
            exit_price=exit_price,
            shares=self.shares,
            stop_loss=self.stop_loss,
            target=self.target,
            exit_condition=condition,
        )


@dataclass(frozen=True)
class Trade:
    """A closed backtest trade."""

    ticker: str
    entry_date: pd.Timestamp
    entry_price: float
    exit_date: pd.Timestamp
    exit_price: float
    shares: int
    stop_loss: float
    target: float
    exit_condition: ExitCondition

    @property
    def entry_capital(self) -> float:
        return self.shares * self.entry_price

    @property
    def exit_capital(self) -> float:
        return self.shares * self.exit_price

    @property
    def pnl(self) -> float:
        return (self.exit_price - self.entry_price) * self.shares

    @property
    def trade_roi(self) -> float:
        """Percent return on the entry price."""
        return (self.exit_price - self.entry_price) / self.entry_price * 100

    @property
    def is_winner(self) -> bool:
        return self.pnl > 0


@dataclass(frozen=True)
class EquityPoint:
    """Total equity at the end of one simulated day."""

    date: pd.Timestamp
    total_equity: float
    cash: float = 0.0
    max_drawdown: float = 0.0  # Running max drawdown %, as of this day


@dataclass(frozen=True)
class TradeSummary:
    """Descriptive statistics over a result's closed trades."""

    total_pnl: float = 0.0
    avg_trade_roi: float = 0.0
    stop_loss_exits: int = 0
    take_profit_exits: int = 0
    signal_exits: int = 0
    top_winners: Tuple[Trade, ...] = ()
    top_losers: Tuple[Trade, ...] = ()
    t_statistic: float = 0.0
    p_value: float = 1.0
    is_significant: bool = False


@dataclass(frozen=True)
class BacktestResult:
    """One strategy replayed over one lookback window."""

    strategy: Strategy
    period: BacktestPeriod
    trades: Tuple[Trade, ...]
    equity_curve: Tuple[EquityPoint, ...]
    initial_capital: float
    final_capital: float
    total_return: float
    cagr: float
    max_drawdown: float
    win_rate: float
    summary: TradeSummary = field(default_factory=TradeSummary)

    @property
    def total_trades(self) -> int:
        return len(self.trades)

    @property
    def label(self) -> str:
        return f"{self.strategy.value} {self.period.value}"

    def equity_frame(self) -> pd.DataFrame:
        """Equity curve as a date-indexed DataFrame."""
        return pd.DataFrame(
            {"total_equity": [p.total_equity for p in self.equity_curve]},
            index=pd.DatetimeIndex([p.date for p in self.equity_curve], name="date"),
        )

    def trades_frame(self) -> pd.DataFrame:
        rows = [
            {
                "ticker": t.ticker,
                "entry_date": t.entry_date,
                "entry_price": t.entry_price,
                "exit_date": t.exit_date,
                "exit_price": t.exit_price,
                "shares": t.shares,
                "entry_capital": t.entry_capital,
                "exit_capital": t.exit_capital,
                "pnl": t.pnl,
                "trade_roi": t.trade_roi,
                "exit_condition": t.exit_condition.value,
            }
            for t in self.trades
        ]
        return pd.DataFrame(rows)
