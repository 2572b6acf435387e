"""QuantDesk portfolio backtesting."""

from .models import BacktestResult, EquityPoint, OpenPosition, Trade, TradeSummary
from .simulator import BacktestSimulator, SignalBook
from .statistics import StatisticsCalculator

__all__ = [
    "BacktestResult",
    "BacktestSimulator",
    "EquityPoint",
    "OpenPosition",
    "SignalBook",
    "StatisticsCalculator",
    "Trade",
    "TradeSummary",
]
