"""
QuantDesk Base Scanner

Abstract base class for the strategy scanners. Each scanner owns one
Strategy and answers three questions about a single bar:

- detect(): did the live trigger fire here (buy or sell, with levels)?
- entry_signal(): would the backtest open a long position here?
- exit_signal(): would the backtest close an open long here?

Bars and indicators travel together in a ScanContext so every scanner
reads the same aligned arrays.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

from quantdesk.core.enums import Side, Strategy
from quantdesk.core.models import Trigger, is_defined
from quantdesk.indicators.engine import IndicatorSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class ScanContext:
    """One ticker's bars as arrays, aligned with its indicators."""

    ticker: str
    dates: pd.DatetimeIndex
    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray
    indicators: IndicatorSeries

    @classmethod
    def from_frame(cls, ticker: str, bars: pd.DataFrame, indicators: IndicatorSeries) -> "ScanContext":
        return cls(
            ticker=ticker,
            dates=pd.DatetimeIndex(bars["date"]),
            open=bars["open"].to_numpy(dtype=float),
            high=bars["high"].to_numpy(dtype=float),
            low=bars["low"].to_numpy(dtype=float),
            close=bars["close"].to_numpy(dtype=float),
            volume=bars["volume"].to_numpy(dtype=float),
            indicators=indicators,
        )

    def __len__(self) -> int:
        return len(self.close)

    @property
    def last_index(self) -> int:
        return len(self.close) - 1

    def at(self, name: str, index: int) -> Optional[float]:
        """Indicator value at ``index``; None if undefined or out of range."""
        if index < 0:
            return None
        return self.indicators.value(name, index)

    def defined(self, index: int, *names: str) -> bool:
        """True when every named indicator is defined at ``index``."""
        return all(self.at(name, index) is not None for name in names)

    def trigger(
        self,
        strategy: Strategy,
        side: Side,
        index: int,
        stop_loss: Optional[float] = None,
        target: Optional[float] = None,
    ) -> Trigger:
        """Build a Trigger entering at the close of ``index``."""
        return Trigger(
            strategy=strategy,
            side=side,
            ticker=self.ticker,
            index=index,
            date=self.dates[index],
            entry_price=float(self.close[index]),
            stop_loss=stop_loss,
            target=target,
        )


class StrategyScanner(ABC):
    """
    Abstract base class for strategy scanners.

    Subclasses set ``strategy`` and ``min_index`` and implement detect().
    Backtest predicates default to "never".
    """

    strategy: Strategy
    # Earliest bar index the live scan may look at
    min_index: int = 0

    def __init__(self):
        self.name = self.__class__.__name__

    @abstractmethod
    def detect(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        """Live trigger at bar ``i`` (buy checked before sell)."""
        pass

    def scan(self, ctx: ScanContext, lookback: int = 5) -> Optional[Trigger]:
        """Most recent trigger within the last ``lookback + 1`` bars."""
        last = ctx.last_index
        floor = max(self.min_index, last - lookback)
        for i in range(last, floor - 1, -1):
            found = self.detect(ctx, i)
            if found is not None:
                return found
        return None

    def entry_signal(self, ctx: ScanContext, i: int) -> Optional[Trigger]:
        """Backtest long entry at bar ``i``."""
        return None

    def exit_signal(self, ctx: ScanContext, i: int) -> bool:
        """Backtest exit for an open long at bar ``i``."""
        return False

    @staticmethod
    def crossed_above(fast_prev: float, slow_prev: float, fast: float, slow: float) -> bool:
        return fast_prev <= slow_prev and fast > slow

    @staticmethod
    def crossed_below(fast_prev: float, slow_prev: float, fast: float, slow: float) -> bool:
        return fast_prev >= slow_prev and fast < slow

    @staticmethod
    def window_min(values: np.ndarray, start: int, end: int) -> Optional[float]:
        window = values[max(0, start):end]
        if len(window) == 0:
            return None
        result = float(np.min(window))
        return result if is_defined(result) else None

    @staticmethod
    def window_max(values: np.ndarray, start: int, end: int) -> Optional[float]:
        window = values[max(0, start):end]
        if len(window) == 0:
            return None
        result = float(np.max(window))
        return result if is_defined(result) else None
