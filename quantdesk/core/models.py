"""
QuantDesk Core Data Models

Frozen dataclasses for bars, strategy triggers, live signal snapshots and
the cross-sectional risk/regime results. Everything handed outward is a
read-only value object.
"""

import math
from dataclasses import asdict, dataclass, field
from datetime import date as date_type
from typing import TYPE_CHECKING, Dict, FrozenSet, Optional, Sequence, Union

import pandas as pd

from .enums import (
    Direction,
    DominantFactor,
    RegimeType,
    RiskStatus,
    Side,
    Strategy,
    TrendSignal,
    VolumeEmaSignal,
    VolumeSignal,
    VolumeStatus,
)

if TYPE_CHECKING:
    from quantdesk.indicators.engine import IndicatorSeries

BAR_COLUMNS = ["date", "open", "high", "low", "close", "volume"]


def is_defined(value: Optional[float]) -> bool:
    """True when an indicator value is usable (not None / NaN / inf)."""
    return value is not None and math.isfinite(value)


@dataclass(frozen=True)
class Bar:
    """One daily OHLCV bar."""

    date: Union[date_type, pd.Timestamp, str]
    open: float
    high: float
    low: float
    close: float
    volume: float


def bars_to_frame(bars: Sequence[Bar]) -> pd.DataFrame:
    """Build the canonical bar DataFrame from Bar records."""
    frame = pd.DataFrame(
        [asdict(b) for b in bars],
        columns=BAR_COLUMNS,
    )
    frame["date"] = pd.to_datetime(frame["date"])
    return frame


@dataclass(frozen=True)
class Trigger:
    """A strategy firing on one bar."""

    strategy: Strategy
    side: Side
    ticker: str
    index: int
    date: pd.Timestamp
    entry_price: float
    stop_loss: Optional[float] = None
    target: Optional[float] = None

    @property
    def risk_per_share(self) -> float:
        if self.stop_loss is None:
            return 0.0
        return self.entry_price - self.stop_loss


@dataclass(frozen=True)
class SignalFactors:
    """0-100 scores for the four drivers behind a signal."""

    momentum: int
    volume: int
    trend: int
    volatility: int
    dominant_factor: DominantFactor

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class SignalSnapshot:
    """Signals for one ticker evaluated at its latest bar."""

    ticker: str
    date: pd.Timestamp
    close: float

    # Volume / trend
    volume_signal: VolumeSignal
    volume_spike_date: Optional[pd.Timestamp]
    trend_signal: TrendSignal
    volume_ema_signal: VolumeEmaSignal
    volume_status: VolumeStatus
    price_above_ema10: bool
    stop_loss: Optional[float]
    target: Optional[float]
    suggested_shares: int

    # Most recent trigger per crossover strategy (None = nothing in window)
    crossover: Optional[Trigger]
    vwlm: Optional[Trigger]
    vwlm_intraday: Optional[Trigger]

    vwlm_strength: Optional[float]
    vwlm_intraday_strength: Optional[float]

    factors: SignalFactors

    # -- flag views ---------------------------------------------------------

    def _fired(self, trigger: Optional[Trigger], side: Side) -> bool:
        return trigger is not None and trigger.side == side

    @property
    def volume_breakout_signal(self) -> bool:
        """Spike confirmed by an uptrend - the breakout long entry."""
        return (
            self.volume_signal == VolumeSignal.SPIKE
            and self.trend_signal == TrendSignal.UPTREND
        )

    @property
    def cross_buy_signal(self) -> bool:
        return self._fired(self.crossover, Side.BUY)

    @property
    def cross_sell_signal(self) -> bool:
        return self._fired(self.crossover, Side.SELL)

    @property
    def vwlm_buy_signal(self) -> bool:
        return self._fired(self.vwlm, Side.BUY)

    @property
    def vwlm_sell_signal(self) -> bool:
        return self._fired(self.vwlm, Side.SELL)

    @property
    def vwlm_intraday_buy_signal(self) -> bool:
        return self._fired(self.vwlm_intraday, Side.BUY)

    @property
    def vwlm_intraday_sell_signal(self) -> bool:
        return self._fired(self.vwlm_intraday, Side.SELL)

    @property
    def long_strategies(self) -> FrozenSet[Strategy]:
        """Strategies currently signalling a long entry."""
        active = set()
        if self.volume_breakout_signal:
            active.add(Strategy.VOLATILITY_BREAKOUT)
        if self.cross_buy_signal:
            active.add(Strategy.SHORT_TERM_CROSSOVER)
        if self.vwlm_buy_signal:
            active.add(Strategy.VWLM)
        if self.vwlm_intraday_buy_signal:
            active.add(Strategy.VWLM_INTRADAY)
        return frozenset(active)

    @property
    def risk_strategies(self) -> FrozenSet[Strategy]:
        """Long strategies the risk desk sizes (daily strategies only)."""
        return self.long_strategies & frozenset(Strategy.backtested())

    @property
    def direction(self) -> Direction:
        """Net direction, long entries taking precedence over exits."""
        if self.vwlm_buy_signal or self.cross_buy_signal:
            return Direction.LONG
        if self.vwlm_sell_signal or self.cross_sell_signal:
            return Direction.SHORT
        if self.volume_breakout_signal:
            return Direction.LONG
        return Direction.NEUTRAL


@dataclass(frozen=True, eq=False)
class ProcessedStock:
    """A ticker's bars, indicators and live snapshot."""

    ticker: str
    bars: pd.DataFrame
    indicators: "IndicatorSeries"
    signals: SignalSnapshot

    @property
    def current_price(self) -> float:
        return float(self.bars["close"].iloc[-1])


@dataclass(frozen=True)
class Concentration:
    """Exposure split by volatility bucket, in percent of total exposure."""

    defensive: float = 0.0
    cyclical: float = 0.0
    speculative: float = 0.0


@dataclass(frozen=True)
class RiskAnalysis:
    """Portfolio-level view over every live long signal."""

    total_capital: float
    total_exposure: float
    exposure_ratio: float
    var_daily: float
    concentration: Concentration
    strategy_overlap: float
    max_single_position_risk: float
    max_single_position_ticker: str
    status: RiskStatus
    recommendation: str
    positions: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class MarketRegime:
    """Aggregate market regime across the universe."""

    type: RegimeType
    avg_adx: float
    avg_volatility: float
    breadth_sma50: float
    correlation: float
    description: str

    def to_dict(self) -> dict:
        return asdict(self)
