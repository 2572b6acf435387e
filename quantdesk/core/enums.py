"""
QuantDesk enumerations.
"""

from enum import Enum


class Strategy(str, Enum):
    """Trading strategies evaluated by the signal engine."""

    VOLATILITY_BREAKOUT = "Volatility Breakout"
    SHORT_TERM_CROSSOVER = "Short-term Crossover"
    VWLM = "VWLM"
    VWLM_INTRADAY = "VWLM Intraday"

    @classmethod
    def backtested(cls) -> list:
        """Strategies replayed through the portfolio simulator."""
        return [cls.VOLATILITY_BREAKOUT, cls.SHORT_TERM_CROSSOVER, cls.VWLM]


class Side(str, Enum):
    """Direction of a strategy trigger."""

    BUY = "buy"
    SELL = "sell"


class Direction(str, Enum):
    """Net direction of a ticker's live signals."""

    LONG = "LONG"
    SHORT = "SHORT"
    NEUTRAL = "NEUTRAL"


class VolumeSignal(str, Enum):
    SPIKE = "Spike"
    NORMAL = "Normal"


class TrendSignal(str, Enum):
    UPTREND = "Uptrend"
    DOWNTREND = "Downtrend"
    WEAK = "Weak"


class VolumeEmaSignal(str, Enum):
    BULLISH = "Bullish"
    BEARISH = "Bearish"
    NEUTRAL = "Neutral"


class VolumeStatus(str, Enum):
    HIGH = "High"
    LOW = "Low"
    AVERAGE = "Average"
    NA = "NA"


class DominantFactor(str, Enum):
    """Primary driver behind a ticker's signal."""

    MOMENTUM = "MOMENTUM"
    VOLUME = "VOLUME"
    TREND = "TREND"
    VOLATILITY = "VOLATILITY"
    BALANCED = "BALANCED"


class ExitCondition(str, Enum):
    """Why a simulated position was closed."""

    STOP_LOSS = "SL"
    TAKE_PROFIT = "TP"
    SIGNAL = "Signal"


class RegimeType(str, Enum):
    """Aggregate market regime across the ticker universe."""

    TRENDING = "TRENDING"
    RANGE_BOUND = "RANGE_BOUND"
    HIGH_VOLATILITY = "HIGH_VOLATILITY"
    RISK_OFF = "RISK_OFF"
    NEUTRAL = "NEUTRAL"


class RiskStatus(str, Enum):
    """Risk desk verdict for the live signal book."""

    SAFE = "SAFE"
    CAUTION = "CAUTION"
    CRITICAL = "CRITICAL"


class BacktestPeriod(str, Enum):
    """Lookback windows for the portfolio simulation."""

    Y1 = "1Y"
    Y3 = "3Y"
    Y5 = "5Y"
    Y10 = "10Y"

    @property
    def years(self) -> int:
        """Length of the window in years."""
        mapping = {
            "1Y": 1,
            "3Y": 3,
            "5Y": 5,
            "10Y": 10,
        }
        return mapping[self.value]

    @property
    def min_bars(self) -> int:
        """Bars a ticker needs to take part in this window."""
        return 252 * self.years
