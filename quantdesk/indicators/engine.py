"""
Indicator Engine

Turns one ticker's OHLCV DataFrame into an IndicatorSeries: every series
aligned 1:1 with the bars, NaN until its warmup is satisfied.

Caching is opt-in. Pass an IndicatorCache to reuse results for identical
bar content; the cache is owned by the caller and never shared implicitly.
"""

import hashlib
import logging
from dataclasses import dataclass, fields
from typing import Dict, Optional

import numpy as np
import pandas as pd

from quantdesk.core.models import BAR_COLUMNS, is_defined
from quantdesk.indicators import technical as ta

logger = logging.getLogger(__name__)

AVG_VOLUME_WINDOW = 20


def _frozen(values: np.ndarray) -> np.ndarray:
    arr = np.array(values, dtype=float, copy=True)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class IndicatorSeries:
    """Read-only indicator arrays for one ticker."""

    # Volatility / trend strength
    atr: np.ndarray
    atr7: np.ndarray
    atr3: np.ndarray
    adx: np.ndarray
    plus_di: np.ndarray
    minus_di: np.ndarray
    volatility_pct: np.ndarray

    # Volume
    rvol: np.ndarray
    vol_ema5: np.ndarray
    vol_ema20: np.ndarray
    obv: np.ndarray
    avdm: np.ndarray

    # Price averages
    ema9: np.ndarray
    ema10: np.ndarray
    ema13: np.ndarray
    sma20: np.ndarray
    sma50: np.ndarray
    sma200: np.ndarray

    # Oscillators
    rsi: np.ndarray
    stoch_rsi: np.ndarray
    macd_line: np.ndarray
    macd_signal: np.ndarray

    # Volume-weighted log momentum
    xt: np.ndarray
    ema3_xt: np.ndarray
    ema9_xt: np.ndarray
    ema21_xt: np.ndarray

    avg_volume: float

    @classmethod
    def series_names(cls) -> list:
        return [f.name for f in fields(cls) if f.name != "avg_volume"]

    def __len__(self) -> int:
        return len(self.atr)

    @property
    def macd_histogram(self) -> np.ndarray:
        return self.macd_line - self.macd_signal

    def value(self, name: str, index: int = -1) -> Optional[float]:
        """Single value by series name; None when undefined or out of range."""
        series = getattr(self, name)
        if index < -len(series) or index >= len(series):
            return None
        v = float(series[index])
        return v if is_defined(v) else None

    def to_frame(self, dates: Optional[pd.Series] = None) -> pd.DataFrame:
        """All series as columns of one DataFrame (optionally date-indexed)."""
        data = {name: getattr(self, name) for name in self.series_names()}
        frame = pd.DataFrame(data)
        if dates is not None:
            frame.index = pd.DatetimeIndex(dates)
        return frame


def fingerprint(bars: pd.DataFrame) -> str:
    """Content hash of a bar frame (dates and OHLCV values)."""
    hashed = pd.util.hash_pandas_object(bars[BAR_COLUMNS], index=False)
    return hashlib.sha256(hashed.to_numpy().tobytes()).hexdigest()


class IndicatorCache:
    """Caller-owned memo of IndicatorSeries keyed by bar content."""

    def __init__(self):
        self._store: Dict[str, IndicatorSeries] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def get(self, key: str) -> Optional[IndicatorSeries]:
        series = self._store.get(key)
        if series is None:
            self.misses += 1
        else:
            self.hits += 1
        return series

    def put(self, key: str, series: IndicatorSeries) -> None:
        self._store[key] = series

    def clear(self) -> None:
        self._store.clear()
        self.hits = 0
        self.misses = 0


class IndicatorEngine:
    """
    Compute the full indicator set for a bar DataFrame.

    Never raises on short history; under-warmed series come back as NaN.
    """

    def __init__(self, cache: Optional[IndicatorCache] = None):
        self.cache = cache

    def compute(self, bars: pd.DataFrame) -> IndicatorSeries:
        if self.cache is None:
            return self._compute(bars)

        key = fingerprint(bars)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        series = self._compute(bars)
        self.cache.put(key, series)
        return series

    def _compute(self, bars: pd.DataFrame) -> IndicatorSeries:
        close = bars["close"].to_numpy(dtype=float)
        volume = bars["volume"].to_numpy(dtype=float)

        atr14 = ta.atr(bars, 14)
        trend = ta.adx(bars, 14)
        rsi14 = ta.rsi(close, 14)
        macd = ta.macd(close, 12, 26, 9)
        rvol = ta.relative_volume(volume)
        xt = ta.vwlm_factor(close, rvol)

        avg_volume = float(np.mean(volume[-AVG_VOLUME_WINDOW:])) if len(volume) else 0.0

        return IndicatorSeries(
            atr=_frozen(atr14),
            atr7=_frozen(ta.atr(bars, 7)),
            atr3=_frozen(ta.atr(bars, 3)),
            adx=_frozen(trend["adx"]),
            plus_di=_frozen(trend["plus_di"]),
            minus_di=_frozen(trend["minus_di"]),
            volatility_pct=_frozen(ta.volatility_pct(atr14, close)),
            rvol=_frozen(rvol),
            vol_ema5=_frozen(ta.ema(volume, 5)),
            vol_ema20=_frozen(ta.ema(volume, 20)),
            obv=_frozen(ta.obv(bars)),
            avdm=_frozen(ta.avdm(bars)),
            ema9=_frozen(ta.ema(close, 9)),
            ema10=_frozen(ta.ema(close, 10)),
            ema13=_frozen(ta.ema(close, 13)),
            sma20=_frozen(ta.sma(close, 20)),
            sma50=_frozen(ta.sma(close, 50)),
            sma200=_frozen(ta.sma(close, 200)),
            rsi=_frozen(rsi14),
            stoch_rsi=_frozen(ta.stoch_rsi(rsi14, 14)),
            macd_line=_frozen(macd["macd_line"]),
            macd_signal=_frozen(macd["macd_signal"]),
            xt=_frozen(xt),
            ema3_xt=_frozen(ta.ema(xt, 3)),
            ema9_xt=_frozen(ta.ema(xt, 9)),
            ema21_xt=_frozen(ta.ema(xt, 21)),
            avg_volume=avg_volume,
        )


def calculate_indicators(
    bars: pd.DataFrame,
    cache: Optional[IndicatorCache] = None,
) -> IndicatorSeries:
    """Convenience wrapper around IndicatorEngine.compute."""
    return IndicatorEngine(cache=cache).compute(bars)
