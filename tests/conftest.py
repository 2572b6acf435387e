"""
QuantDesk Test Configuration

Synthetic bar and indicator builders shared by the test modules.
"""

from typing import Optional, Sequence

import numpy as np
import pandas as pd
import pytest

from quantdesk.core.enums import (
    DominantFactor,
    TrendSignal,
    VolumeEmaSignal,
    VolumeSignal,
    VolumeStatus,
)
from quantdesk.core.models import ProcessedStock, SignalFactors, SignalSnapshot
from quantdesk.indicators.engine import IndicatorSeries


def _make_bars(
    closes: Sequence[float],
    volumes: Optional[Sequence[float]] = None,
    start: str = "2020-01-01",
) -> pd.DataFrame:
    """OHLCV frame on business days; open = previous close, 1% wicks."""
    closes = np.asarray(closes, dtype=float)
    n = len(closes)
    opens = np.concatenate(([closes[0]], closes[:-1])) if n else closes
    highs = np.maximum(opens, closes) * 1.01
    lows = np.minimum(opens, closes) * 0.99
    if volumes is None:
        volumes = np.full(n, 1_000_000.0)
    return pd.DataFrame(
        {
            "date": pd.bdate_range(start=start, periods=n),
            "open": opens,
            "high": highs,
            "low": lows,
            "close": closes,
            "volume": np.asarray(volumes, dtype=float),
        }
    )


def _random_walk(n: int, seed: int = 7, start_price: float = 100.0, start: str = "2020-01-01") -> pd.DataFrame:
    rng = np.random.default_rng(seed)
    returns = rng.normal(0.0005, 0.015, n)
    closes = start_price * np.exp(np.cumsum(returns))
    volumes = rng.lognormal(mean=13.8, sigma=0.3, size=n)
    # Occasional volume bursts so the spike logic has something to find
    bursts = rng.random(n) < 0.03
    volumes[bursts] *= 5
    return _make_bars(closes, volumes, start=start)


def _make_indicators(n: int, **overrides) -> IndicatorSeries:
    """IndicatorSeries of length ``n``: NaN everywhere except ``overrides``.

    Scalars broadcast over the whole series; sequences are used as given.
    """
    data = {}
    for name in IndicatorSeries.series_names():
        value = overrides.get(name, np.nan)
        arr = np.full(n, value, dtype=float) if np.isscalar(value) else np.asarray(value, dtype=float)
        data[name] = arr
    return IndicatorSeries(avg_volume=overrides.get("avg_volume", 0.0), **data)


def _make_snapshot(
    ticker: str = "TEST",
    close: float = 100.0,
    suggested_shares: int = 0,
    volume_signal: VolumeSignal = VolumeSignal.NORMAL,
    trend_signal: TrendSignal = TrendSignal.WEAK,
    crossover=None,
    vwlm=None,
    vwlm_intraday=None,
) -> SignalSnapshot:
    return SignalSnapshot(
        ticker=ticker,
        date=pd.Timestamp("2024-01-02"),
        close=close,
        volume_signal=volume_signal,
        volume_spike_date=None,
        trend_signal=trend_signal,
        volume_ema_signal=VolumeEmaSignal.NEUTRAL,
        volume_status=VolumeStatus.AVERAGE,
        price_above_ema10=False,
        stop_loss=None,
        target=None,
        suggested_shares=suggested_shares,
        crossover=crossover,
        vwlm=vwlm,
        vwlm_intraday=vwlm_intraday,
        vwlm_strength=None,
        vwlm_intraday_strength=None,
        factors=SignalFactors(50, 50, 50, 50, DominantFactor.BALANCED),
    )


def _make_stock(
    ticker: str,
    closes: Sequence[float],
    snapshot: Optional[SignalSnapshot] = None,
    **indicator_values,
) -> ProcessedStock:
    bars = _make_bars(closes)
    indicators = _make_indicators(len(bars), **indicator_values)
    if snapshot is None:
        snapshot = _make_snapshot(ticker=ticker, close=float(closes[-1]))
    return ProcessedStock(ticker=ticker, bars=bars, indicators=indicators, signals=snapshot)


@pytest.fixture
def make_bars():
    return _make_bars


@pytest.fixture
def random_walk():
    return _random_walk


@pytest.fixture
def make_indicators():
    return _make_indicators


@pytest.fixture
def make_snapshot():
    return _make_snapshot


@pytest.fixture
def make_stock():
    return _make_stock


@pytest.fixture
def trending_bars():
    """300 bars of a steady uptrend."""
    closes = 50.0 * np.power(1.003, np.arange(300))
    return _make_bars(closes)
