"""
Technical indicator primitives.

Every function takes plain arrays (or a bar DataFrame) and returns a float
numpy array of the same length as its input. Positions that cannot be
computed yet hold NaN; nothing here raises on short history.

Smoothing conventions:
- EMA seeds on the first fully-defined window (simple mean) and carries
  its last value through NaN inputs afterwards.
- Wilder RMA uses alpha = 1/period and seeds on the first ``period`` values.
- ATR and ADX smooth true range with the EMA above, not with RMA.
"""

import logging
from typing import Dict, Sequence, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]

RVOL_WINDOW = 20


def _as_array(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=float)


def _nan(n: int) -> np.ndarray:
    return np.full(n, np.nan)


# ---------------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------------


def ema(values: ArrayLike, period: int) -> np.ndarray:
    """Exponential moving average with an SMA seed.

    The seed is the mean of the first contiguous window of ``period``
    defined values and lands on the last index of that window.
    """
    data = _as_array(values)
    n = len(data)
    out = _nan(n)
    if period <= 0 or n < period:
        return out

    valid = np.isfinite(data)
    start = -1
    run = 0
    for i in range(n):
        run = run + 1 if valid[i] else 0
        if run >= period:
            start = i - period + 1
            break
    if start < 0:
        return out

    k = 2.0 / (period + 1)
    last = float(np.mean(data[start:start + period]))
    out[start + period - 1] = last

    for i in range(start + period, n):
        value = data[i]
        if valid[i]:
            last = value * k + last * (1 - k)
        out[i] = last

    return out


def sma(values: ArrayLike, period: int) -> np.ndarray:
    """Simple rolling mean; NaN before ``period - 1``."""
    data = _as_array(values)
    if period <= 0 or len(data) < period:
        return _nan(len(data))
    return pd.Series(data).rolling(window=period, min_periods=period).mean().to_numpy()


def rma(values: ArrayLike, period: int) -> np.ndarray:
    """Wilder's running moving average (alpha = 1/period)."""
    data = _as_array(values)
    n = len(data)
    out = _nan(n)
    if period <= 0 or n < period:
        return out

    alpha = 1.0 / period
    last = float(np.mean(data[:period]))
    out[period - 1] = last
    for i in range(period, n):
        last = data[i] * alpha + last * (1 - alpha)
        out[i] = last
    return out


# ---------------------------------------------------------------------------
# Volatility / trend
# ---------------------------------------------------------------------------


def true_range(bars: pd.DataFrame) -> np.ndarray:
    """True range for bars 1..N-1 (N-1 values; bar 0 has no previous close)."""
    high = bars["high"].to_numpy(dtype=float)
    low = bars["low"].to_numpy(dtype=float)
    close = bars["close"].to_numpy(dtype=float)
    if len(close) < 2:
        return np.array([], dtype=float)

    prev_close = close[:-1]
    tr1 = high[1:] - low[1:]
    tr2 = np.abs(high[1:] - prev_close)
    tr3 = np.abs(low[1:] - prev_close)
    return np.maximum(np.maximum(tr1, tr2), tr3)


def atr(bars: pd.DataFrame, period: int = 14) -> np.ndarray:
    """Average True Range, EMA-smoothed, left-padded to align with bar 0."""
    n = len(bars)
    if n < period or n < 2:
        return _nan(n)
    return np.concatenate(([np.nan], ema(true_range(bars), period)))


def adx(bars: pd.DataFrame, period: int = 14) -> Dict[str, np.ndarray]:
    """ADX with +DI / -DI.

    Returns a dict with keys ``adx``, ``plus_di``, ``minus_di``. Needs at
    least ``2 * period`` bars; otherwise every series is NaN.
    """
    n = len(bars)
    if n < period * 2:
        return {"adx": _nan(n), "plus_di": _nan(n), "minus_di": _nan(n)}

    high = bars["high"].to_numpy(dtype=float)
    low = bars["low"].to_numpy(dtype=float)

    up_move = high[1:] - high[:-1]
    down_move = low[:-1] - low[1:]
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    smoothed_tr = ema(true_range(bars), period)
    smoothed_plus = ema(plus_dm, period)
    smoothed_minus = ema(minus_dm, period)

    # Smoothed TR is defined from index period-1 of the N-1 deltas
    tr_tail = smoothed_tr[period - 1:]
    denom = np.where(tr_tail == 0, 1.0, tr_tail)
    plus_di = smoothed_plus[period - 1:] / denom * 100
    minus_di = smoothed_minus[period - 1:] / denom * 100

    di_sum = plus_di + minus_di
    with np.errstate(divide="ignore", invalid="ignore"):
        dx = np.where(di_sum == 0, 0.0, np.abs(plus_di - minus_di) / di_sum * 100)

    adx_line = ema(dx, period)
    padding = _nan(n - len(adx_line))

    return {
        "adx": np.concatenate((padding, adx_line)),
        "plus_di": np.concatenate((padding, plus_di)),
        "minus_di": np.concatenate((padding, minus_di)),
    }


# ---------------------------------------------------------------------------
# Oscillators
# ---------------------------------------------------------------------------


def rsi(closes: ArrayLike, period: int = 14) -> np.ndarray:
    """Wilder RSI. An average loss of zero maps to exactly 100."""
    data = _as_array(closes)
    n = len(data)
    if n < period + 1:
        return _nan(n)

    deltas = np.diff(data)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)
    avg_gain = rma(gains, period)
    avg_loss = rma(losses, period)

    with np.errstate(divide="ignore", invalid="ignore"):
        rs = avg_gain / avg_loss
        values = 100 - (100 / (1 + rs))
    values = np.where(avg_loss == 0, 100.0, values)

    return np.concatenate(([np.nan], values))


def stoch_rsi(rsi_values: ArrayLike, period: int = 14) -> np.ndarray:
    """Stochastic RSI (0-100); 0 when the window is flat."""
    data = _as_array(rsi_values)
    n = len(data)
    if n < period:
        return _nan(n)

    series = pd.Series(data)
    lowest = series.rolling(window=period, min_periods=1).min().to_numpy()
    highest = series.rolling(window=period, min_periods=1).max().to_numpy()
    spread = highest - lowest

    with np.errstate(divide="ignore", invalid="ignore"):
        out = np.where(spread == 0, 0.0, 100 * (data - lowest) / spread)
    out[~np.isfinite(data)] = np.nan
    out[: period - 1] = np.nan
    return out


def macd(
    closes: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Dict[str, np.ndarray]:
    """MACD line and signal line.

    The signal EMA runs over the MACD line from its first defined index.
    """
    data = _as_array(closes)
    line = ema(data, fast_period) - ema(data, slow_period)
    signal = _nan(len(data))

    defined = np.flatnonzero(np.isfinite(line))
    if len(defined) > 0:
        first = int(defined[0])
        signal[first:] = ema(line[first:], signal_period)

    return {"macd_line": line, "macd_signal": signal}


# ---------------------------------------------------------------------------
# Volume
# ---------------------------------------------------------------------------


def obv(bars: pd.DataFrame) -> np.ndarray:
    """On-balance volume, starting at 0 on the first bar."""
    close = bars["close"].to_numpy(dtype=float)
    volume = bars["volume"].to_numpy(dtype=float)
    if len(close) == 0:
        return np.array([], dtype=float)

    direction = np.sign(np.diff(close))
    flow = np.concatenate(([0.0], direction * volume[1:]))
    return np.cumsum(flow)


def avdm(bars: pd.DataFrame) -> np.ndarray:
    """Signed volume per bar: + on up candles, - on down candles, 0 on dojis."""
    close = bars["close"].to_numpy(dtype=float)
    open_ = bars["open"].to_numpy(dtype=float)
    volume = bars["volume"].to_numpy(dtype=float)
    return np.where(close > open_, volume, np.where(close < open_, -volume, 0.0))


def relative_volume(volumes: ArrayLike, window: int = RVOL_WINDOW) -> np.ndarray:
    """Volume over the mean of the preceding ``window`` bars.

    NaN before ``window``; 0 where the trailing mean is 0.
    """
    data = _as_array(volumes)
    n = len(data)
    out = _nan(n)
    if n <= window:
        return out

    trailing = pd.Series(data).rolling(window=window, min_periods=window).mean().shift(1).to_numpy()
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = np.where(trailing > 0, data / trailing, 0.0)
    out[window:] = ratio[window:]
    return out


def volatility_pct(atr_values: ArrayLike, closes: ArrayLike) -> np.ndarray:
    """ATR as a percentage of close (0 where close is 0)."""
    atr_arr = _as_array(atr_values)
    close = _as_array(closes)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(close != 0, atr_arr / close * 100, 0.0)


def vwlm_factor(closes: ArrayLike, rvol: ArrayLike) -> np.ndarray:
    """Volume-weighted log momentum: log return scaled by relative volume.

    NaN at index 0 and after a non-positive close. Bars whose RVOL is not
    yet defined contribute a factor of 0.
    """
    close = _as_array(closes)
    rel = _as_array(rvol)
    n = len(close)
    out = _nan(n)
    if n < 2:
        return out

    prev = close[:-1]
    with np.errstate(divide="ignore", invalid="ignore"):
        log_returns = np.where(prev > 0, np.log(close[1:] / prev), np.nan)
    weights = np.where(np.isfinite(rel[1:]), rel[1:], 0.0)
    out[1:] = log_returns * weights
    return out
