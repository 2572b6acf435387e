"""Tests for the live signal snapshot."""

import numpy as np
import pytest

from quantdesk.core.enums import (
    Direction,
    Side,
    Strategy,
    TrendSignal,
    VolumeEmaSignal,
    VolumeSignal,
    VolumeStatus,
)
from quantdesk.core.exceptions import QuantDeskDataError
from quantdesk.indicators.engine import calculate_indicators
from quantdesk.signals.generator import SignalGenerator


N = 60


def _spike_rvol(at=N - 3, value=4.0):
    rvol = np.full(N, 1.0)
    rvol[at] = value
    return rvol


class TestVolumeBreakoutSnapshot:
    """Test the volume / trend part of the snapshot."""

    def setup_method(self):
        self.generator = SignalGenerator()

    def test_spike_in_uptrend(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        indicators = make_indicators(
            N, rvol=_spike_rvol(), adx=30.0, plus_di=25.0, minus_di=10.0, atr7=2.0,
        )
        snap = self.generator.generate("TEST", bars, indicators)

        assert snap.volume_signal == VolumeSignal.SPIKE
        assert snap.volume_spike_date == bars["date"].iloc[N - 3]
        assert snap.trend_signal == TrendSignal.UPTREND
        assert snap.stop_loss == pytest.approx(94.0)
        assert snap.target == pytest.approx(112.0)
        assert snap.suggested_shares == 333  # floor(2000 / 6)
        assert snap.volume_breakout_signal
        assert Strategy.VOLATILITY_BREAKOUT in snap.long_strategies
        assert snap.direction == Direction.LONG

    def test_spike_outside_window(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        indicators = make_indicators(N, rvol=_spike_rvol(at=N - 7))
        snap = self.generator.generate("TEST", bars, indicators)
        assert snap.volume_signal == VolumeSignal.NORMAL
        assert snap.volume_spike_date is None

    def test_no_atr7_no_levels(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        snap = self.generator.generate("TEST", bars, make_indicators(N))
        assert snap.stop_loss is None
        assert snap.target is None
        assert snap.suggested_shares == 0

    def test_weak_trend(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        weak = make_indicators(N, adx=25.0, plus_di=25.0, minus_di=10.0)
        assert self.generator.generate("TEST", bars, weak).trend_signal == TrendSignal.WEAK

        undefined = make_indicators(N, plus_di=25.0, minus_di=10.0)
        assert self.generator.generate("TEST", bars, undefined).trend_signal == TrendSignal.WEAK

    def test_downtrend(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        indicators = make_indicators(N, adx=40.0, plus_di=10.0, minus_di=30.0)
        snap = self.generator.generate("TEST", bars, indicators)
        assert snap.trend_signal == TrendSignal.DOWNTREND
        assert not snap.volume_breakout_signal

    @pytest.mark.parametrize(
        "rvol, expected",
        [
            (2.0, VolumeStatus.HIGH),
            (1.5, VolumeStatus.AVERAGE),
            (0.5, VolumeStatus.AVERAGE),
            (0.4, VolumeStatus.LOW),
            (np.nan, VolumeStatus.NA),
        ],
    )
    def test_volume_status(self, make_bars, make_indicators, rvol, expected):
        bars = make_bars(np.full(N, 100.0))
        snap = self.generator.generate("TEST", bars, make_indicators(N, rvol=rvol))
        assert snap.volume_status == expected

    def test_volume_ema_and_ema10(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        indicators = make_indicators(N, vol_ema5=2.0, vol_ema20=1.0, ema10=99.0)
        snap = self.generator.generate("TEST", bars, indicators)
        assert snap.volume_ema_signal == VolumeEmaSignal.BULLISH
        assert snap.price_above_ema10

        snap = self.generator.generate("TEST", bars, make_indicators(N))
        assert snap.volume_ema_signal == VolumeEmaSignal.NEUTRAL
        assert not snap.price_above_ema10


class TestCrossoverSnapshot:
    """Test the crossover / VWLM part of the snapshot."""

    def setup_method(self):
        self.generator = SignalGenerator()

    def test_golden_cross_is_long(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        sma20 = np.full(N, 9.0)
        sma20[N - 2:] = 11.0
        snap = self.generator.generate("TEST", bars, make_indicators(N, sma20=sma20, sma50=10.0))
        assert snap.cross_buy_signal
        assert snap.crossover.side == Side.BUY
        assert snap.long_strategies == frozenset({Strategy.SHORT_TERM_CROSSOVER})
        assert snap.direction == Direction.LONG

    def test_vwlm_sell_is_short(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        fast = np.full(N, 0.05)
        fast[N - 1:] = -0.05
        indicators = make_indicators(
            N, ema9_xt=fast, ema21_xt=0.0, xt=-0.2, adx=30.0, rsi=40.0, atr7=2.0,
        )
        snap = self.generator.generate("TEST", bars, indicators)
        assert snap.vwlm_sell_signal
        assert snap.vwlm_strength == pytest.approx(-0.2)
        assert snap.vwlm_intraday_strength == pytest.approx(-0.2)
        assert snap.long_strategies == frozenset()
        assert snap.direction == Direction.SHORT

    def test_quiet_ticker_is_neutral(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        snap = self.generator.generate("TEST", bars, make_indicators(N))
        assert snap.direction == Direction.NEUTRAL
        assert snap.vwlm_strength is None


class TestGenerator:
    """Test generator plumbing."""

    def test_empty_bars_raise(self, make_bars, make_indicators):
        with pytest.raises(QuantDeskDataError):
            SignalGenerator().generate("TEST", make_bars([]), make_indicators(0))

    def test_settings_override(self):
        class Cfg:
            signal_lookback_bars = 3
            suggested_risk_capital = 1_000.0

        generator = SignalGenerator(settings=Cfg())
        assert generator.lookback == 3
        assert generator.risk_capital == 1_000.0

    def test_explicit_arguments_win_over_settings(self):
        class Cfg:
            signal_lookback_bars = 3
            suggested_risk_capital = 1_000.0

        generator = SignalGenerator(settings=Cfg(), lookback=7, risk_capital=2_500.0)
        assert generator.lookback == 7
        assert generator.risk_capital == 2_500.0

        partial = SignalGenerator(settings=Cfg(), lookback=7)
        assert partial.lookback == 7
        assert partial.risk_capital == 1_000.0

    def test_smaller_lookback_misses_older_spike(self, make_bars, make_indicators):
        bars = make_bars(np.full(N, 100.0))
        indicators = make_indicators(N, rvol=_spike_rvol(at=N - 5))
        assert SignalGenerator().generate("TEST", bars, indicators).volume_signal == VolumeSignal.SPIKE
        assert SignalGenerator(lookback=3).generate("TEST", bars, indicators).volume_signal == VolumeSignal.NORMAL

    def test_real_history(self, random_walk):
        bars = random_walk(300)
        snap = SignalGenerator().generate("WALK", bars, calculate_indicators(bars))
        assert snap.date == bars["date"].iloc[-1]
        assert snap.close == pytest.approx(bars["close"].iloc[-1])
        assert snap.stop_loss < snap.close < snap.target
        assert snap.suggested_shares > 0
        for score in (snap.factors.momentum, snap.factors.volume, snap.factors.trend, snap.factors.volatility):
            assert 0 <= score <= 100
