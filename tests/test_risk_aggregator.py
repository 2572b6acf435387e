"""Tests for the portfolio risk aggregator."""

import logging

import numpy as np
import pandas as pd
import pytest

from quantdesk.core.enums import RiskStatus, Side, Strategy
from quantdesk.core.models import Trigger
from quantdesk.risk.portfolio_risk import RECOMMENDATIONS, RiskAggregator


def _buy(strategy, ticker):
    return Trigger(
        strategy=strategy,
        side=Side.BUY,
        ticker=ticker,
        index=0,
        date=pd.Timestamp("2024-01-02"),
        entry_price=100.0,
    )


def _long(make_stock, make_snapshot, ticker, price, shares, atr, strategies=1):
    """Stock long in 1 or 2 strategies with a flat price history."""
    snapshot = make_snapshot(
        ticker=ticker,
        close=price,
        suggested_shares=shares,
        crossover=_buy(Strategy.SHORT_TERM_CROSSOVER, ticker),
        vwlm=_buy(Strategy.VWLM, ticker) if strategies > 1 else None,
    )
    return make_stock(ticker, np.full(30, price), snapshot=snapshot, atr=atr)


class TestRiskAggregator:
    """Test RiskAggregator.analyze."""

    def setup_method(self):
        self.aggregator = RiskAggregator(total_capital=100_000.0)

    def test_balanced_book(self, make_stock, make_snapshot):
        stocks = [
            _long(make_stock, make_snapshot, "AAA", 100.0, 300, atr=1.0),  # 1% vol
            _long(make_stock, make_snapshot, "BBB", 50.0, 400, atr=1.0),  # 2% vol
        ]
        risk = self.aggregator.analyze(stocks)

        assert risk.total_exposure == pytest.approx(50_000.0)
        assert risk.exposure_ratio == pytest.approx(0.5)
        assert risk.max_single_position_ticker == "AAA"
        assert risk.max_single_position_risk == pytest.approx(60.0)
        assert risk.strategy_overlap == 0.0
        assert risk.concentration.defensive == pytest.approx(60.0)
        assert risk.concentration.cyclical == pytest.approx(40.0)
        assert risk.concentration.speculative == 0.0
        # Weighted vol 1.4% x 1.5
        assert risk.var_daily == pytest.approx(1_050.0)
        assert risk.status == RiskStatus.SAFE
        assert risk.recommendation == RECOMMENDATIONS[RiskStatus.SAFE]
        assert risk.positions == pytest.approx({"AAA": 30_000.0, "BBB": 20_000.0})

    def test_multi_strategy_overlap_is_critical(self, make_stock, make_snapshot, caplog):
        stocks = [
            _long(make_stock, make_snapshot, "AAA", 100.0, 300, atr=1.0, strategies=2),
            _long(make_stock, make_snapshot, "BBB", 50.0, 400, atr=1.0, strategies=2),
        ]
        with caplog.at_level(logging.WARNING, logger="quantdesk.risk.portfolio_risk"):
            risk = self.aggregator.analyze(stocks)

        assert risk.total_exposure == pytest.approx(100_000.0)
        assert risk.strategy_overlap == pytest.approx(100.0)
        assert risk.status == RiskStatus.CRITICAL
        assert "CRITICAL" in caplog.text

    def test_high_exposure_is_caution(self, make_stock, make_snapshot):
        stocks = [_long(make_stock, make_snapshot, "AAA", 100.0, 900, atr=1.0)]
        risk = self.aggregator.analyze(stocks)
        assert risk.exposure_ratio == pytest.approx(0.9)
        assert risk.status == RiskStatus.CAUTION

    def test_speculative_book_is_caution(self, make_stock, make_snapshot):
        stocks = [_long(make_stock, make_snapshot, "AAA", 100.0, 300, atr=5.0)]
        risk = self.aggregator.analyze(stocks)
        assert risk.concentration.speculative == pytest.approx(100.0)
        assert risk.status == RiskStatus.CAUTION

    def test_undefined_atr(self, make_stock, make_snapshot):
        stocks = [_long(make_stock, make_snapshot, "AAA", 100.0, 100, atr=np.nan)]
        risk = self.aggregator.analyze(stocks)
        assert risk.concentration.speculative == pytest.approx(100.0)
        assert risk.var_daily == 0.0

    def test_no_long_signals_ignored(self, make_stock, make_snapshot):
        quiet = make_stock("QQQ", np.full(30, 100.0), snapshot=make_snapshot("QQQ", suggested_shares=500), atr=1.0)
        risk = self.aggregator.analyze([quiet])
        assert risk.total_exposure == 0.0
        assert risk.max_single_position_ticker == "N/A"

    def test_intraday_only_adds_no_exposure(self, make_stock, make_snapshot):
        snapshot = make_snapshot(
            "AAA",
            suggested_shares=300,
            vwlm_intraday=_buy(Strategy.VWLM_INTRADAY, "AAA"),
        )
        stock = make_stock("AAA", np.full(30, 100.0), snapshot=snapshot, atr=1.0)
        risk = self.aggregator.analyze([stock])
        assert risk.total_exposure == 0.0
        assert risk.max_single_position_ticker == "N/A"

    def test_intraday_does_not_count_toward_overlap(self, make_stock, make_snapshot):
        snapshot = make_snapshot(
            "AAA",
            close=100.0,
            suggested_shares=300,
            crossover=_buy(Strategy.SHORT_TERM_CROSSOVER, "AAA"),
            vwlm_intraday=_buy(Strategy.VWLM_INTRADAY, "AAA"),
        )
        stock = make_stock("AAA", np.full(30, 100.0), snapshot=snapshot, atr=1.0)
        risk = self.aggregator.analyze([stock])

        assert risk.total_exposure == pytest.approx(30_000.0)
        assert risk.strategy_overlap == 0.0
        assert risk.status == RiskStatus.SAFE

    def test_empty(self):
        risk = self.aggregator.analyze([])
        assert risk.total_exposure == 0.0
        assert risk.exposure_ratio == 0.0
        assert risk.var_daily == 0.0
        assert risk.strategy_overlap == 0.0
        assert risk.status == RiskStatus.SAFE
        assert risk.max_single_position_ticker == "N/A"
