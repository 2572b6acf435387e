"""Tests for the scan pipeline and the CLI entry point."""

from quantdesk.config.settings import Settings
from quantdesk.core.enums import BacktestPeriod, Direction, Strategy
from quantdesk.indicators.engine import IndicatorCache
from quantdesk.orchestrator import ScanPipeline
from quantdesk.scripts import run_scan


def _universe(random_walk):
    return {
        "GOOD": random_walk(300, seed=1),
        "CHEAP": random_walk(300, seed=2, start_price=10.0),
        "SHORT": random_walk(100, seed=3),
    }


class TestScanPipeline:
    """Test ScanPipeline.run."""

    def test_filters_universe(self, random_walk):
        report = ScanPipeline(cache=IndicatorCache()).run(_universe(random_walk), run_backtest=False)
        assert report.tickers == ["GOOD"]
        assert report.skipped == ("CHEAP", "SHORT")
        assert report.backtests == ()
        assert report.get("GOOD") is not None
        assert report.get("CHEAP") is None

    def test_min_price_from_settings(self, random_walk):
        pipeline = ScanPipeline(settings=Settings(min_price=1.0))
        report = pipeline.run(_universe(random_walk), run_backtest=False)
        assert report.tickers == ["GOOD", "CHEAP"]

    def test_full_run(self, random_walk):
        histories = _universe(random_walk)
        as_of = histories["GOOD"]["date"].iloc[-1]
        cache = IndicatorCache()
        report = ScanPipeline(cache=cache).run(histories, as_of=as_of)

        # The backtest reuses the scan's indicators
        assert cache.misses == 1
        assert cache.hits == 0

        assert [r.strategy for r in report.backtests] == Strategy.backtested()
        assert all(r.period == BacktestPeriod.Y1 for r in report.backtests)

        stock = report.get("GOOD")
        assert stock.signals.date == as_of
        assert report.regime.type is not None
        assert report.risk.total_capital == 100_000.0
        for active in report.active_signals:
            assert active.signals.direction != Direction.NEUTRAL

    def test_empty_universe(self):
        report = ScanPipeline().run({})
        assert report.stocks == ()
        assert report.regime.description == "INSUFFICIENT DATA"
        assert report.risk.total_exposure == 0.0


class TestRunScanCLI:
    """Test the quantdesk-scan command."""

    def test_prints_report(self, tmp_path, random_walk, capsys):
        walk = random_walk(300)
        walk.to_csv(tmp_path / "WALK.csv", index=False)
        as_of = walk["date"].iloc[-1].strftime("%Y-%m-%d")

        code = run_scan.run(["--data-dir", str(tmp_path), "--as-of", as_of, "--workers", "2"])

        out = capsys.readouterr().out
        assert code == 0
        assert "QUANTDESK SCAN" in out
        assert "MARKET REGIME" in out
        assert "RISK DESK" in out
        assert "PORTFOLIO BACKTEST" in out

    def test_no_backtest_flag(self, tmp_path, random_walk, capsys):
        random_walk(300).to_csv(tmp_path / "WALK.csv", index=False)
        assert run_scan.run(["--data-dir", str(tmp_path), "--no-backtest"]) == 0
        assert "No results" in capsys.readouterr().out

    def test_empty_directory(self, tmp_path, capsys):
        assert run_scan.run(["--data-dir", str(tmp_path)]) == 1
        assert "No usable bar files" in capsys.readouterr().out
