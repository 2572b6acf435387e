"""
Run a full QuantDesk scan over a directory of daily bar CSVs.

Prints:
- Market regime
- Risk desk verdict and concentration
- Active live signals with factor breakdown
- Backtest table (strategy x period)

Usage::

    python -m quantdesk.scripts.run_scan --data-dir data/bars
    python -m quantdesk.scripts.run_scan --tickers AAPL MSFT --no-backtest
    python -m quantdesk.scripts.run_scan --as-of 2024-12-31 --workers 4
"""

import argparse
import logging
import sys
from typing import List, Optional

import pandas as pd

from quantdesk.config.settings import Settings, settings
from quantdesk.core.enums import RegimeType, RiskStatus
from quantdesk.data.loader import BarLoader
from quantdesk.indicators.engine import IndicatorCache
from quantdesk.orchestrator import ScanPipeline, ScanReport

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Terminal colours
# ---------------------------------------------------------------------------

class Colors:
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    GRAY = "\033[90m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    END = "\033[0m"


if not (hasattr(sys.stdout, "isatty") and sys.stdout.isatty()):
    Colors.GREEN = Colors.YELLOW = Colors.RED = ""
    Colors.GRAY = Colors.CYAN = Colors.BOLD = Colors.END = ""


STATUS_COLORS = {
    RiskStatus.SAFE: Colors.GREEN,
    RiskStatus.CAUTION: Colors.YELLOW,
    RiskStatus.CRITICAL: Colors.RED,
}

REGIME_COLORS = {
    RegimeType.TRENDING: Colors.GREEN,
    RegimeType.RANGE_BOUND: Colors.CYAN,
    RegimeType.HIGH_VOLATILITY: Colors.YELLOW,
    RegimeType.RISK_OFF: Colors.RED,
    RegimeType.NEUTRAL: Colors.GRAY,
}


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="QuantDesk - signal scan, risk desk and portfolio backtest",
    )
    parser.add_argument("--data-dir", type=str, default="data/bars",
                        help="Directory with one <TICKER>.csv per ticker")
    parser.add_argument("--tickers", nargs="*", default=None,
                        help="Subset of tickers (default: every CSV in --data-dir)")
    parser.add_argument("--as-of", type=str, default=None,
                        help="Backtest reference date (default: today)")
    parser.add_argument("--no-backtest", action="store_true", default=False)
    parser.add_argument("--workers", type=int, default=None,
                        help="Threads for backtest runs")
    parser.add_argument("--log-level", type=str, default=settings.log_level)
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Report sections
# ---------------------------------------------------------------------------

def _print_regime(report: ScanReport) -> None:
    r = report.regime
    color = REGIME_COLORS.get(r.type, "")
    print("\n" + "=" * 90)
    print(f"  {Colors.BOLD}MARKET REGIME{Colors.END}: {color}{r.type.value}{Colors.END}")
    print("=" * 90)
    print(f"  Avg ADX:        {r.avg_adx:6.1f}")
    print(f"  Avg volatility: {r.avg_volatility:6.2f}%")
    print(f"  Breadth >SMA50: {r.breadth_sma50:6.1f}%")
    print(f"  Correlation:    {r.correlation:6.2f}")
    print(f"  {r.description}")


def _print_risk(report: ScanReport) -> None:
    risk = report.risk
    color = STATUS_COLORS.get(risk.status, "")
    print("\n" + "=" * 90)
    print(f"  {Colors.BOLD}RISK DESK{Colors.END}: {color}{risk.status.value}{Colors.END}")
    print("=" * 90)
    print(f"  Exposure:       ${risk.total_exposure:,.0f} of ${risk.total_capital:,.0f} "
          f"({risk.exposure_ratio:.2f}x)")
    print(f"  VaR (daily):    ${risk.var_daily:,.0f}")
    c = risk.concentration
    print(f"  Concentration:  defensive {c.defensive:.0f}% / cyclical {c.cyclical:.0f}% "
          f"/ speculative {c.speculative:.0f}%")
    print(f"  Overlap:        {risk.strategy_overlap:.0f}%")
    print(f"  Largest:        {risk.max_single_position_ticker} ({risk.max_single_position_risk:.0f}%)")
    print(f"  {risk.recommendation}")


def _print_signals(report: ScanReport) -> None:
    active = report.active_signals
    print("\n" + "=" * 90)
    print(f"  {Colors.BOLD}ACTIVE SIGNALS{Colors.END} ({len(active)} of {len(report.stocks)})")
    print("=" * 90)
    if not active:
        print("  None")
        return

    header = (
        f"  {'Ticker':<8} {'Dir':<8} {'Close':>9} {'Strategies':<40} "
        f"{'Mom':>4} {'Vol':>4} {'Trd':>4} {'Vlt':>4}  Driver"
    )
    print(header)
    print("-" * 90)
    for stock in active:
        s = stock.signals
        f = s.factors
        strategies = ", ".join(sorted(x.value for x in s.long_strategies)) or "-"
        print(
            f"  {stock.ticker:<8} {s.direction.value:<8} {s.close:>9.2f} {strategies:<40} "
            f"{f.momentum:>4} {f.volume:>4} {f.trend:>4} {f.volatility:>4}  {f.dominant_factor.value}"
        )


def _print_backtests(report: ScanReport) -> None:
    print("\n" + "=" * 90)
    print(f"  {Colors.BOLD}PORTFOLIO BACKTEST{Colors.END}")
    print("=" * 90)
    if not report.backtests:
        print("  No results (insufficient history or backtest disabled)")
        return

    header = (
        f"  {'Strategy':<22} {'Period':>6} {'Trades':>7} {'Win %':>7} "
        f"{'Return %':>9} {'CAGR %':>8} {'Max DD %':>9} {'Final $':>12}"
    )
    print(header)
    print("-" * 90)
    for r in report.backtests:
        color = Colors.GREEN if r.total_return > 0 else Colors.RED if r.total_return < 0 else ""
        print(
            f"  {r.strategy.value:<22} {r.period.value:>6} {r.total_trades:>7} {r.win_rate:>7.1f} "
            f"{color}{r.total_return:>+9.2f}{Colors.END} {r.cagr:>+8.2f} {r.max_drawdown:>9.2f} "
            f"{r.final_capital:>12,.0f}"
        )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def run(argv: Optional[List[str]] = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s  %(name)-30s  %(levelname)-7s  %(message)s",
    )

    config = settings
    if args.workers is not None:
        config = Settings(backtest_workers=args.workers)

    loader = BarLoader(args.data_dir)
    histories = loader.load_many(args.tickers)
    if not histories:
        print(f"\nNo usable bar files in {args.data_dir}.\n")
        return 1

    as_of = pd.Timestamp(args.as_of) if args.as_of else None
    pipeline = ScanPipeline(settings=config, cache=IndicatorCache())
    report = pipeline.run(histories, as_of=as_of, run_backtest=not args.no_backtest)

    print(f"\n{'=' * 90}")
    print(f"  {Colors.BOLD}QUANTDESK SCAN{Colors.END}")
    print(f"{'=' * 90}")
    print(f"  Universe: {len(histories)} loaded, {len(report.stocks)} scanned, "
          f"{len(report.skipped)} filtered")

    _print_regime(report)
    _print_risk(report)
    _print_signals(report)
    _print_backtests(report)

    print(f"\n{'=' * 90}\n")
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
