"""
Daily bar loader

Reads one ``<TICKER>.csv`` per ticker from a directory:

    data/bars/
        AAPL.csv
        MSFT.csv
        ...

Each file needs ``date, open, high, low, close, volume`` columns (any
case). Bars come back as the canonical frame: ascending unique dates on a
RangeIndex.
"""

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pandas as pd

from quantdesk.core.exceptions import QuantDeskDataError
from quantdesk.core.models import BAR_COLUMNS

logger = logging.getLogger(__name__)

PRICE_COLUMNS = ["open", "high", "low", "close"]


def validate_bars(df: pd.DataFrame, ticker: str = "") -> pd.DataFrame:
    """
    Normalise and check a raw bar frame.

    Raises:
        QuantDeskDataError: missing columns, unparseable or unordered dates,
            duplicate dates, missing values or non-positive prices.
    """
    frame = df.rename(columns=lambda c: str(c).strip().lower())
    missing = [c for c in BAR_COLUMNS if c not in frame.columns]
    if missing:
        raise QuantDeskDataError(f"[{ticker}] missing columns: {', '.join(missing)}")

    frame = frame[BAR_COLUMNS].copy()
    try:
        frame["date"] = pd.to_datetime(frame["date"])
    except (ValueError, TypeError) as e:
        raise QuantDeskDataError(f"[{ticker}] unparseable dates: {e}") from e

    for col in PRICE_COLUMNS + ["volume"]:
        frame[col] = pd.to_numeric(frame[col], errors="coerce").astype(float)

    if frame[PRICE_COLUMNS + ["volume"]].isna().any().any():
        raise QuantDeskDataError(f"[{ticker}] missing or non-numeric OHLCV values")
    if (frame[PRICE_COLUMNS] <= 0).any().any():
        raise QuantDeskDataError(f"[{ticker}] non-positive prices")
    if frame["date"].duplicated().any():
        raise QuantDeskDataError(f"[{ticker}] duplicate dates")
    if not frame["date"].is_monotonic_increasing:
        raise QuantDeskDataError(f"[{ticker}] dates are not in ascending order")

    return frame.reset_index(drop=True)


class BarLoader:
    """Load validated daily bars from a directory of CSV files."""

    DATA_DIR = Path("data/bars")

    def __init__(self, data_dir: Optional[Path] = None):
        self.data_dir = Path(data_dir) if data_dir is not None else self.DATA_DIR

    def get_path(self, ticker: str) -> Path:
        clean = ticker.replace("/", "_").replace(":", "_")
        return self.data_dir / f"{clean}.csv"

    def available_tickers(self) -> List[str]:
        """Tickers with a CSV file, sorted."""
        if not self.data_dir.exists():
            return []
        return sorted(p.stem for p in self.data_dir.glob("*.csv"))

    def load(self, ticker: str) -> pd.DataFrame:
        """
        Load and validate one ticker.

        Raises:
            QuantDeskDataError: file missing or bars malformed.
        """
        path = self.get_path(ticker)
        if not path.exists():
            raise QuantDeskDataError(f"[{ticker}] no bar file at {path}")

        try:
            raw = pd.read_csv(path)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise QuantDeskDataError(f"[{ticker}] unreadable CSV {path.name}: {e}") from e

        bars = validate_bars(raw, ticker)
        logger.debug("Loaded %d bars for %s from %s", len(bars), ticker, path.name)
        return bars

    def load_many(self, tickers: Optional[Iterable[str]] = None) -> Dict[str, pd.DataFrame]:
        """
        Load several tickers, skipping (with a warning) any that fail.

        Defaults to every CSV in the directory.
        """
        result: Dict[str, pd.DataFrame] = {}
        for ticker in tickers if tickers is not None else self.available_tickers():
            try:
                result[ticker] = self.load(ticker)
            except QuantDeskDataError as e:
                logger.warning("Skipping %s: %s", ticker, e)
        return result
