"""
QuantDesk Position Sizer

Fixed-fractional sizing:
- shares = floor(risk capital / (entry - stop))
- risk capital = equity * risk_pct / 100
- position value capped at max_position_pct of equity

Also hosts the flat snapshot suggestion (fixed risk capital, no cap).
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

from quantdesk.core.exceptions import QuantDeskConfigError

logger = logging.getLogger(__name__)

# Default config (overridable via settings or constructor)
RISK_PER_TRADE_PCT = 2.0
MAX_POSITION_PCT = 25.0
SUGGESTED_RISK_CAPITAL = 2_000.0


@dataclass(frozen=True)
class PositionSize:
    """Result of one sizing decision."""

    shares: int
    uncapped_shares: int
    risk_per_share: float
    risk_capital: float
    position_value: float
    capped: bool

    @property
    def can_trade(self) -> bool:
        return self.shares > 0


def suggested_shares(risk_capital: float, entry_price: float, stop_loss: Optional[float]) -> int:
    """floor(risk_capital / (entry - stop)); 0 when the stop is missing or not below entry."""
    if stop_loss is None:
        return 0
    risk_per_share = entry_price - stop_loss
    if not risk_per_share > 0:
        return 0
    return int(math.floor(risk_capital / risk_per_share))


def _check_pct(name: str, value: float) -> float:
    if not 0 < value <= 100:
        raise QuantDeskConfigError(f"{name} must be in (0, 100], got {value}")
    return value


class FixedFractionalSizer:
    """
    Size long positions by risking a fixed share of current equity.

    The same sizer serves every strategy; each trade passes its own
    entry/stop pair.
    """

    def __init__(
        self,
        settings: Any = None,
        risk_pct: Optional[float] = None,
        max_position_pct: Optional[float] = None,
    ):
        """
        Initialize position sizer.

        Args:
            settings: Optional settings object (e.g. quantdesk.config.settings).
                     If provided, uses settings.risk_per_trade_pct and max_position_pct
                     for whichever of the two is not passed explicitly.
            risk_pct: Risk % of equity per trade; wins over settings (default 2.0).
            max_position_pct: Single-position cap %; wins over settings (default 25.0).

        Raises:
            QuantDeskConfigError: If a percentage is outside (0, 100].
        """
        if risk_pct is None:
            risk_pct = getattr(settings, "risk_per_trade_pct", RISK_PER_TRADE_PCT)
        if max_position_pct is None:
            max_position_pct = getattr(settings, "max_position_pct", MAX_POSITION_PCT)

        self.risk_pct = _check_pct("risk_pct", risk_pct)
        self.max_position_pct = _check_pct("max_position_pct", max_position_pct)

    def size(self, entry_price: float, stop_loss: float, equity: float) -> PositionSize:
        """
        Shares to buy at ``entry_price`` with a stop at ``stop_loss``.

        Returns a zero-share PositionSize when the stop is not below the
        entry or the risk budget does not cover a single share.
        """
        risk_per_share = entry_price - stop_loss
        risk_capital = equity * self.risk_pct / 100
        max_position = equity * self.max_position_pct / 100

        if risk_per_share <= 0:
            return PositionSize(0, 0, risk_per_share, risk_capital, 0.0, False)

        uncapped = int(math.floor(risk_capital / risk_per_share))
        shares = uncapped
        capped = False
        if shares > 0 and shares * entry_price > max_position:
            shares = int(math.floor(max_position / entry_price))
            capped = True

        return PositionSize(
            shares=shares,
            uncapped_shares=uncapped,
            risk_per_share=risk_per_share,
            risk_capital=risk_capital,
            position_value=shares * entry_price,
            capped=capped,
        )
