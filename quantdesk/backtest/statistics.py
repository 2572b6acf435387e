"""
Trade statistics for a backtest result.

- Total P&L and average trade RoI
- Exit breakdown (stop / target / signal)
- Top winners and losers by P&L (break-even trades rank as losers)
- Statistical significance (t-test of trade RoI against zero)
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np
from scipy import stats as sp_stats

from quantdesk.backtest.models import Trade, TradeSummary
from quantdesk.core.enums import ExitCondition

logger = logging.getLogger(__name__)


class StatisticsCalculator:
    """Summarise closed trades."""

    TOP_N = 10
    SIGNIFICANCE_LEVEL = 0.05  # p-value threshold

    def calculate(self, trades: Sequence[Trade]) -> TradeSummary:
        if not trades:
            return TradeSummary()

        roi = [t.trade_roi for t in trades]
        t_stat, p_value = self._significance_test(roi)

        ranked = sorted(trades, key=lambda t: t.pnl, reverse=True)
        winners = tuple(t for t in ranked if t.pnl > 0)[: self.TOP_N]
        losers = tuple(t for t in reversed(ranked) if t.pnl <= 0)[: self.TOP_N]

        return TradeSummary(
            total_pnl=float(sum(t.pnl for t in trades)),
            avg_trade_roi=float(np.mean(roi)),
            stop_loss_exits=sum(1 for t in trades if t.exit_condition == ExitCondition.STOP_LOSS),
            take_profit_exits=sum(1 for t in trades if t.exit_condition == ExitCondition.TAKE_PROFIT),
            signal_exits=sum(1 for t in trades if t.exit_condition == ExitCondition.SIGNAL),
            top_winners=winners,
            top_losers=losers,
            t_statistic=t_stat,
            p_value=p_value,
            is_significant=p_value < self.SIGNIFICANCE_LEVEL and t_stat > 0,
        )

    @staticmethod
    def _significance_test(values: List[float]) -> Tuple[float, float]:
        """One-tailed t-test: is mean trade RoI significantly > 0?"""
        if len(values) < 2 or np.std(values, ddof=1) == 0:
            return 0.0, 1.0

        t_stat, p_two = sp_stats.ttest_1samp(values, 0)
        # Convert to one-tailed (H1: mean > 0)
        p_one = p_two / 2 if t_stat > 0 else 1 - p_two / 2
        return float(t_stat), float(p_one)
