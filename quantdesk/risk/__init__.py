from .portfolio_risk import RECOMMENDATIONS, RiskAggregator
from .position_sizer import FixedFractionalSizer, PositionSize, suggested_shares

__all__ = [
    "FixedFractionalSizer",
    "PositionSize",
    "RECOMMENDATIONS",
    "RiskAggregator",
    "suggested_shares",
]
