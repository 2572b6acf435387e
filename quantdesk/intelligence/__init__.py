from .factor_attribution import FactorAttributionEngine, normalize
from .regime import REGIME_DESCRIPTIONS, RegimeDetector

__all__ = [
    "FactorAttributionEngine",
    "normalize",
    "RegimeDetector",
    "REGIME_DESCRIPTIONS",
]
