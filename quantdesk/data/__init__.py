from .loader import BarLoader, validate_bars

__all__ = ["BarLoader", "validate_bars"]
