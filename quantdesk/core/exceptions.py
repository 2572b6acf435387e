"""
QuantDesk custom exceptions.
"""


class QuantDeskError(Exception):
    """Base exception for QuantDesk."""

    pass


class QuantDeskConfigError(QuantDeskError):
    """Configuration error."""

    pass


class QuantDeskDataError(QuantDeskError):
    """Malformed bar input (missing columns, unordered or duplicate dates)."""

    pass
