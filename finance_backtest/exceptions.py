"""
Exception types raised by the backtesting library.

Insufficient data, rejected orders and degenerate numeric inputs are handled
locally with neutral results and are never raised. The exceptions below cover
the cases a caller has to fix.
"""


class ConfigurationError(ValueError):
    """Raised for invalid configuration such as an unknown sizing method or
    malformed parameter ranges.

    Inherits from ValueError so callers catching ValueError keep working.
    """


class BacktestCancelled(RuntimeError):
    """Raised when a cancellation token fires during a run or a sweep."""
