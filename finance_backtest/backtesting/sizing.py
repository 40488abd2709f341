"""
Position Sizing Module

Translates a buy signal into a whole number of shares.

Supported methods:
- fixed_dollar: floor(sizing_value / price)
- percent_capital: floor(capital * sizing_value / 100 / price)
- kelly_criterion: Kelly fraction clamped to [0, max_fraction] of capital
- volatility_adjusted: base fraction of capital scaled by target / realized volatility

An explicit quantity on the signal bypasses sizing entirely.

Example:
    >>> sizer = PositionSizer(config={})
    >>> signal = Signal('buy', 'AAPL', sizing_method='kelly_criterion',
    ...                 win_rate=0.6, avg_win=0.1, avg_loss=0.05)
    >>> sizer.size(signal, capital=100000, price=50)
    500
"""

import logging
import math
from typing import Dict, Optional

from finance_backtest.backtesting.models import Signal
from finance_backtest.config.load_config import get_backtest_config
from finance_backtest.exceptions import ConfigurationError

FIXED_DOLLAR = 'fixed_dollar'
PERCENT_CAPITAL = 'percent_capital'
KELLY_CRITERION = 'kelly_criterion'
VOLATILITY_ADJUSTED = 'volatility_adjusted'

SIZING_METHODS = (FIXED_DOLLAR, PERCENT_CAPITAL, KELLY_CRITERION, VOLATILITY_ADJUSTED)


class PositionSizer:
    """
    Position sizer supporting fixed-dollar, percent-of-capital, Kelly and
    volatility-adjusted policies.

    Defaults for every policy come from the 'backtesting.position_sizing'
    configuration section and can be overridden per signal.

    Attributes:
        default_method: Method used when a signal does not name one
        default_value: sizing_value used when a signal does not supply one
        kelly_defaults: win_rate / avg_win / avg_loss fallbacks
        max_kelly_fraction: Upper clamp for the Kelly fraction
        volatility_defaults: volatility / target_volatility fallbacks
        base_fraction: Capital fraction before volatility scaling
    """

    def __init__(self, config: Optional[Dict] = None):
        """
        Initialize position sizer.

        Args:
            config: Optional configuration dictionary
        """
        self.logger = logging.getLogger(__name__)

        sizing_config = get_backtest_config(config).get('position_sizing', {}) or {}

        self.default_method = sizing_config.get('default_method', FIXED_DOLLAR)
        self.default_value = sizing_config.get('default_value', 10000)

        kelly_config = sizing_config.get('kelly', {}) or {}
        self.kelly_defaults = {
            'win_rate': kelly_config.get('win_rate', 0.6),
            'avg_win': kelly_config.get('avg_win', 0.1),
            'avg_loss': kelly_config.get('avg_loss', 0.05)
        }
        self.max_kelly_fraction = kelly_config.get('max_fraction', 0.25)

        volatility_config = sizing_config.get('volatility', {}) or {}
        self.volatility_defaults = {
            'volatility': volatility_config.get('volatility', 0.2),
            'target_volatility': volatility_config.get('target_volatility', 0.1)
        }
        self.base_fraction = volatility_config.get('base_fraction', 0.1)

        if self.default_method not in SIZING_METHODS:
            raise ConfigurationError(f"Unknown default sizing method: {self.default_method}")

    def size(self, signal: Signal, capital: float, price: float) -> int:
        """
        Calculate the number of shares for a signal.

        Args:
            signal: Trading signal
            capital: Available capital (cash)
            price: Reference price (bar close)

        Returns:
            Non-negative share count

        Raises:
            ConfigurationError: If the sizing method is not supported
        """
        if signal.quantity is not None:
            return int(signal.quantity)

        method = signal.sizing_method or self.default_method
        value = signal.sizing_value if signal.sizing_value is not None else self.default_value

        if method not in SIZING_METHODS:
            raise ConfigurationError(
                f"Unknown position sizing method: {method}. "
                f"Use one of {', '.join(SIZING_METHODS)}"
            )

        if price <= 0 or (capital <= 0 and method != FIXED_DOLLAR):
            return 0

        if method == FIXED_DOLLAR:
            dollars = value
        elif method == PERCENT_CAPITAL:
            dollars = capital * (value / 100)
        elif method == KELLY_CRITERION:
            dollars = capital * self.kelly_fraction(signal)
        else:
            dollars = capital * self.base_fraction * self.volatility_adjustment(signal)

        quantity = max(0, int(math.floor(dollars / price)))

        self.logger.debug(
            f"{method} sizing: capital=${capital:,.2f}, price=${price:.2f} -> {quantity} shares"
        )

        return quantity

    def kelly_fraction(self, signal: Optional[Signal] = None) -> float:
        """
        Kelly fraction (p * avg_win - (1 - p) * avg_loss) / avg_win, clamped
        to [0, max_kelly_fraction].

        Returns 0.0 if avg_win is not positive.
        """
        win_rate = _pick(signal, 'win_rate', self.kelly_defaults)
        avg_win = _pick(signal, 'avg_win', self.kelly_defaults)
        avg_loss = _pick(signal, 'avg_loss', self.kelly_defaults)

        if avg_win <= 0:
            return 0.0

        kelly = (win_rate * avg_win - (1 - win_rate) * avg_loss) / avg_win
        return max(0.0, min(self.max_kelly_fraction, kelly))

    def volatility_adjustment(self, signal: Optional[Signal] = None) -> float:
        """target_volatility / volatility, 0.0 if volatility is not positive."""
        volatility = _pick(signal, 'volatility', self.volatility_defaults)
        target = _pick(signal, 'target_volatility', self.volatility_defaults)

        if volatility <= 0:
            return 0.0
        return target / volatility


def _pick(signal: Optional[Signal], name: str, defaults: Dict[str, float]) -> float:
    value = getattr(signal, name, None) if signal is not None else None
    return defaults[name] if value is None else value
