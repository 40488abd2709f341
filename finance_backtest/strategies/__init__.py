"""
Trading Strategies Module

Strategy contract consumed by BacktestEngine plus sample strategies:

- BaseStrategy: Abstract base class defining get_signals / get_parameter_ranges
- BuyAndHoldStrategy: Buy on the first bar, hold to the end
- MovingAverageCrossoverStrategy: Moving average crossover momentum strategy
- BollingerReversionStrategy: Bollinger Bands-based mean reversion strategy

Example:
    >>> from finance_backtest.strategies import MovingAverageCrossoverStrategy
    >>> strategy = MovingAverageCrossoverStrategy()
    >>> signals = strategy.get_signals(bars, {'fast_window': 5, 'slow_window': 20})
"""

from finance_backtest.backtesting.models import ParameterRange
from finance_backtest.strategies.base_strategy import BaseStrategy
from finance_backtest.strategies.buy_and_hold import BuyAndHoldStrategy
from finance_backtest.strategies.moving_average import MovingAverageCrossoverStrategy
from finance_backtest.strategies.bollinger import BollingerReversionStrategy

__all__ = [
    'BaseStrategy',
    'ParameterRange',
    'BuyAndHoldStrategy',
    'MovingAverageCrossoverStrategy',
    'BollingerReversionStrategy'
]
