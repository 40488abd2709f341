"""
Moving Average Crossover Strategy Module

Trend-following strategy using moving average crossovers.

Strategy Logic:
- Buy when the fast MA crosses above the slow MA (uptrend starting)
- Sell the whole position when the fast MA crosses below the slow MA
- Hold between crossovers

Works well in trending markets but suffers from whipsaws in sideways markets.

Example:
    >>> strategy = MovingAverageCrossoverStrategy()
    >>> result = engine.run(strategy, bars, parameters={'fast_window': 10, 'slow_window': 40})
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from finance_backtest.backtesting.models import BUY, SELL, ParameterRange, PriceBar, Signal
from finance_backtest.strategies.base_strategy import BaseStrategy


class MovingAverageCrossoverStrategy(BaseStrategy):
    """
    Momentum strategy using moving average crossover.

    Parameters (per run):
        fast_window: Fast moving average window (default 10)
        slow_window: Slow moving average window (default 30)

    A run whose fast_window is not below slow_window produces no signals, so
    walk-forward candidates with crossed windows simply score zero.
    """

    def __init__(self, strategy_config: Optional[Dict] = None):
        """
        Initialize moving average crossover strategy.

        Args:
            strategy_config: Optional strategy-specific configuration
        """
        super().__init__(name='moving_average_crossover', strategy_config=strategy_config)

        self.default_parameters.setdefault('fast_window', self.strategy_config.get('fast_window', 10))
        self.default_parameters.setdefault('slow_window', self.strategy_config.get('slow_window', 30))
        self.sizing_method = self.strategy_config.get('sizing_method')
        self.sizing_value = self.strategy_config.get('sizing_value')

        self.logger.debug(
            f"MovingAverageCrossoverStrategy initialized: "
            f"fast_window={self.default_parameters['fast_window']}, "
            f"slow_window={self.default_parameters['slow_window']}"
        )

    def get_signals(
        self,
        bars: Sequence[PriceBar],
        parameters: Optional[Mapping[str, Any]] = None
    ) -> List[Signal]:
        """
        Emit a buy on an upward crossover and a sell on a downward crossover.

        Args:
            bars: Bars seen so far
            parameters: Optional fast_window / slow_window overrides

        Returns:
            At most one signal for the current bar
        """
        params = self.resolve_parameters(parameters)
        fast_window = int(params['fast_window'])
        slow_window = int(params['slow_window'])

        if fast_window < 1 or fast_window >= slow_window or len(bars) <= slow_window:
            return []

        prices = self.closes(bars, slow_window + 1)
        fast_ma, slow_ma = self.calculate_moving_averages(prices, fast_window, slow_window)

        ma_diff = fast_ma - slow_ma
        current, previous = ma_diff.iloc[-1], ma_diff.iloc[-2]
        symbol = self.symbol_for(bars[-1])

        if current > 0 and previous <= 0:
            return [Signal(
                action=BUY,
                symbol=symbol,
                sizing_method=self.sizing_method,
                sizing_value=self.sizing_value,
                reason='ma_crossover_up'
            )]

        if current < 0 and previous >= 0:
            return [Signal(action=SELL, symbol=symbol, reason='ma_crossover_down')]

        return []

    def get_parameter_ranges(self) -> Dict[str, ParameterRange]:
        return {
            'fast_window': ParameterRange(5, 20, 5),
            'slow_window': ParameterRange(20, 60, 10)
        }

    @staticmethod
    def calculate_moving_averages(
        prices: pd.Series,
        fast_window: int,
        slow_window: int
    ):
        """
        Calculate fast and slow simple moving averages.

        Returns:
            Tuple of (fast_ma, slow_ma) Series
        """
        return prices.rolling(window=fast_window).mean(), prices.rolling(window=slow_window).mean()
