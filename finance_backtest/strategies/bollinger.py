"""
Bollinger Reversion Strategy Module

Mean reversion strategy using Bollinger Bands.

Strategy Logic:
- Middle band: simple moving average over `window` bars
- Upper/lower bands: middle +/- num_std * rolling standard deviation
- Buy when the close drops below the lower band (oversold)
- Sell the whole position when the close recovers above the middle band

Assumes prices revert to their recent mean after temporary dislocations.

Example:
    >>> strategy = BollingerReversionStrategy()
    >>> result = engine.run(strategy, bars, parameters={'window': 20, 'num_std': 2.0})
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from finance_backtest.backtesting.models import BUY, SELL, ParameterRange, PriceBar, Signal
from finance_backtest.strategies.base_strategy import BaseStrategy


class BollingerReversionStrategy(BaseStrategy):
    """
    Mean reversion strategy using Bollinger Bands.

    Parameters (per run):
        window: Rolling window for mean/std calculation (default 20)
        num_std: Number of standard deviations for bands (default 2.0)
    """

    def __init__(self, strategy_config: Optional[Dict] = None):
        """
        Initialize Bollinger reversion strategy.

        Args:
            strategy_config: Optional strategy-specific configuration
        """
        super().__init__(name='bollinger_reversion', strategy_config=strategy_config)

        self.default_parameters.setdefault('window', self.strategy_config.get('window', 20))
        self.default_parameters.setdefault('num_std', self.strategy_config.get('num_std', 2.0))
        self.sizing_method = self.strategy_config.get('sizing_method')
        self.sizing_value = self.strategy_config.get('sizing_value')

    def get_signals(
        self,
        bars: Sequence[PriceBar],
        parameters: Optional[Mapping[str, Any]] = None
    ) -> List[Signal]:
        params = self.resolve_parameters(parameters)
        window = int(params['window'])
        num_std = float(params['num_std'])

        if window < 2 or len(bars) <= window:
            return []

        prices = self.closes(bars, window + 1)
        middle, _, lower = self.calculate_bands(prices, window, num_std)

        price, prev_price = prices.iloc[-1], prices.iloc[-2]
        symbol = self.symbol_for(bars[-1])

        if price < lower.iloc[-1] and prev_price >= lower.iloc[-2]:
            return [Signal(
                action=BUY,
                symbol=symbol,
                sizing_method=self.sizing_method,
                sizing_value=self.sizing_value,
                reason='lower_band_touch'
            )]

        if price > middle.iloc[-1] and prev_price <= middle.iloc[-2]:
            return [Signal(action=SELL, symbol=symbol, reason='mean_reversion_exit')]

        return []

    def get_parameter_ranges(self) -> Dict[str, ParameterRange]:
        return {
            'window': ParameterRange(10, 30, 5),
            'num_std': ParameterRange(1.5, 2.5, 0.5)
        }

    @staticmethod
    def calculate_bands(
        prices: pd.Series,
        window: int,
        num_std: float
    ) -> Tuple[pd.Series, pd.Series, pd.Series]:
        """
        Calculate Bollinger Bands.

        Returns:
            Tuple of (middle_band, upper_band, lower_band) as Series
        """
        middle = prices.rolling(window=window).mean()
        std = prices.rolling(window=window).std()

        return middle, middle + num_std * std, middle - num_std * std
