"""
Buy and Hold Strategy Module

Benchmark strategy: buy on the first bar and hold to the end of the run.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from finance_backtest.backtesting.models import BUY, ParameterRange, PriceBar, Signal
from finance_backtest.strategies.base_strategy import BaseStrategy


class BuyAndHoldStrategy(BaseStrategy):
    """
    Buys once on the first bar of a run.

    Sizing comes from strategy_config ('quantity', 'sizing_method',
    'sizing_value'); without it the engine's default sizing applies.
    """

    def __init__(self, strategy_config: Optional[Dict] = None):
        super().__init__(name='buy_and_hold', strategy_config=strategy_config)

        self.quantity = self.strategy_config.get('quantity')
        self.sizing_method = self.strategy_config.get('sizing_method')
        self.sizing_value = self.strategy_config.get('sizing_value')

    def get_signals(
        self,
        bars: Sequence[PriceBar],
        parameters: Optional[Mapping[str, Any]] = None
    ) -> List[Signal]:
        if len(bars) != 1:
            return []

        return [Signal(
            action=BUY,
            symbol=self.symbol_for(bars[-1]),
            quantity=self.quantity,
            sizing_method=self.sizing_method,
            sizing_value=self.sizing_value,
            reason='buy_and_hold_entry'
        )]

    def get_parameter_ranges(self) -> Dict[str, ParameterRange]:
        return {}
