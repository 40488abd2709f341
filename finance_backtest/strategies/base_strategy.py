"""
Base Strategy Module

Provides the abstract base class for strategies driven by BacktestEngine.

All concrete strategies must inherit from BaseStrategy and implement:
- get_signals(): Signals for the latest bar, given every bar seen so far
- get_parameter_ranges(): Search space for walk-forward optimization

Strategies see only bars up to and including the current one, so look-ahead
is impossible by construction. Keeping them free of per-run state lets one
instance be shared by parallel runs.

Example:
    >>> class MyStrategy(BaseStrategy):
    ...     def __init__(self, strategy_config=None):
    ...         super().__init__(name='my_strategy', strategy_config=strategy_config)
    ...
    ...     def get_signals(self, bars, parameters=None):
    ...         if len(bars) == 1:
    ...             return [Signal('buy', self.symbol_for(bars[-1]))]
    ...         return []
    ...
    ...     def get_parameter_ranges(self):
    ...         return {'window': ParameterRange(10, 30, 5)}
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from finance_backtest.backtesting.models import ParameterRange, PriceBar, Signal


class BaseStrategy(ABC):
    """
    Abstract base class for trading strategies.

    Attributes:
        name: Strategy name
        strategy_config: Strategy-specific configuration
        symbol: Symbol used for signals on untagged bars
        default_parameters: Parameters used when a run supplies none
        logger: Logger instance
    """

    def __init__(
        self,
        name: str,
        strategy_config: Optional[Dict] = None
    ):
        """
        Initialize base strategy.

        Args:
            name: Strategy name (e.g., 'moving_average_crossover')
            strategy_config: Optional strategy-specific configuration; a
                'parameters' mapping overrides the strategy defaults
        """
        self.name = name
        self.logger = logging.getLogger(f"{__name__}.{name}")

        if strategy_config is None:
            strategy_config = {}
        self.strategy_config = strategy_config

        self.symbol = self.strategy_config.get('symbol', 'default')
        self.default_parameters = dict(self.strategy_config.get('parameters', {}) or {})

    @abstractmethod
    def get_signals(
        self,
        bars: Sequence[PriceBar],
        parameters: Optional[Mapping[str, Any]] = None
    ) -> List[Signal]:
        """
        Generate signals for the most recent bar.

        Args:
            bars: Bars from the start of the run up to and including the current bar
            parameters: Strategy parameters for this run

        Returns:
            Signals to execute on the current bar (possibly empty)
        """

    @abstractmethod
    def get_parameter_ranges(self) -> Dict[str, ParameterRange]:
        """
        Return the parameter search space for walk-forward optimization.

        Returns:
            Dictionary mapping parameter name to ParameterRange (empty if the
            strategy has no tunable parameters)
        """

    def resolve_parameters(self, parameters: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """Merge run parameters over the strategy defaults."""
        resolved = dict(self.default_parameters)
        if parameters:
            resolved.update(parameters)
        return resolved

    def symbol_for(self, bar: PriceBar) -> str:
        return bar.symbol or self.symbol

    @staticmethod
    def closes(bars: Sequence[PriceBar], lookback: Optional[int] = None) -> pd.Series:
        """Close prices of the last `lookback` bars (all bars if None)."""
        if lookback is not None:
            bars = bars[-lookback:]
        return pd.Series([bar.close for bar in bars], dtype=float)
