"""
Unit tests for BaseStrategy abstract class.

Tests parameter resolution, symbol selection and close price extraction.
"""

import pandas as pd
import pytest

from finance_backtest.backtesting.models import ParameterRange, Signal
from finance_backtest.strategies.base_strategy import BaseStrategy


# Create concrete test strategy for testing
class ConcreteStrategy(BaseStrategy):
    """Concrete strategy for testing BaseStrategy."""

    def __init__(self, strategy_config=None):
        super().__init__(name="concrete", strategy_config=strategy_config)

    def get_signals(self, bars, parameters=None):
        """Minimal implementation."""
        if len(bars) == 1:
            return [Signal("buy", self.symbol_for(bars[-1]), quantity=1)]
        return []

    def get_parameter_ranges(self):
        """Minimal implementation."""
        return {"window": ParameterRange(10, 30, 5)}


class TestBaseStrategy:
    """Test base strategy functionality."""

    def test_init(self):
        """Test initialization."""
        strategy = ConcreteStrategy()

        assert strategy.name == "concrete"
        assert strategy.strategy_config == {}
        assert strategy.symbol == "default"
        assert strategy.default_parameters == {}

    def test_init_from_config(self):
        strategy = ConcreteStrategy({"symbol": "SPY", "parameters": {"window": 15}})

        assert strategy.symbol == "SPY"
        assert strategy.default_parameters == {"window": 15}

    def test_cannot_instantiate_abstract_class(self):
        with pytest.raises(TypeError):
            BaseStrategy(name="abstract")

    def test_resolve_parameters(self):
        strategy = ConcreteStrategy({"parameters": {"window": 15, "num_std": 2.0}})

        resolved = strategy.resolve_parameters({"window": 25})

        assert resolved == {"window": 25, "num_std": 2.0}
        assert strategy.default_parameters == {"window": 15, "num_std": 2.0}

    def test_symbol_for_prefers_bar_symbol(self, bar_factory):
        strategy = ConcreteStrategy({"symbol": "SPY"})

        assert strategy.symbol_for(bar_factory([100], symbol="QQQ")[0]) == "QQQ"
        assert strategy.symbol_for(bar_factory([100])[0]) == "SPY"

    def test_closes(self, bar_factory):
        bars = bar_factory([100, 101, 102, 103])

        assert BaseStrategy.closes(bars).tolist() == [100.0, 101.0, 102.0, 103.0]
        assert BaseStrategy.closes(bars, lookback=2).tolist() == [102.0, 103.0]
        assert isinstance(BaseStrategy.closes(bars), pd.Series)
