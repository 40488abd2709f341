"""
Unit tests for MovingAverageCrossoverStrategy.
"""

import pandas as pd
import pytest

from finance_backtest.backtesting.engine import BacktestEngine
from finance_backtest.backtesting.models import BUY, SELL
from finance_backtest.strategies.moving_average import MovingAverageCrossoverStrategy


@pytest.fixture
def v_shaped_bars(bar_factory):
    """Decline, rally, decline: one upward and one downward crossover."""
    closes = list(range(120, 90, -1)) + list(range(91, 131)) + list(range(129, 90, -1))
    return bar_factory(closes)


def collect_signals(strategy, bars, parameters=None):
    signals = []
    for i in range(1, len(bars) + 1):
        for signal in strategy.get_signals(bars[:i], parameters):
            signals.append((i - 1, signal))
    return signals


class TestMovingAverageCrossoverStrategy:
    """Test moving average crossover strategy."""

    def test_init_defaults(self):
        strategy = MovingAverageCrossoverStrategy()

        assert strategy.name == "moving_average_crossover"
        assert strategy.default_parameters == {"fast_window": 10, "slow_window": 30}

    def test_init_from_config(self):
        strategy = MovingAverageCrossoverStrategy({"fast_window": 5, "slow_window": 20})

        assert strategy.default_parameters == {"fast_window": 5, "slow_window": 20}

    def test_crossovers(self, v_shaped_bars):
        signals = collect_signals(MovingAverageCrossoverStrategy(), v_shaped_bars)

        actions = [signal.action for _, signal in signals]
        assert actions == [BUY, SELL]

        (buy_index, buy), (sell_index, sell) = signals
        assert 30 <= buy_index < 70 <= sell_index
        assert buy.reason == "ma_crossover_up"
        assert sell.reason == "ma_crossover_down"
        assert sell.quantity is None

    def test_no_signals_before_slow_window(self, v_shaped_bars):
        strategy = MovingAverageCrossoverStrategy()

        for i in range(1, 31):
            assert strategy.get_signals(v_shaped_bars[:i]) == []

    def test_crossed_windows_produce_no_signals(self, v_shaped_bars):
        strategy = MovingAverageCrossoverStrategy()

        signals = collect_signals(strategy, v_shaped_bars, {"fast_window": 30, "slow_window": 30})

        assert signals == []

    def test_bar_symbol_is_used(self, bar_factory):
        closes = list(range(120, 90, -1)) + list(range(91, 131))
        bars = bar_factory(closes, symbol="XYZ")

        signals = collect_signals(MovingAverageCrossoverStrategy(), bars)

        assert signals[0][1].symbol == "XYZ"

    def test_parameter_ranges(self):
        ranges = MovingAverageCrossoverStrategy().get_parameter_ranges()

        assert ranges["fast_window"].values() == [5, 10, 15, 20]
        assert ranges["slow_window"].values() == [20, 30, 40, 50, 60]

    def test_calculate_moving_averages(self):
        prices = pd.Series([1.0, 2.0, 3.0, 4.0, 5.0])

        fast, slow = MovingAverageCrossoverStrategy.calculate_moving_averages(prices, 2, 4)

        assert fast.iloc[-1] == pytest.approx(4.5)
        assert slow.iloc[-1] == pytest.approx(3.5)
        assert pd.isna(slow.iloc[2])

    def test_backtest_round_trip(self, sample_config, v_shaped_bars):
        engine = BacktestEngine(config=sample_config)

        result = engine.run(MovingAverageCrossoverStrategy(), v_shaped_bars)

        assert [t.action for t in result.trades] == [BUY, SELL]
        assert result.final_positions == ()
        assert result.total_trades == 1
