"""
Integration tests for strategy backtesting workflow.

Tests end-to-end strategy execution from an OHLCV DataFrame through the
backtest engine, performance reporting, risk analytics, walk-forward analysis
and Monte Carlo simulation.
"""

import numpy as np
import pandas as pd
import pytest

from finance_backtest.analytics.statistics import calculate_historical_var, simple_returns
from finance_backtest.backtesting import (
    BacktestEngine,
    MonteCarloRunner,
    PerformanceReporter,
    WalkForwardRunner,
    bars_from_frame,
)
from finance_backtest.strategies import (
    BollingerReversionStrategy,
    BuyAndHoldStrategy,
    MovingAverageCrossoverStrategy,
)


@pytest.mark.integration
class TestStrategyBacktestingWorkflow:
    """Test end-to-end strategy execution and backtesting."""

    def test_moving_average_backtest(self, sample_config, sample_price_frame):
        """Test complete moving average workflow."""
        bars = bars_from_frame(sample_price_frame, symbol="TEST")
        engine = BacktestEngine(config=sample_config)

        result = engine.run(
            MovingAverageCrossoverStrategy(),
            bars,
            parameters={"fast_window": 5, "slow_window": 20},
        )

        assert len(result.equity_curve) == len(sample_price_frame)
        assert result.start_date == sample_price_frame.index[0]
        assert result.end_date == sample_price_frame.index[-1]
        assert result.parameters == {"fast_window": 5, "slow_window": 20}
        for point in result.equity_curve:
            assert point.cash >= 0
            assert point.total_value >= point.cash

        # Cash conservation over the whole trade log
        sells = sum(t.gross_amount for t in result.trades if t.action == "sell")
        buys = sum(t.gross_amount for t in result.trades if t.action == "buy")
        commission = sum(t.commission for t in result.trades)
        assert result.final_cash == pytest.approx(
            engine.initial_capital + sells - buys - commission
        )

        summary = PerformanceReporter().summary(result)
        assert summary["Total Trades"] == f"{result.total_trades:.0f}"

        data = result.to_dict()
        assert data["final_capital"] == result.final_capital
        assert len(data["equity_curve"]) == len(bars)

    def test_compare_strategies(self, sample_config, random_walk_bars):
        engine = BacktestEngine(config=sample_config)
        strategies = [
            BuyAndHoldStrategy(),
            MovingAverageCrossoverStrategy(),
            BollingerReversionStrategy(),
        ]

        results = [engine.spawn().run(s, random_walk_bars) for s in strategies]
        comparison = PerformanceReporter.compare(results, names=[s.name for s in strategies])

        assert list(comparison.index) == [
            "buy_and_hold", "moving_average_crossover", "bollinger_reversion"
        ]
        assert isinstance(comparison, pd.DataFrame)
        assert comparison.loc["buy_and_hold", "total_return"] == pytest.approx(results[0].total_return)

    def test_equity_curve_risk_analytics(self, sample_config, random_walk_bars):
        engine = BacktestEngine(config=sample_config)
        result = engine.run(BuyAndHoldStrategy({"sizing_method": "percent_capital", "sizing_value": 90}),
                            random_walk_bars)

        returns = simple_returns(result.equity_frame()["total_value"])
        var = calculate_historical_var(returns, confidence_level=0.95)

        assert len(returns) == len(random_walk_bars) - 1
        assert var.sample_size == len(returns)
        assert var.var <= np.median(returns)
        assert var.expected_shortfall <= var.var

    def test_walk_forward_then_monte_carlo(self, sample_config, random_walk_bars):
        engine = BacktestEngine(config=sample_config)
        strategy = MovingAverageCrossoverStrategy()

        walk_forward = WalkForwardRunner(
            engine, training_window=120, testing_window=60, step=60, seed=42
        ).run(strategy, random_walk_bars)

        assert walk_forward.summary.total_periods == 3
        assert 0.0 <= walk_forward.summary.consistency <= 1.0

        best = walk_forward.windows[-1].optimized_params
        assert set(best) == {"fast_window", "slow_window"}

        simulation = MonteCarloRunner(engine, iterations=10, seed=42).run(
            strategy, random_walk_bars, parameters=best
        )

        assert simulation.iterations == 10
        assert simulation.worst_case <= simulation.percentiles[50] <= simulation.best_case
