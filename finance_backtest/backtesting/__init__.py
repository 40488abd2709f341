"""
Backtesting Module

Provides the backtesting framework for trading strategy evaluation with
commission and slippage modeling, position sizing and performance metrics.

Main Components:
- BacktestEngine: Event-driven backtesting engine
- OrderExecutor: Fill simulation, position ledger and trade log
- PositionSizer: Fixed-dollar, percent-of-capital, Kelly and volatility sizing
- PerformanceReporter: Builds BacktestResult from equity curve and trade log
- WalkForwardRunner: Rolling in-sample optimization, out-of-sample testing
- MonteCarloRunner: Bootstrap distribution of total returns
- CancellationToken: Cooperative cancellation for long sweeps

Example:
    >>> from finance_backtest.backtesting import BacktestEngine, MonteCarloRunner
    >>> from finance_backtest.strategies import BuyAndHoldStrategy
    >>>
    >>> engine = BacktestEngine(initial_capital=100000)
    >>> result = engine.run(BuyAndHoldStrategy(), bars)
    >>>
    >>> simulation = MonteCarloRunner(engine, iterations=200, seed=1).run(BuyAndHoldStrategy(), bars)
"""

from finance_backtest.backtesting.models import (
    BUY,
    SELL,
    PriceBar,
    Signal,
    Position,
    Trade,
    EquityPoint,
    BacktestResult,
    ParameterRange,
    bars_from_frame
)
from finance_backtest.backtesting.sizing import PositionSizer
from finance_backtest.backtesting.execution import OrderExecutor
from finance_backtest.backtesting.cancellation import CancellationToken
from finance_backtest.backtesting.metrics import PerformanceReporter
from finance_backtest.backtesting.engine import BacktestEngine
from finance_backtest.backtesting.walk_forward import (
    WalkForwardRunner,
    WalkForwardWindow,
    WalkForwardSummary,
    WalkForwardResult
)
from finance_backtest.backtesting.monte_carlo import MonteCarloRunner, MonteCarloResult

__all__ = [
    'BUY',
    'SELL',
    'PriceBar',
    'Signal',
    'Position',
    'Trade',
    'EquityPoint',
    'BacktestResult',
    'ParameterRange',
    'bars_from_frame',
    'PositionSizer',
    'OrderExecutor',
    'CancellationToken',
    'PerformanceReporter',
    'BacktestEngine',
    'WalkForwardRunner',
    'WalkForwardWindow',
    'WalkForwardSummary',
    'WalkForwardResult',
    'MonteCarloRunner',
    'MonteCarloResult'
]
