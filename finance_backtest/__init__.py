"""
Strategy backtesting and risk analytics.

Subpackages:
- analytics: Statistics, Value at Risk, Shannon analysis and risk ratios
- backtesting: Engine, execution, sizing, walk-forward and Monte Carlo runners
- strategies: Strategy contract and sample strategies
- config: YAML configuration and logging setup
"""

from finance_backtest.exceptions import BacktestCancelled, ConfigurationError

__version__ = "0.1.0"

__all__ = ['BacktestCancelled', 'ConfigurationError']
