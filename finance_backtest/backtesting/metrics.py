"""
Performance Metrics Module

Turns the equity curve and trade log of a finished run into a BacktestResult.
Every figure is derived from those two inputs alone, so a persisted result can
be re-scored without the engine.

Metrics:
- Total and annualized return (CAGR over len(equity_curve) / periods_per_year years)
- Max drawdown, Sharpe, Sortino and volatility of the equity curve
- Win rate: winning sells / sells with realized P&L
- Profit factor: |avg_win * wins| / |avg_loss * losses|
- Average / largest win and loss, total commission

Example:
    >>> from finance_backtest.backtesting import BacktestEngine, PerformanceReporter
    >>>
    >>> result = engine.run(strategy, bars)
    >>> reporter = PerformanceReporter()
    >>> print(reporter.summary(result)['Sharpe Ratio'])
    >>> comparison = reporter.compare([result, other_result])
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from finance_backtest.analytics.risk_metrics import (
    DrawdownResult,
    TRADING_DAYS_PER_YEAR,
    calculate_annualized_volatility,
    calculate_max_drawdown,
    calculate_sharpe_ratio,
    calculate_sortino_ratio,
    compound_annual_growth
)
from finance_backtest.analytics.statistics import simple_returns
from finance_backtest.backtesting.models import BacktestResult, EquityPoint, Position, Trade


class PerformanceReporter:
    """
    Builds BacktestResult objects from raw run output.

    Attributes:
        periods_per_year: Periods per year used to annualize (252 for daily bars)
        risk_free_rate: Annual risk-free rate for the Sharpe ratio
    """

    def __init__(
        self,
        periods_per_year: int = TRADING_DAYS_PER_YEAR,
        risk_free_rate: float = 0.0
    ):
        self.logger = logging.getLogger(__name__)
        self.periods_per_year = periods_per_year
        self.risk_free_rate = risk_free_rate

    def build(
        self,
        initial_capital: float,
        equity_curve: Sequence[EquityPoint],
        trades: Sequence[Trade],
        final_positions: Iterable[Position] = (),
        parameters: Optional[Mapping[str, Any]] = None
    ) -> BacktestResult:
        """
        Calculate all performance metrics for a run.

        Args:
            initial_capital: Starting capital
            equity_curve: One EquityPoint per processed bar
            trades: Trade log in execution order
            final_positions: Positions still open after the last bar
            parameters: Strategy parameters used for the run

        Returns:
            BacktestResult
        """
        equity_curve = tuple(equity_curve)
        trades = tuple(trades)
        values = [point.total_value for point in equity_curve]

        if values:
            final_capital = values[-1]
            final_cash = equity_curve[-1].cash
        else:
            final_capital = initial_capital
            final_cash = initial_capital

        total_return = (
            (final_capital - initial_capital) / initial_capital if initial_capital else 0.0
        )
        returns = simple_returns(values)

        closed = [t.realized_pnl for t in trades if t.realized_pnl is not None]
        wins = [pnl for pnl in closed if pnl > 0]
        losses = [pnl for pnl in closed if pnl < 0]

        avg_win = sum(wins) / len(wins) if wins else 0.0
        avg_loss = sum(losses) / len(losses) if losses else 0.0
        profit_factor = (
            abs(avg_win * len(wins)) / abs(avg_loss * len(losses)) if avg_loss != 0 else 0.0
        )

        result = BacktestResult(
            initial_capital=initial_capital,
            final_capital=final_capital,
            final_cash=final_cash,
            total_return=total_return,
            annualized_return=compound_annual_growth(
                total_return, len(values), self.periods_per_year
            ),
            max_drawdown=calculate_max_drawdown(values) if values else DrawdownResult(),
            sharpe_ratio=calculate_sharpe_ratio(
                returns, self.risk_free_rate, self.periods_per_year
            ),
            sortino_ratio=calculate_sortino_ratio(returns, 0.0, self.periods_per_year),
            volatility=calculate_annualized_volatility(returns, self.periods_per_year),
            win_rate=len(wins) / len(closed) if closed else 0.0,
            profit_factor=profit_factor,
            total_trades=len(closed),
            winning_trades=len(wins),
            losing_trades=len(losses),
            avg_win=avg_win,
            avg_loss=avg_loss,
            largest_win=max(wins) if wins else 0.0,
            largest_loss=min(losses) if losses else 0.0,
            total_commission=sum(t.commission for t in trades),
            start_date=equity_curve[0].date if equity_curve else None,
            end_date=equity_curve[-1].date if equity_curve else None,
            equity_curve=equity_curve,
            trades=trades,
            final_positions=tuple(final_positions),
            parameters=dict(parameters or {})
        )

        self.logger.debug(
            f"Metrics calculated: Sharpe={result.sharpe_ratio:.2f}, "
            f"MaxDD={result.max_drawdown.max_drawdown:.2%}, WinRate={result.win_rate:.2%}"
        )

        return result

    def summary(self, result: BacktestResult) -> Dict[str, str]:
        """
        Get formatted summary of key metrics.

        Returns:
            Dictionary with formatted strings
        """
        return {
            'Total Return': f"{result.total_return:.2%}",
            'Annualized Return': f"{result.annualized_return:.2%}",
            'Annualized Volatility': f"{result.volatility:.2%}",
            'Sharpe Ratio': f"{result.sharpe_ratio:.2f}",
            'Sortino Ratio': f"{result.sortino_ratio:.2f}",
            'Max Drawdown': f"{result.max_drawdown.max_drawdown:.2%}",
            'Win Rate': f"{result.win_rate:.2%}",
            'Profit Factor': f"{result.profit_factor:.2f}",
            'Total Trades': f"{result.total_trades:.0f}",
            'Total Commission': f"${result.total_commission:,.2f}"
        }

    @staticmethod
    def compare(
        results: Sequence[BacktestResult],
        names: Optional[List[str]] = None
    ) -> pd.DataFrame:
        """
        Compare multiple backtest results.

        Args:
            results: BacktestResult objects
            names: Optional row labels (default Backtest_1, Backtest_2, ...)

        Returns:
            Comparison DataFrame, one row per result
        """
        if names is None:
            names = [f"Backtest_{i + 1}" for i in range(len(results))]

        if len(names) != len(results):
            raise ValueError("names must match the number of results")

        comparison = []
        for name, result in zip(names, results):
            row = result.metrics
            row['name'] = name
            comparison.append(row)

        if not comparison:
            return pd.DataFrame()

        return pd.DataFrame(comparison).set_index('name')
