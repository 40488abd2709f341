"""
Risk Metrics Module

Risk-adjusted performance and portfolio risk measures built on the statistics
module:
- Sharpe Ratio: Annualized excess return per unit of volatility
- Sortino Ratio: Excess return per unit of downside deviation
- Max Drawdown: Deepest peak-to-trough decline with peak/trough positions
- Calmar Ratio: Annualized return / max drawdown
- Treynor Ratio, Information Ratio, Tracking Error
- Beta and Jensen's alpha against a market series
- Correlation matrices and concentration risk

Degenerate inputs (zero variance, zero drawdown, mismatched lengths) return
0.0 rather than NaN or inf so results aggregate cleanly across runs.

Example:
    >>> from finance_backtest.analytics.risk_metrics import calculate_max_drawdown
    >>> dd = calculate_max_drawdown([100, 110, 105, 95, 105, 120])
    >>> round(dd.max_drawdown, 4), dd.peak_index, dd.trough_index
    (0.1364, 1, 3)
"""

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from finance_backtest.analytics.statistics import (
    ArrayLike,
    correlation,
    covariance,
    mean,
    stddev,
    variance,
)

logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 252


@dataclass(frozen=True)
class DrawdownResult:
    """
    Maximum drawdown of a value series.

    Attributes:
        max_drawdown: Deepest decline as a positive fraction of the peak (0.15 = 15%)
        peak_index: Index of the peak preceding the deepest trough
        trough_index: Index of the deepest trough
        duration: trough_index - peak_index
        peak_value: Value at peak_index
        trough_value: Value at trough_index
        recovery_index: First index after the trough back at or above peak_value
            (None if the series never recovers)
        recovery_duration: recovery_index - trough_index (None if never recovered)
    """
    max_drawdown: float = 0.0
    peak_index: int = 0
    trough_index: int = 0
    duration: int = 0
    peak_value: float = 0.0
    trough_value: float = 0.0
    recovery_index: Optional[int] = None
    recovery_duration: Optional[int] = None

    @property
    def max_drawdown_percent(self) -> float:
        return self.max_drawdown * 100


@dataclass(frozen=True)
class ConcentrationRisk:
    hhi: float
    effective_assets: float
    concentration_ratio: float
    diversification_score: float


def calculate_sharpe_ratio(
    returns: ArrayLike,
    risk_free_rate: float = 0.0,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """
    Calculate Sharpe ratio (risk-adjusted return).

    Sharpe = (mean * periods_per_year - risk_free_rate) /
             (stddev * sqrt(periods_per_year))

    Args:
        returns: Period returns
        risk_free_rate: Risk-free rate (annual)
        periods_per_year: Number of periods per year (252 for daily, 12 for monthly)

    Returns:
        Annualized Sharpe ratio, 0.0 if the standard deviation is 0
    """
    sd = stddev(returns)
    if sd == 0:
        return 0.0

    annualized_return = mean(returns) * periods_per_year
    annualized_volatility = sd * math.sqrt(periods_per_year)

    return (annualized_return - risk_free_rate) / annualized_volatility


def calculate_sortino_ratio(
    returns: ArrayLike,
    target_return: float = 0.0,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """
    Calculate Sortino ratio (downside risk-adjusted return).

    Downside deviation uses only returns below the per-period target
    (target_return / periods_per_year).

    Args:
        returns: Period returns
        target_return: Annual target return
        periods_per_year: Number of periods per year

    Returns:
        Annualized Sortino ratio, 0.0 if there are no downside returns
    """
    arr = np.asarray(returns, dtype=float)
    arr = arr[np.isfinite(arr)]
    if arr.size == 0:
        return 0.0

    period_target = target_return / periods_per_year
    downside = arr[arr < period_target]
    if downside.size == 0:
        return 0.0

    downside_deviation = math.sqrt(
        float(np.sum((downside - period_target) ** 2)) / downside.size
    ) * math.sqrt(periods_per_year)

    if downside_deviation == 0:
        return 0.0

    excess_return = mean(arr) * periods_per_year - target_return
    return excess_return / downside_deviation


def calculate_max_drawdown(values: ArrayLike) -> DrawdownResult:
    """
    Calculate maximum drawdown with a single left-to-right scan.

    Drawdown at each point is (running_peak - value) / running_peak.

    Args:
        values: Portfolio values (or any positive level series)

    Returns:
        DrawdownResult; all zeros for fewer than two values. The recovery
        fields stay None when there is no drawdown or it is never recovered.
    """
    arr = np.asarray(values, dtype=float).ravel()

    if arr.size < 2:
        level = float(arr[0]) if arr.size == 1 else 0.0
        return DrawdownResult(peak_value=level, trough_value=level)

    peak = arr[0]
    peak_index = 0
    max_dd = 0.0
    best_peak = 0
    best_trough = 0

    for i in range(1, arr.size):
        value = arr[i]
        if value > peak:
            peak = value
            peak_index = i
        elif peak > 0:
            drawdown = (peak - value) / peak
            if drawdown > max_dd:
                max_dd = float(drawdown)
                best_peak = peak_index
                best_trough = i

    recovery_index = None
    if max_dd > 0:
        recovered = np.flatnonzero(arr[best_trough + 1:] >= arr[best_peak])
        if recovered.size:
            recovery_index = best_trough + 1 + int(recovered[0])

    return DrawdownResult(
        max_drawdown=max_dd,
        peak_index=best_peak,
        trough_index=best_trough,
        duration=best_trough - best_peak,
        peak_value=float(arr[best_peak]),
        trough_value=float(arr[best_trough]),
        recovery_index=recovery_index,
        recovery_duration=None if recovery_index is None else recovery_index - best_trough
    )


def calculate_annualized_return(
    values: ArrayLike,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """
    Calculate compound annual growth rate of a value series.

    Args:
        values: Cumulative values (equity curve)
        periods_per_year: Number of periods per year

    Returns:
        Annualized return, 0.0 for fewer than two values
    """
    arr = np.asarray(values, dtype=float).ravel()
    if arr.size < 2 or arr[0] <= 0:
        return 0.0

    total_return = arr[-1] / arr[0] - 1
    return compound_annual_growth(total_return, arr.size, periods_per_year)


def compound_annual_growth(
    total_return: float,
    periods: int,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """
    Annualize a total return earned over a number of periods.

    A total loss (growth factor <= 0) is reported as -1.0.
    """
    if periods <= 0:
        return 0.0

    growth = 1 + total_return
    if growth <= 0:
        return -1.0

    years = periods / periods_per_year
    return float(growth ** (1 / years) - 1)


def calculate_annualized_volatility(
    returns: ArrayLike,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """Annualized standard deviation of period returns."""
    return stddev(returns) * math.sqrt(periods_per_year)


def calculate_calmar_ratio(
    cumulative_values: ArrayLike,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """
    Calculate Calmar ratio (annualized return / max drawdown).

    Args:
        cumulative_values: Equity curve or cumulative value series
        periods_per_year: Number of periods per year

    Returns:
        Calmar ratio, 0.0 if there is no drawdown
    """
    drawdown = calculate_max_drawdown(cumulative_values)
    if drawdown.max_drawdown == 0:
        return 0.0

    annualized = calculate_annualized_return(cumulative_values, periods_per_year)
    return annualized / abs(drawdown.max_drawdown)


def calculate_treynor_ratio(
    returns: ArrayLike,
    beta: float,
    risk_free_rate: float = 0.0,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """Annualized excess return per unit of beta, 0.0 if beta is 0."""
    if beta == 0 or len(returns) == 0:
        return 0.0
    return (mean(returns) * periods_per_year - risk_free_rate) / beta


def calculate_tracking_error(
    portfolio_returns: ArrayLike,
    benchmark_returns: ArrayLike,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """Annualized standard deviation of active returns."""
    active = _active_returns(portfolio_returns, benchmark_returns)
    if active is None:
        return 0.0
    return stddev(active) * math.sqrt(periods_per_year)


def calculate_information_ratio(
    portfolio_returns: ArrayLike,
    benchmark_returns: ArrayLike,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """
    Calculate Information Ratio.

    IR = annualized mean active return / tracking error. Returns 0.0 on length
    mismatch or zero tracking error.
    """
    active = _active_returns(portfolio_returns, benchmark_returns)
    if active is None:
        return 0.0

    tracking_error = stddev(active) * math.sqrt(periods_per_year)
    if tracking_error == 0:
        return 0.0

    return mean(active) * periods_per_year / tracking_error


def calculate_beta(asset_returns: ArrayLike, market_returns: ArrayLike) -> float:
    """
    Calculate beta (covariance(asset, market) / variance(market)).

    Returns 0.0 on length mismatch or zero market variance.
    """
    if len(asset_returns) != len(market_returns) or len(asset_returns) < 2:
        return 0.0

    market_variance = variance(market_returns)
    if market_variance == 0:
        return 0.0

    return covariance(asset_returns, market_returns) / market_variance


def calculate_alpha(
    portfolio_returns: ArrayLike,
    market_returns: ArrayLike,
    risk_free_rate: float = 0.0,
    periods_per_year: int = TRADING_DAYS_PER_YEAR
) -> float:
    """Jensen's alpha, annualized."""
    if len(portfolio_returns) == 0 or len(market_returns) == 0:
        return 0.0

    beta = calculate_beta(portfolio_returns, market_returns)
    portfolio_return = mean(portfolio_returns) * periods_per_year
    market_return = mean(market_returns) * periods_per_year

    return portfolio_return - (risk_free_rate + beta * (market_return - risk_free_rate))


def calculate_correlation_matrix(
    returns_by_name: Union[Mapping[str, ArrayLike], pd.DataFrame]
) -> pd.DataFrame:
    """
    Calculate a symmetric correlation matrix.

    Args:
        returns_by_name: Mapping of name -> return series, or a DataFrame with
            one column per asset

    Returns:
        DataFrame indexed and labelled by name, with 1.0 on the diagonal
    """
    if isinstance(returns_by_name, pd.DataFrame):
        series = {col: returns_by_name[col].to_numpy(dtype=float) for col in returns_by_name.columns}
    else:
        series = dict(returns_by_name)

    names = list(series.keys())
    matrix = np.eye(len(names))

    for i in range(len(names)):
        for j in range(i + 1, len(names)):
            value = correlation(series[names[i]], series[names[j]])
            matrix[i, j] = value
            matrix[j, i] = value

    return pd.DataFrame(matrix, index=names, columns=names)


def calculate_concentration_risk(
    weights: Union[Sequence[float], Mapping[str, float]]
) -> ConcentrationRisk:
    """
    Herfindahl-Hirschman concentration of portfolio weights.

    Returns:
        ConcentrationRisk with HHI, effective number of assets, top-3 weight
        and a diversification score in [0, 1]
    """
    if isinstance(weights, Mapping):
        weights = list(weights.values())
    arr = np.asarray(weights, dtype=float)

    if arr.size == 0:
        return ConcentrationRisk(0.0, 0.0, 0.0, 0.0)

    hhi = float(np.sum(arr ** 2))
    effective_assets = 1 / hhi if hhi > 0 else 0.0
    top_three = float(np.sum(np.sort(arr)[::-1][:3]))

    return ConcentrationRisk(
        hhi=hhi,
        effective_assets=effective_assets,
        concentration_ratio=top_three,
        diversification_score=min(1.0, effective_assets / arr.size)
    )


# Helper functions

def _active_returns(portfolio_returns: ArrayLike, benchmark_returns: ArrayLike):
    """Portfolio minus benchmark returns, None on empty or mismatched input."""
    portfolio = np.asarray(portfolio_returns, dtype=float)
    benchmark = np.asarray(benchmark_returns, dtype=float)
    if portfolio.size == 0 or portfolio.size != benchmark.size:
        return None
    return portfolio - benchmark
