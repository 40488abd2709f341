"""
Analytics Module

Statistical and risk calculators used by the backtesting engine.

Main Components:
- statistics: Moments, correlation, Value at Risk, Shannon entropy/probability
- risk_metrics: Sharpe/Sortino/Calmar/Treynor/Information ratios, beta,
  maximum drawdown, correlation matrices
"""

from finance_backtest.analytics.statistics import (
    VaRResult,
    VaRBacktestResult,
    ShannonProbability,
    HurstResult,
    mean,
    variance,
    stddev,
    skewness,
    kurtosis,
    covariance,
    correlation,
    simple_returns,
    calculate_historical_var,
    calculate_parametric_var,
    calculate_monte_carlo_var,
    calculate_multi_level_var,
    backtest_var,
    calculate_shannon_entropy,
    calculate_shannon_probability,
    calculate_rolling_shannon_probability,
    calculate_hurst_exponent
)
from finance_backtest.analytics.risk_metrics import (
    DrawdownResult,
    ConcentrationRisk,
    calculate_sharpe_ratio,
    calculate_sortino_ratio,
    calculate_max_drawdown,
    calculate_annualized_return,
    calculate_annualized_volatility,
    calculate_calmar_ratio,
    calculate_treynor_ratio,
    calculate_tracking_error,
    calculate_information_ratio,
    calculate_beta,
    calculate_alpha,
    calculate_correlation_matrix,
    calculate_concentration_risk
)

__all__ = [
    'VaRResult',
    'VaRBacktestResult',
    'ShannonProbability',
    'HurstResult',
    'mean',
    'variance',
    'stddev',
    'skewness',
    'kurtosis',
    'covariance',
    'correlation',
    'simple_returns',
    'calculate_historical_var',
    'calculate_parametric_var',
    'calculate_monte_carlo_var',
    'calculate_multi_level_var',
    'backtest_var',
    'calculate_shannon_entropy',
    'calculate_shannon_probability',
    'calculate_rolling_shannon_probability',
    'calculate_hurst_exponent',
    'DrawdownResult',
    'ConcentrationRisk',
    'calculate_sharpe_ratio',
    'calculate_sortino_ratio',
    'calculate_max_drawdown',
    'calculate_annualized_return',
    'calculate_annualized_volatility',
    'calculate_calmar_ratio',
    'calculate_treynor_ratio',
    'calculate_tracking_error',
    'calculate_information_ratio',
    'calculate_beta',
    'calculate_alpha',
    'calculate_correlation_matrix',
    'calculate_concentration_risk'
]
