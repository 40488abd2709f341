"""
Statistics Module

Pure, stateless statistical functions used by the risk metrics and the
backtesting engine:
- Moments: mean, sample variance, standard deviation, skewness, excess kurtosis
- Co-movement: covariance, Pearson correlation
- Value at Risk: historical, parametric, Monte Carlo, multi-level, VaR backtest
- Information measures: Shannon entropy and Shannon probability
- Persistence: Hurst exponent via rescaled-range analysis

All functions accept lists, tuples, numpy arrays or pandas Series. Empty or
short input never raises; each function returns a documented neutral value
(usually 0.0) instead. Zero-variance input yields 0.0, never NaN or inf.

Example:
    >>> from finance_backtest.analytics.statistics import calculate_historical_var
    >>> returns = [-0.05, -0.03, -0.01, 0.0, 0.01, 0.02, 0.03, 0.04, 0.05, 0.06]
    >>> calculate_historical_var(returns, confidence_level=0.95).var
    -0.05
"""

import logging
import math
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Dict, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from scipy import stats

logger = logging.getLogger(__name__)

ArrayLike = Union[Sequence[float], np.ndarray, pd.Series]

# One-sided standard normal quantiles for the supported confidence levels
Z_SCORES = MappingProxyType({
    0.90: 1.282,
    0.95: 1.645,
    0.975: 1.960,
    0.99: 2.326,
    0.995: 2.576,
})
DEFAULT_Z_SCORE = 1.645

# E[Z | Z < -z] multipliers for a standard normal at the same confidence levels
ES_MULTIPLIERS = MappingProxyType({
    0.90: 1.755,
    0.95: 2.063,
    0.975: 2.338,
    0.99: 2.665,
    0.995: 2.892,
})
DEFAULT_ES_MULTIPLIER = 2.063

ENTROPY_BINS = 10
SHANNON_Z = 1.96

# Absorbs representation error in (1 - confidence) * n, e.g. (1 - 0.9) * 10
_INDEX_EPSILON = 1e-9


@dataclass(frozen=True)
class VaRResult:
    """
    Value-at-Risk estimate.

    Attributes:
        var: Return at the VaR threshold (negative for a loss)
        expected_shortfall: Mean return at or below the threshold
        confidence_level: Confidence level used (e.g. 0.95)
        method: 'historical', 'parametric' or 'monte_carlo'
        sample_size: Number of observations used
        index: Position of the VaR observation in the sorted sample (historical)
        mean_return: Sample mean (parametric / monte carlo)
        volatility: Sample standard deviation (parametric / monte carlo)
        z_score: Normal quantile used (parametric)
        time_horizon: Holding period in periods (parametric)
    """
    var: float
    expected_shortfall: float
    confidence_level: float
    method: str
    sample_size: int
    index: Optional[int] = None
    mean_return: Optional[float] = None
    volatility: Optional[float] = None
    z_score: Optional[float] = None
    time_horizon: int = 1


@dataclass(frozen=True)
class VaRBacktestResult:
    """Rolling historical VaR violation statistics."""
    violations: Optional[int]
    total_tests: int
    violation_rate: Optional[float]
    expected_violation_rate: float
    expected_violations: Optional[float]
    accuracy: Optional[float]
    confidence_level: float
    window: int


@dataclass(frozen=True)
class ShannonProbability:
    """
    Shannon probability of an up move for a return series.

    effective_probability is the lower 95% confidence bound on the measured
    probability, floored at 0.5 (no edge).
    """
    probability: float
    effective_probability: float
    standard_error: float
    entropy: float
    accuracy: float
    sample_size: int
    up_moves: int
    down_moves: int
    mean_return: float
    volatility: float


@dataclass(frozen=True)
class HurstResult:
    hurst_exponent: float
    interpretation: str
    confidence: float
    sample_periods: int


# =============================================================================
# Moments
# =============================================================================

def mean(values: ArrayLike) -> float:
    """Arithmetic mean, 0.0 for empty input."""
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    return float(np.mean(arr))


def variance(values: ArrayLike) -> float:
    """Sample variance (divisor n - 1), 0.0 if fewer than two values."""
    arr = _as_array(values)
    if arr.size < 2 or np.ptp(arr) == 0:
        return 0.0
    return float(np.var(arr, ddof=1))


def stddev(values: ArrayLike) -> float:
    """Sample standard deviation."""
    return math.sqrt(variance(values))


def skewness(values: ArrayLike) -> float:
    """
    Adjusted Fisher-Pearson skewness.

    Returns 0.0 with fewer than three values or zero dispersion.
    """
    arr = _as_array(values)
    n = arr.size
    if n < 3:
        return 0.0

    if stddev(arr) == 0:
        return 0.0

    return _finite(stats.skew(arr, bias=False))


def kurtosis(values: ArrayLike) -> float:
    """
    Sample excess kurtosis (a normal distribution scores 0).

    Returns 0.0 with fewer than four values or zero dispersion.
    """
    arr = _as_array(values)
    n = arr.size
    if n < 4:
        return 0.0

    if stddev(arr) == 0:
        return 0.0

    return _finite(stats.kurtosis(arr, fisher=True, bias=False))


def covariance(xs: ArrayLike, ys: ArrayLike) -> float:
    """Sample covariance, 0.0 on length mismatch or fewer than two pairs."""
    x, y = _as_pair(xs, ys)
    if x is None or x.size < 2:
        return 0.0
    return float(np.sum((x - np.mean(x)) * (y - np.mean(y))) / (x.size - 1))


def correlation(xs: ArrayLike, ys: ArrayLike) -> float:
    """
    Pearson correlation coefficient.

    Returns 0.0 on length mismatch, fewer than two pairs, or when either
    series has zero variance.
    """
    x, y = _as_pair(xs, ys)
    if x is None or x.size < 2:
        return 0.0
    if np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0

    dx = x - np.mean(x)
    dy = y - np.mean(y)
    denominator = math.sqrt(float(np.sum(dx ** 2)) * float(np.sum(dy ** 2)))
    if denominator == 0:
        return 0.0

    return float(np.sum(dx * dy) / denominator)


def simple_returns(values: ArrayLike) -> np.ndarray:
    """
    Period-over-period simple returns.

    Periods whose previous value is not positive are skipped.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size < 2:
        return np.array([], dtype=float)

    previous = arr[:-1]
    current = arr[1:]
    valid = previous > 0
    return (current[valid] - previous[valid]) / previous[valid]


# =============================================================================
# Value at Risk
# =============================================================================

def calculate_historical_var(
    returns: ArrayLike,
    confidence_level: float = 0.95
) -> VaRResult:
    """
    Calculate historical (non-parametric) Value at Risk.

    Sorts returns ascending and takes the observation at
    floor((1 - confidence_level) * n). Expected shortfall is the mean of all
    observations at or below that index.

    Args:
        returns: Period returns
        confidence_level: Confidence level (e.g., 0.95 for 95%)

    Returns:
        VaRResult; var and expected_shortfall are 0.0 for empty input
    """
    sorted_returns = np.sort(_as_array(returns))
    n = sorted_returns.size

    if n == 0:
        logger.warning("Insufficient data for VaR calculation (no observations)")
        return VaRResult(
            var=0.0,
            expected_shortfall=0.0,
            confidence_level=confidence_level,
            method='historical',
            sample_size=0
        )

    index = int(math.floor((1 - confidence_level) * n + _INDEX_EPSILON))
    index = min(max(index, 0), n - 1)

    return VaRResult(
        var=float(sorted_returns[index]),
        expected_shortfall=float(np.mean(sorted_returns[:index + 1])),
        confidence_level=confidence_level,
        method='historical',
        sample_size=n,
        index=index
    )


def calculate_parametric_var(
    returns: ArrayLike,
    confidence_level: float = 0.95,
    time_horizon: int = 1
) -> VaRResult:
    """
    Calculate parametric (normal) Value at Risk.

    VaR = mean - z * stddev * sqrt(time_horizon), with z taken from a fixed
    table of supported confidence levels (1.645 when the level is not listed).

    Args:
        returns: Period returns
        confidence_level: One of 0.90, 0.95, 0.975, 0.99, 0.995
        time_horizon: Holding period in periods (square-root-of-time scaling)

    Returns:
        VaRResult with mean_return, volatility and z_score populated
    """
    arr = _as_array(returns)

    if arr.size == 0:
        logger.warning("Insufficient data for parametric VaR calculation (no observations)")
        return VaRResult(
            var=0.0,
            expected_shortfall=0.0,
            confidence_level=confidence_level,
            method='parametric',
            sample_size=0,
            time_horizon=time_horizon
        )

    mu = mean(arr)
    sigma = stddev(arr)
    z_score = get_z_score(confidence_level)
    scale = math.sqrt(max(time_horizon, 0))

    return VaRResult(
        var=mu - z_score * sigma * scale,
        expected_shortfall=mu - sigma * _lookup(ES_MULTIPLIERS, confidence_level, DEFAULT_ES_MULTIPLIER) * scale,
        confidence_level=confidence_level,
        method='parametric',
        sample_size=int(arr.size),
        mean_return=mu,
        volatility=sigma,
        z_score=z_score,
        time_horizon=time_horizon
    )


def calculate_monte_carlo_var(
    returns: ArrayLike,
    confidence_level: float = 0.95,
    simulations: int = 10000,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> VaRResult:
    """
    Calculate Monte Carlo VaR from normally distributed simulated returns.

    Simulated returns share the sample mean and standard deviation of the
    input; the historical VaR of the simulation is returned.

    Args:
        returns: Period returns
        confidence_level: Confidence level
        simulations: Number of simulated returns
        seed: Seed for a new generator (ignored if rng is given)
        rng: Optional numpy Generator

    Returns:
        VaRResult with method 'monte_carlo'
    """
    arr = _as_array(returns)

    if arr.size == 0 or simulations < 1:
        logger.warning("Insufficient data for Monte Carlo VaR calculation")
        return VaRResult(
            var=0.0,
            expected_shortfall=0.0,
            confidence_level=confidence_level,
            method='monte_carlo',
            sample_size=0
        )

    if rng is None:
        rng = np.random.default_rng(seed)

    mu = mean(arr)
    sigma = stddev(arr)
    simulated = rng.normal(mu, sigma, size=simulations)

    result = calculate_historical_var(simulated, confidence_level)
    return replace(result, method='monte_carlo', mean_return=mu, volatility=sigma)


def calculate_multi_level_var(
    returns: ArrayLike,
    confidence_levels: Tuple[float, ...] = (0.90, 0.95, 0.99)
) -> Dict[float, VaRResult]:
    """Historical VaR at several confidence levels, keyed by level."""
    return {level: calculate_historical_var(returns, level) for level in confidence_levels}


def backtest_var(
    returns: ArrayLike,
    confidence_level: float = 0.95,
    window: int = 250
) -> VaRBacktestResult:
    """
    Count out-of-sample violations of a rolling historical VaR.

    For each position i >= window, VaR is estimated on returns[i - window:i]
    and compared with returns[i]. Requires at least window + 50 returns;
    otherwise violations, rates and accuracy are None.
    """
    arr = np.asarray(returns, dtype=float)
    expected_rate = 1 - confidence_level

    if arr.size < window + 50:
        logger.warning(
            f"Insufficient data for VaR backtest: {arr.size} returns, "
            f"need at least {window + 50}"
        )
        return VaRBacktestResult(
            violations=None,
            total_tests=0,
            violation_rate=None,
            expected_violation_rate=expected_rate,
            expected_violations=None,
            accuracy=None,
            confidence_level=confidence_level,
            window=window
        )

    violations = 0
    total_tests = 0
    for i in range(window, arr.size):
        threshold = calculate_historical_var(arr[i - window:i], confidence_level).var
        if arr[i] < threshold:
            violations += 1
        total_tests += 1

    violation_rate = violations / total_tests if total_tests > 0 else 0.0

    return VaRBacktestResult(
        violations=violations,
        total_tests=total_tests,
        violation_rate=violation_rate,
        expected_violation_rate=expected_rate,
        expected_violations=total_tests * expected_rate,
        accuracy=100 - abs(violation_rate - expected_rate) * 100,
        confidence_level=confidence_level,
        window=window
    )


def get_z_score(confidence_level: float) -> float:
    """Normal quantile for a supported confidence level, 1.645 otherwise."""
    return _lookup(Z_SCORES, confidence_level, DEFAULT_Z_SCORE)


# =============================================================================
# Shannon analysis
# =============================================================================

def calculate_shannon_entropy(returns: ArrayLike, bins: int = ENTROPY_BINS) -> float:
    """
    Shannon entropy (bits) of a return series.

    Returns are discretized into equal-width bins spanning [min, max] and the
    entropy is -sum(p * log2(p)) over non-empty bins. Empty or constant input
    returns 0.0.
    """
    arr = _as_array(returns)
    n = arr.size
    if n == 0:
        return 0.0

    low = float(np.min(arr))
    high = float(np.max(arr))
    if high == low:
        return 0.0

    width = (high - low) / bins
    indices = np.floor((arr - low) / width).astype(int)
    indices = np.clip(indices, 0, bins - 1)
    counts = np.bincount(indices, minlength=bins)

    probabilities = counts[counts > 0] / n
    return float(-np.sum(probabilities * np.log2(probabilities)))


def calculate_shannon_probability(returns: ArrayLike) -> ShannonProbability:
    """
    Shannon probability of an up move.

    probability is the fraction of strictly positive returns; the effective
    probability is max(0.5, p - 1.96 * sqrt(p * (1 - p) / n)). Empty input
    gives probability 0.0 and effective probability 0.5.
    """
    arr = _as_array(returns)
    n = int(arr.size)

    if n == 0:
        return ShannonProbability(
            probability=0.0,
            effective_probability=0.5,
            standard_error=0.0,
            entropy=0.0,
            accuracy=0.0,
            sample_size=0,
            up_moves=0,
            down_moves=0,
            mean_return=0.0,
            volatility=0.0
        )

    up_moves = int(np.sum(arr > 0))
    probability = up_moves / n
    standard_error = math.sqrt(probability * (1 - probability) / n)

    return ShannonProbability(
        probability=probability,
        effective_probability=max(0.5, probability - SHANNON_Z * standard_error),
        standard_error=standard_error,
        entropy=calculate_shannon_entropy(arr),
        accuracy=estimate_accuracy(probability, n),
        sample_size=n,
        up_moves=up_moves,
        down_moves=n - up_moves,
        mean_return=mean(arr),
        volatility=stddev(arr)
    )


def estimate_accuracy(probability: float, sample_size: int) -> float:
    """Accuracy (percent) of a measured probability at 95% confidence."""
    if sample_size <= 0:
        return 0.0
    standard_error = math.sqrt(probability * (1 - probability) / sample_size)
    return max(0.0, min(100.0, (1 - SHANNON_Z * standard_error) * 100))


def calculate_rolling_shannon_probability(
    closes: ArrayLike,
    window: int = 20,
    dates: Optional[Sequence] = None
) -> pd.DataFrame:
    """
    Shannon probability over a sliding window of closing prices.

    For every position i >= window, the window closes[i - window:i] is turned
    into returns and analysed; the record is labelled with dates[i] (or i).

    Args:
        closes: Closing prices in chronological order
        window: Number of prices per window
        dates: Optional labels aligned with closes

    Returns:
        DataFrame with one row per window (empty if len(closes) <= window)
    """
    prices = np.asarray(closes, dtype=float)
    columns = [
        'probability', 'effective_probability', 'entropy', 'accuracy',
        'mean_return', 'volatility', 'standard_error', 'sample_size',
        'up_moves', 'down_moves'
    ]

    if prices.size < window + 1:
        return pd.DataFrame(columns=columns)

    records = []
    labels = []
    for i in range(window, prices.size):
        window_returns = simple_returns(prices[i - window:i])
        if window_returns.size == 0:
            continue
        result = calculate_shannon_probability(window_returns)
        records.append({col: getattr(result, col) for col in columns})
        labels.append(dates[i] if dates is not None else i)

    return pd.DataFrame(records, index=labels, columns=columns)


# =============================================================================
# Persistence
# =============================================================================

def calculate_hurst_exponent(
    closes: ArrayLike,
    min_period: int = 10,
    max_period: int = 100
) -> HurstResult:
    """
    Estimate the Hurst exponent with rescaled-range (R/S) analysis.

    The exponent is the slope of log(R/S) against log(period) for periods
    min_period, min_period + 5, ..., max_period.

    Returns:
        HurstResult; 0.5 with interpretation 'insufficient_data' when fewer
        than max_period prices or fewer than two usable periods are available
    """
    prices = np.asarray(closes, dtype=float)

    if prices.size < max_period:
        return HurstResult(0.5, 'insufficient_data', 0.0, 0)

    log_periods = []
    log_ranges = []
    for period in range(min_period, max_period + 1, 5):
        rs = _rescaled_range(prices, period)
        if rs > 0:
            log_periods.append(math.log(period))
            log_ranges.append(math.log(rs))

    if len(log_periods) < 2:
        return HurstResult(0.5, 'insufficient_data', 0.0, len(log_periods))

    hurst = float(stats.linregress(log_periods, log_ranges).slope)

    if hurst > 0.55:
        interpretation = 'persistent'
    elif hurst < 0.45:
        interpretation = 'anti_persistent'
    else:
        interpretation = 'random_walk'

    sample_factor = min(1.0, len(log_periods) / 20)
    confidence = min(100.0, abs(hurst - 0.5) * 200 * sample_factor)

    return HurstResult(hurst, interpretation, confidence, len(log_periods))


def _rescaled_range(prices: np.ndarray, period: int) -> float:
    """Average R/S statistic over consecutive segments of length period."""
    segments = prices.size // period
    values = []

    for s in range(segments):
        segment_returns = simple_returns(prices[s * period:(s + 1) * period])
        if segment_returns.size == 0:
            continue

        deviations = np.cumsum(segment_returns - np.mean(segment_returns))
        value_range = float(np.max(deviations) - np.min(deviations))
        sd = stddev(segment_returns)
        if sd > 0:
            values.append(value_range / sd)

    return float(np.mean(values)) if values else 0.0


# Helper functions

def _finite(value) -> float:
    value = float(value)
    return value if math.isfinite(value) else 0.0


def _as_array(values: ArrayLike) -> np.ndarray:
    """Convert to a float array and drop NaN / inf values."""
    if isinstance(values, pd.Series):
        values = values.to_numpy(dtype=float)
    arr = np.asarray(values, dtype=float).ravel()
    return arr[np.isfinite(arr)]


def _as_pair(xs: ArrayLike, ys: ArrayLike):
    """Convert two aligned series; (None, None) if lengths differ or any value is not finite."""
    x = np.asarray(xs, dtype=float).ravel()
    y = np.asarray(ys, dtype=float).ravel()
    if x.size != y.size:
        return None, None
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        return None, None
    return x, y


def _lookup(table, confidence_level: float, default: float) -> float:
    return table.get(round(float(confidence_level), 4), default)
