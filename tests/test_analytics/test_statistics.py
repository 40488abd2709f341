"""
Unit tests for the statistics module.

Tests moments, correlation, Value at Risk (historical, parametric, Monte Carlo,
VaR backtesting), Shannon entropy/probability and the Hurst exponent.
"""

import math

import numpy as np
import pandas as pd
import pytest

from finance_backtest.analytics.statistics import (
    backtest_var,
    calculate_historical_var,
    calculate_hurst_exponent,
    calculate_monte_carlo_var,
    calculate_multi_level_var,
    calculate_parametric_var,
    calculate_rolling_shannon_probability,
    calculate_shannon_entropy,
    calculate_shannon_probability,
    correlation,
    covariance,
    get_z_score,
    kurtosis,
    mean,
    simple_returns,
    skewness,
    stddev,
    variance,
)

SCENARIO_RETURNS = [-0.05, -0.03, -0.01, 0.00, 0.01, 0.02, 0.03, 0.04, 0.05, 0.06]


class TestMoments:
    """Test mean, variance and higher moments."""

    def test_mean_and_sample_variance(self):
        values = [1.0, 2.0, 3.0, 4.0]

        assert mean(values) == pytest.approx(2.5)
        assert variance(values) == pytest.approx(np.var(values, ddof=1))
        assert stddev(values) == pytest.approx(np.std(values, ddof=1))

    def test_empty_and_short_input(self):
        assert mean([]) == 0.0
        assert variance([]) == 0.0
        assert variance([5.0]) == 0.0
        assert stddev([5.0]) == 0.0
        assert skewness([1.0, 2.0]) == 0.0
        assert kurtosis([1.0, 2.0, 3.0]) == 0.0

    def test_constant_series_has_zero_dispersion(self):
        values = [0.01] * 50

        assert variance(values) == 0.0
        assert skewness(values) == 0.0
        assert kurtosis(values) == 0.0

    def test_symmetric_series_has_zero_skew(self):
        assert skewness([-2.0, -1.0, 0.0, 1.0, 2.0]) == pytest.approx(0.0, abs=1e-12)

    def test_right_skewed_series(self):
        assert skewness([1.0, 1.0, 1.0, 1.0, 10.0]) > 0

    def test_bias_corrected_moments(self):
        values = [1.0, 2.0, 3.0, 4.0, 10.0]

        # G1 = 36 * sqrt(2) / 30, G2 = ((n + 1) * g2 + 6) * (n - 1) / ((n - 2) * (n - 3))
        assert skewness(values) == pytest.approx(1.2 * np.sqrt(2))
        assert kurtosis(values) == pytest.approx((6 * -0.212 + 6) * 4 / 6)

    def test_accepts_pandas_series_and_drops_nan(self):
        series = pd.Series([1.0, np.nan, 3.0])
        assert mean(series) == pytest.approx(2.0)


class TestCoMovement:
    """Test covariance and correlation boundaries."""

    def test_perfect_correlation(self):
        xs = [1.0, 2.0, 3.0, 4.0, 5.0]
        ys = [2.0, 4.0, 6.0, 8.0, 10.0]

        assert correlation(xs, ys) == pytest.approx(1.0)
        assert correlation(xs, ys[::-1]) == pytest.approx(-1.0)

    def test_covariance_matches_numpy(self):
        xs = [0.01, -0.02, 0.03, 0.0]
        ys = [0.02, -0.01, 0.01, 0.005]

        assert covariance(xs, ys) == pytest.approx(np.cov(xs, ys, ddof=1)[0, 1])

    def test_zero_variance_returns_zero(self):
        assert correlation([1.0, 1.0, 1.0], [1.0, 2.0, 3.0]) == 0.0

    def test_length_mismatch_returns_zero(self):
        assert correlation([1.0, 2.0, 3.0], [1.0, 2.0]) == 0.0
        assert covariance([1.0, 2.0, 3.0], [1.0, 2.0]) == 0.0

    def test_correlation_stays_within_bounds(self):
        rng = np.random.default_rng(0)
        xs = rng.normal(size=100)
        ys = 0.5 * xs + rng.normal(size=100)

        assert -1.0 <= correlation(xs, ys) <= 1.0

    def test_simple_returns_skip_non_positive_previous(self):
        returns = simple_returns([100.0, 110.0, 0.0, 50.0, 55.0])

        np.testing.assert_allclose(returns, [0.1, -1.0, 0.1])


class TestHistoricalVaR:
    """Test historical Value at Risk."""

    def test_scenario_ten_returns_at_95(self):
        result = calculate_historical_var(SCENARIO_RETURNS, confidence_level=0.95)

        assert result.index == 0
        assert result.var == pytest.approx(-0.05)
        assert result.expected_shortfall == pytest.approx(-0.05)
        assert result.sample_size == 10
        assert result.method == 'historical'

    def test_expected_shortfall_averages_tail(self):
        result = calculate_historical_var(SCENARIO_RETURNS, confidence_level=0.80)

        # floor(0.2 * 10) = 2
        assert result.index == 2
        assert result.var == pytest.approx(-0.01)
        assert result.expected_shortfall == pytest.approx((-0.05 - 0.03 - 0.01) / 3)

    def test_index_is_not_shifted_by_rounding(self):
        # (1 - 0.9) * 10 is 0.9999999999999998 in floating point
        result = calculate_historical_var(SCENARIO_RETURNS, confidence_level=0.90)
        assert result.index == 1

    def test_unsorted_input(self):
        shuffled = [0.03, -0.01, 0.06, -0.05, 0.0, 0.02, 0.05, -0.03, 0.04, 0.01]
        assert calculate_historical_var(shuffled, 0.95).var == pytest.approx(-0.05)

    def test_empty_input(self):
        result = calculate_historical_var([], 0.95)

        assert result.var == 0.0
        assert result.expected_shortfall == 0.0
        assert result.sample_size == 0

    def test_multi_level(self):
        results = calculate_multi_level_var(SCENARIO_RETURNS)

        assert set(results) == {0.90, 0.95, 0.99}
        assert results[0.90].var >= results[0.99].var


class TestParametricVaR:
    """Test parametric (normal) Value at Risk."""

    def test_formula(self):
        result = calculate_parametric_var(SCENARIO_RETURNS, confidence_level=0.95)

        expected = mean(SCENARIO_RETURNS) - 1.645 * stddev(SCENARIO_RETURNS)
        assert result.var == pytest.approx(expected)
        assert result.expected_shortfall == pytest.approx(
            mean(SCENARIO_RETURNS) - 2.063 * stddev(SCENARIO_RETURNS)
        )
        assert result.z_score == 1.645

    def test_time_horizon_scales_by_square_root(self):
        one_day = calculate_parametric_var(SCENARIO_RETURNS, 0.99, time_horizon=1)
        four_day = calculate_parametric_var(SCENARIO_RETURNS, 0.99, time_horizon=4)

        mu = mean(SCENARIO_RETURNS)
        assert four_day.var - mu == pytest.approx(2 * (one_day.var - mu))

    def test_z_score_table(self):
        assert get_z_score(0.90) == 1.282
        assert get_z_score(0.975) == 1.960
        assert get_z_score(0.99) == 2.326
        assert get_z_score(0.995) == 2.576
        assert get_z_score(0.80) == 1.645

    def test_empty_input(self):
        result = calculate_parametric_var([], 0.95)
        assert result.var == 0.0
        assert result.sample_size == 0


class TestMonteCarloVaR:
    """Test simulated Value at Risk."""

    def test_seeded_runs_are_reproducible(self):
        first = calculate_monte_carlo_var(SCENARIO_RETURNS, 0.95, simulations=2000, seed=3)
        second = calculate_monte_carlo_var(SCENARIO_RETURNS, 0.95, simulations=2000, seed=3)

        assert first == second
        assert first.method == 'monte_carlo'
        assert first.sample_size == 2000

    def test_close_to_parametric(self):
        simulated = calculate_monte_carlo_var(SCENARIO_RETURNS, 0.95, simulations=50000, seed=1)
        parametric = calculate_parametric_var(SCENARIO_RETURNS, 0.95)

        assert simulated.var == pytest.approx(parametric.var, abs=0.005)


class TestVaRBacktest:
    """Test rolling VaR violation counting."""

    def test_insufficient_data(self):
        result = backtest_var([0.01] * 100, 0.95, window=250)

        assert result.violations is None
        assert result.total_tests == 0

    def test_counts_out_of_sample_violations(self):
        rng = np.random.default_rng(5)
        returns = rng.normal(0, 0.01, size=400)

        result = backtest_var(returns, 0.95, window=250)

        assert result.total_tests == 150
        assert 0 <= result.violations <= 150
        assert result.expected_violations == pytest.approx(7.5)

    def test_violation_compares_next_return(self):
        returns = [0.0] * 300 + [-0.5]
        result = backtest_var(returns, 0.95, window=250)

        assert result.violations == 1


class TestShannon:
    """Test Shannon entropy and probability."""

    def test_entropy_of_ten_distinct_bins(self):
        assert calculate_shannon_entropy(list(range(10))) == pytest.approx(math.log2(10))

    def test_entropy_degenerate_input(self):
        assert calculate_shannon_entropy([]) == 0.0
        assert calculate_shannon_entropy([0.02] * 10) == 0.0

    def test_probability(self):
        result = calculate_shannon_probability([0.01, -0.01, 0.02, 0.03])

        assert result.probability == pytest.approx(0.75)
        assert result.standard_error == pytest.approx(math.sqrt(0.75 * 0.25 / 4))
        assert result.effective_probability == 0.5
        assert result.up_moves == 3
        assert result.down_moves == 1

    def test_effective_probability_with_large_sample(self):
        returns = [0.01] * 800 + [-0.01] * 200
        result = calculate_shannon_probability(returns)

        stderr = math.sqrt(0.8 * 0.2 / 1000)
        assert result.effective_probability == pytest.approx(0.8 - 1.96 * stderr)
        assert 0 <= result.accuracy <= 100

    def test_zero_returns_count_as_down_moves(self):
        result = calculate_shannon_probability([0.0, 0.0, 0.01])
        assert result.probability == pytest.approx(1 / 3)

    def test_empty_input(self):
        result = calculate_shannon_probability([])

        assert result.probability == 0.0
        assert result.effective_probability == 0.5
        assert result.standard_error == 0.0

    def test_rolling_probability(self):
        closes = 100 + np.cumsum(np.tile([1.0, -0.5], 15))
        dates = pd.date_range("2024-01-01", periods=30, freq="D")

        frame = calculate_rolling_shannon_probability(closes, window=20, dates=dates)

        assert len(frame) == 10
        assert frame.index[0] == dates[20]
        assert frame['probability'].between(0, 1).all()

    def test_rolling_probability_short_input(self):
        frame = calculate_rolling_shannon_probability([100.0] * 10, window=20)
        assert frame.empty


class TestHurstExponent:
    """Test rescaled-range Hurst estimation."""

    def test_insufficient_data(self):
        result = calculate_hurst_exponent([100.0] * 50)

        assert result.hurst_exponent == 0.5
        assert result.interpretation == 'insufficient_data'

    def test_random_walk_estimate(self):
        rng = np.random.default_rng(11)
        closes = 100 * np.exp(np.cumsum(rng.normal(0, 0.01, size=2000)))

        result = calculate_hurst_exponent(closes)

        assert 0.0 < result.hurst_exponent < 1.0
        assert result.interpretation in ('persistent', 'anti_persistent', 'random_walk')
        assert result.sample_periods == 19
