"""
Walk-Forward Analysis Module

Rolls a training window and a testing window across the data. On each
training slice the strategy's parameters are optimized by random grid search;
the best candidate is then evaluated out of sample on the following testing
slice.

Candidate score is total_return / max(min_drawdown, max_drawdown), so a
candidate with no drawdown is not rewarded without bound.

Example:
    >>> from finance_backtest.backtesting import BacktestEngine, WalkForwardRunner
    >>> from finance_backtest.strategies import MovingAverageCrossoverStrategy
    >>>
    >>> runner = WalkForwardRunner(BacktestEngine(), training_window=252,
    ...                            testing_window=63, step=21, seed=42)
    >>> result = runner.run(MovingAverageCrossoverStrategy(), bars)
    >>> print(f"Consistency: {result.summary.consistency:.0%}")
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed

from finance_backtest.backtesting.cancellation import CancellationToken
from finance_backtest.backtesting.engine import BacktestEngine
from finance_backtest.backtesting.models import BacktestResult, ParameterRange, PriceBar
from finance_backtest.config.load_config import get_backtest_config
from finance_backtest.exceptions import ConfigurationError


@dataclass(frozen=True)
class WalkForwardWindow:
    """One training / testing step of a walk-forward analysis."""
    training_start: Any
    training_end: Any
    testing_start: Any
    testing_end: Any
    optimized_params: Dict[str, Any]
    training_score: float
    test_result: BacktestResult


@dataclass(frozen=True)
class WalkForwardSummary:
    """
    Aggregate of the out-of-sample windows.

    Attributes:
        total_periods: Number of windows
        avg_return: Mean testing total return
        avg_sharpe: Mean testing Sharpe ratio
        avg_max_drawdown: Mean testing max drawdown
        consistency: Fraction of windows with a positive return
        win_rate: Fraction of windows with a positive return
    """
    total_periods: int = 0
    avg_return: float = 0.0
    avg_sharpe: float = 0.0
    avg_max_drawdown: float = 0.0
    consistency: float = 0.0
    win_rate: float = 0.0


@dataclass(frozen=True)
class WalkForwardResult:
    windows: Tuple[WalkForwardWindow, ...]
    summary: WalkForwardSummary


class WalkForwardRunner:
    """
    Walk-forward optimizer and out-of-sample evaluator.

    Attributes:
        engine: Template engine; every run uses engine.spawn()
        training_window: Bars per training slice
        testing_window: Bars per testing slice
        step: Bars to advance between windows
        n_candidates: Random parameter combinations drawn per training slice
        seed: Seed for candidate sampling (None for non-deterministic)
        n_jobs: joblib workers for candidate runs
        min_drawdown: Floor on drawdown in the candidate score
    """

    def __init__(
        self,
        engine: BacktestEngine,
        training_window: Optional[int] = None,
        testing_window: Optional[int] = None,
        step: Optional[int] = None,
        n_candidates: Optional[int] = None,
        seed: Optional[int] = None,
        n_jobs: Optional[int] = None,
        config: Optional[Dict] = None,
        min_drawdown: Optional[float] = None
    ):
        """
        Initialize walk-forward runner.

        Unset arguments fall back to 'backtesting.walk_forward' (and
        'backtesting.parallel' for n_jobs) in the engine's configuration.

        Raises:
            ConfigurationError: If a window, step or candidate count is not positive
        """
        self.logger = logging.getLogger(__name__)
        self.engine = engine

        backtest_config = get_backtest_config(config if config is not None else engine.config)
        wf_config = backtest_config.get('walk_forward', {}) or {}
        parallel_config = backtest_config.get('parallel', {}) or {}

        self.training_window = _setting(training_window, wf_config, 'training_window', 252)
        self.testing_window = _setting(testing_window, wf_config, 'testing_window', 63)
        self.step = _setting(step, wf_config, 'step', 21)
        self.n_candidates = _setting(n_candidates, wf_config, 'n_candidates', 10)
        self.min_drawdown = _setting(min_drawdown, wf_config, 'min_drawdown', 0.01)
        self.n_jobs = _setting(n_jobs, parallel_config, 'n_jobs', 1)
        self.seed = seed if seed is not None else backtest_config.get('random_seed')

        for name in ('training_window', 'testing_window', 'step', 'n_candidates'):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(f"{name} must be a positive integer, got {value!r}")
        if self.min_drawdown <= 0:
            raise ConfigurationError(f"min_drawdown must be positive, got {self.min_drawdown}")

    def run(
        self,
        strategy,
        bars: Sequence[PriceBar],
        cancel_token: Optional[CancellationToken] = None
    ) -> WalkForwardResult:
        """
        Perform walk-forward analysis.

        Windows are produced while start + training_window + testing_window <= len(bars).

        Args:
            strategy: Strategy exposing get_signals and get_parameter_ranges
            bars: Chronologically ordered bars
            cancel_token: Optional token checked between runs

        Returns:
            WalkForwardResult (no windows and an all-zero summary if the data
            is shorter than one training + testing span)

        Raises:
            ConfigurationError: If the strategy's parameter ranges are malformed
            BacktestCancelled: If cancel_token is cancelled
        """
        bars = list(bars)
        ranges = self._parameter_ranges(strategy)
        rng = np.random.default_rng(self.seed)

        windows = []
        start = 0
        while start + self.training_window + self.testing_window <= len(bars):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            training_end = start + self.training_window
            testing_end = training_end + self.testing_window
            training_bars = bars[start:training_end]
            testing_bars = bars[training_end:testing_end]

            candidates = self.generate_parameter_combinations(ranges, rng)
            best_params, best_score = self.optimize(strategy, training_bars, candidates, cancel_token)

            test_result = self.engine.spawn().run(
                strategy, testing_bars, best_params, cancel_token
            )

            windows.append(WalkForwardWindow(
                training_start=training_bars[0].date,
                training_end=training_bars[-1].date,
                testing_start=testing_bars[0].date,
                testing_end=testing_bars[-1].date,
                optimized_params=best_params,
                training_score=best_score,
                test_result=test_result
            ))

            self.logger.info(
                f"Walk-forward window {len(windows)}: params={best_params}, "
                f"train_score={best_score:.4f}, test_return={test_result.total_return:.2%}"
            )

            start += self.step

        if not windows:
            self.logger.warning(
                f"Insufficient data for walk-forward analysis: {len(bars)} bars < "
                f"{self.training_window + self.testing_window}"
            )

        return WalkForwardResult(windows=tuple(windows), summary=self.summarize(windows))

    def generate_parameter_combinations(
        self,
        ranges: Mapping[str, ParameterRange],
        rng: Optional[np.random.Generator] = None
    ) -> List[Dict[str, Any]]:
        """
        Draw up to n_candidates distinct parameter combinations.

        Each parameter takes min + k * step with k uniform over the range's
        steps. Strategies without parameters yield a single empty combination.
        """
        if not ranges:
            return [{}]

        if rng is None:
            rng = np.random.default_rng(self.seed)

        combinations = []
        seen = set()
        for _ in range(self.n_candidates):
            combination = {
                name: param_range.value_at(int(rng.integers(0, param_range.n_steps + 1)))
                for name, param_range in ranges.items()
            }
            key = tuple(sorted(combination.items()))
            if key not in seen:
                seen.add(key)
                combinations.append(combination)

        return combinations

    def optimize(
        self,
        strategy,
        bars: Sequence[PriceBar],
        candidates: Sequence[Dict[str, Any]],
        cancel_token: Optional[CancellationToken] = None
    ) -> Tuple[Dict[str, Any], float]:
        """
        Pick the candidate with the best risk-adjusted training return.

        Ties keep the earlier candidate.

        Returns:
            Tuple of (best parameters, best score)
        """
        results = Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(self._run_candidate)(strategy, bars, params, cancel_token)
            for params in candidates
        )

        best_params: Dict[str, Any] = {}
        best_score = -np.inf
        for params, result in zip(candidates, results):
            score = self.score(result)
            if score > best_score:
                best_score = score
                best_params = dict(params)

        return best_params, float(best_score)

    def score(self, result: BacktestResult) -> float:
        return result.total_return / max(self.min_drawdown, result.max_drawdown.max_drawdown)

    def summarize(self, windows: Sequence[WalkForwardWindow]) -> WalkForwardSummary:
        """Aggregate out-of-sample results across windows."""
        if not windows:
            return WalkForwardSummary()

        returns = [w.test_result.total_return for w in windows]
        profitable = sum(1 for r in returns if r > 0) / len(returns)

        return WalkForwardSummary(
            total_periods=len(windows),
            avg_return=float(np.mean(returns)),
            avg_sharpe=float(np.mean([w.test_result.sharpe_ratio for w in windows])),
            avg_max_drawdown=float(np.mean(
                [w.test_result.max_drawdown.max_drawdown for w in windows]
            )),
            consistency=profitable,
            win_rate=profitable
        )

    def _run_candidate(self, strategy, bars, params, cancel_token) -> BacktestResult:
        return self.engine.spawn().run(strategy, bars, params, cancel_token)

    @staticmethod
    def _parameter_ranges(strategy) -> Dict[str, ParameterRange]:
        raw = strategy.get_parameter_ranges() or {}
        if not isinstance(raw, Mapping):
            raise ConfigurationError(
                f"get_parameter_ranges must return a mapping, got {type(raw).__name__}"
            )
        return {name: ParameterRange.from_value(value) for name, value in raw.items()}


def _setting(value, section: Mapping, key: str, default):
    if value is not None:
        return value
    configured = section.get(key)
    return default if configured is None else configured
