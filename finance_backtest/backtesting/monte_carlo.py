"""
Monte Carlo Simulation Module

Estimates the distribution of a strategy's total return by re-running the
backtest on bootstrap resamples of the bars (drawn with replacement, kept in
draw order).

All resample indices are drawn from one seeded numpy Generator before any run
is dispatched, so a seeded simulation gives the same result for any n_jobs.

Example:
    >>> runner = MonteCarloRunner(BacktestEngine(), iterations=500, seed=7)
    >>> result = runner.run(BuyAndHoldStrategy(), bars)
    >>> print(f"5th percentile: {result.percentiles[5]:.2%}")
    >>> print(f"P(loss): {result.probability_of_loss:.1%}")
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

import numpy as np
from joblib import Parallel, delayed

from finance_backtest.backtesting.cancellation import CancellationToken
from finance_backtest.backtesting.engine import BacktestEngine
from finance_backtest.backtesting.models import PriceBar
from finance_backtest.config.load_config import get_backtest_config
from finance_backtest.exceptions import ConfigurationError

PERCENTILES = (5, 25, 50, 75, 95)


@dataclass(frozen=True)
class MonteCarloResult:
    """
    Distribution of total returns over bootstrap resamples.

    Attributes:
        iterations: Number of simulated runs
        mean_return: Mean total return
        std_dev: Population standard deviation of total returns
        percentiles: {5, 25, 50, 75, 95} -> sorted_returns[int(n * p / 100)]
        probability_of_loss: Fraction of runs with a negative total return
        worst_case, best_case: Extremes of the total return
        all_results: Sorted total returns
    """
    iterations: int
    mean_return: float
    std_dev: float
    percentiles: Dict[int, float]
    probability_of_loss: float
    worst_case: float
    best_case: float
    all_results: Tuple[float, ...]


class MonteCarloRunner:
    """
    Bootstrap Monte Carlo simulation of a strategy.

    Attributes:
        engine: Template engine; every run uses engine.spawn()
        iterations: Number of resampled runs
        seed: Seed for resampling (None for non-deterministic)
        n_jobs: joblib workers
    """

    def __init__(
        self,
        engine: BacktestEngine,
        iterations: Optional[int] = None,
        seed: Optional[int] = None,
        n_jobs: Optional[int] = None,
        config: Optional[Dict] = None
    ):
        """
        Initialize Monte Carlo runner.

        Raises:
            ConfigurationError: If iterations is not a positive integer
        """
        self.logger = logging.getLogger(__name__)
        self.engine = engine

        backtest_config = get_backtest_config(config if config is not None else engine.config)
        mc_config = backtest_config.get('monte_carlo', {}) or {}
        parallel_config = backtest_config.get('parallel', {}) or {}

        if iterations is None:
            iterations = mc_config.get('iterations', 1000)
        if n_jobs is None:
            n_jobs = parallel_config.get('n_jobs', 1)
        if seed is None:
            seed = backtest_config.get('random_seed')

        if not isinstance(iterations, int) or iterations < 1:
            raise ConfigurationError(f"iterations must be a positive integer, got {iterations!r}")

        self.iterations = iterations
        self.seed = seed
        self.n_jobs = n_jobs

    def run(
        self,
        strategy,
        bars: Sequence[PriceBar],
        parameters: Optional[Mapping[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> MonteCarloResult:
        """
        Run the simulation.

        Args:
            strategy: Strategy to evaluate
            bars: Historical bars to resample
            parameters: Strategy parameters for every run
            cancel_token: Optional token checked between runs

        Returns:
            MonteCarloResult

        Raises:
            BacktestCancelled: If cancel_token is cancelled
        """
        bars = list(bars)
        n_bars = len(bars)

        rng = np.random.default_rng(self.seed)
        if n_bars == 0:
            self.logger.warning("No bars supplied for Monte Carlo simulation")
            samples = [np.empty(0, dtype=int) for _ in range(self.iterations)]
        else:
            samples = [rng.integers(0, n_bars, size=n_bars) for _ in range(self.iterations)]

        self.logger.info(
            f"Running Monte Carlo simulation: {self.iterations} iterations over {n_bars} bars"
        )

        returns = Parallel(n_jobs=self.n_jobs, prefer="threads")(
            delayed(self._run_sample)(strategy, [bars[i] for i in indices], parameters, cancel_token)
            for indices in samples
        )

        result = self.summarize(returns)

        self.logger.info(
            f"Monte Carlo complete: mean_return={result.mean_return:.2%}, "
            f"P(loss)={result.probability_of_loss:.1%}"
        )

        return result

    @staticmethod
    def summarize(returns: Sequence[float]) -> MonteCarloResult:
        """Distribution statistics of simulated total returns."""
        ordered = np.sort(np.asarray(returns, dtype=float))
        count = ordered.size

        return MonteCarloResult(
            iterations=count,
            mean_return=float(ordered.mean()),
            std_dev=float(ordered.std()),
            percentiles={p: float(ordered[count * p // 100]) for p in PERCENTILES},
            probability_of_loss=float(np.count_nonzero(ordered < 0)) / count,
            worst_case=float(ordered[0]),
            best_case=float(ordered[-1]),
            all_results=tuple(float(r) for r in ordered)
        )

    def _run_sample(self, strategy, sample, parameters, cancel_token) -> float:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        return self.engine.spawn().run(strategy, sample, parameters, cancel_token).total_return
