"""
Pytest configuration file with shared fixtures for all tests.

Provides common test data, scripted strategy doubles and helper functions used
across unit and integration tests.
"""

import logging
from typing import Callable, Dict, List, Mapping, Optional, Sequence
from unittest.mock import Mock

import numpy as np
import pandas as pd
import pytest

from finance_backtest.backtesting.models import PriceBar, Signal

# Disable logging during tests to reduce noise
logging.disable(logging.CRITICAL)

# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def sample_config() -> Dict:
    """
    Provide test configuration dictionary.

    Mirrors config/config.yaml with small walk-forward and Monte Carlo
    settings for fast tests.
    """
    return {
        "backtesting": {
            "initial_capital": 100000.0,
            "commission": 0.001,
            "slippage": 0.0005,
            "periods_per_year": 252,
            "risk_free_rate": 0.0,
            "position_sizing": {
                "default_method": "fixed_dollar",
                "default_value": 10000,
                "kelly": {
                    "win_rate": 0.6,
                    "avg_win": 0.1,
                    "avg_loss": 0.05,
                    "max_fraction": 0.25,
                },
                "volatility": {
                    "volatility": 0.2,
                    "target_volatility": 0.1,
                    "base_fraction": 0.1,
                },
            },
            "walk_forward": {
                "training_window": 10,
                "testing_window": 5,
                "step": 5,
                "n_candidates": 4,
                "min_drawdown": 0.01,
            },
            "monte_carlo": {"iterations": 20},
            "parallel": {"n_jobs": 1},
            "random_seed": None,
        },
        "logging": {
            "level": "WARNING",
            "log_file": None,
        },
    }


# =============================================================================
# Price Bar Fixtures
# =============================================================================


def make_bars(
    closes: Sequence[float],
    symbol: Optional[str] = None,
    start: str = "2024-01-01"
) -> List[PriceBar]:
    """Build daily PriceBars whose open/high/low equal the close."""
    dates = pd.date_range(start, periods=len(closes), freq="D")
    return [
        PriceBar(date=d, open=c, high=c, low=c, close=float(c), volume=1000.0, symbol=symbol)
        for d, c in zip(dates, closes)
    ]


@pytest.fixture
def bar_factory() -> Callable[..., List[PriceBar]]:
    """Provide make_bars to tests."""
    return make_bars


@pytest.fixture
def scenario_bars() -> List[PriceBar]:
    """Five bars with closes [100, 102, 101, 105, 103]."""
    return make_bars([100, 102, 101, 105, 103])


@pytest.fixture
def random_walk_bars() -> List[PriceBar]:
    """
    Provide 300 daily bars from a seeded geometric random walk.

    Drift and volatility are large enough to produce moving average
    crossovers in both directions.
    """
    rng = np.random.default_rng(42)
    log_returns = rng.normal(0.0003, 0.015, size=300)
    closes = 100 * np.exp(np.cumsum(log_returns))
    return make_bars(closes)


@pytest.fixture
def sample_price_frame() -> pd.DataFrame:
    """Provide an OHLCV DataFrame with a DatetimeIndex and upper-case columns."""
    rng = np.random.default_rng(7)
    close = 50 * np.exp(np.cumsum(rng.normal(0, 0.01, size=120)))
    index = pd.date_range("2023-01-02", periods=120, freq="B")
    return pd.DataFrame(
        {
            "Open": close * 0.999,
            "High": close * 1.01,
            "Low": close * 0.99,
            "Close": close,
            "Volume": rng.integers(1000, 5000, size=120),
        },
        index=index,
    )


# =============================================================================
# Strategy Doubles
# =============================================================================


@pytest.fixture
def scripted_strategy() -> Callable[..., Mock]:
    """
    Provide a factory for strategy mocks that emit signals by bar index.

    Usage:
        strategy = scripted_strategy({0: [Signal('buy', 'TEST', quantity=10)]})
    """

    def factory(
        script: Mapping[int, List[Signal]],
        parameter_ranges: Optional[Dict] = None
    ) -> Mock:
        strategy = Mock()
        strategy.name = "scripted"
        strategy.get_signals.side_effect = (
            lambda bars, parameters=None: list(script.get(len(bars) - 1, []))
        )
        strategy.get_parameter_ranges.return_value = parameter_ranges or {}
        return strategy

    return factory
