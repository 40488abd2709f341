"""Configuration loading and logging setup."""

from finance_backtest.config.load_config import (
    load_config,
    setup_logging,
    get_config,
    reset_config,
    get_backtest_config
)

__all__ = [
    'load_config',
    'setup_logging',
    'get_config',
    'reset_config',
    'get_backtest_config'
]
