"""Cooperative cancellation for long backtest sweeps."""

import threading

from finance_backtest.exceptions import BacktestCancelled


class CancellationToken:
    """
    Thread-safe cancellation flag.

    The engine checks the token between bars and the walk-forward / Monte
    Carlo runners check it between runs.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise BacktestCancelled("Backtest cancelled")
