"""
Backtesting Engine Module

Implements the event-driven backtesting loop for strategy evaluation with
commission and slippage.

The engine simulates portfolio management by:
- Replaying bars chronologically and asking the strategy for signals with only
  the bars seen so far
- Sizing buy signals (PositionSizer) and executing orders (OrderExecutor)
- Tracking cash and marking positions to their last seen close
- Recording one EquityPoint per bar
- Handing the equity curve and trade log to PerformanceReporter

Example:
    >>> from finance_backtest.backtesting import BacktestEngine
    >>> from finance_backtest.strategies import MovingAverageCrossoverStrategy
    >>>
    >>> engine = BacktestEngine(initial_capital=100000)
    >>> strategy = MovingAverageCrossoverStrategy()
    >>> result = engine.run(strategy, bars, parameters={'fast_window': 10, 'slow_window': 30})
    >>>
    >>> print(f"Total Return: {result.total_return:.2%}")
    >>> print(f"Sharpe Ratio: {result.sharpe_ratio:.2f}")
    >>> print(f"Max Drawdown: {result.max_drawdown.max_drawdown:.2%}")
"""

import logging
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd

from finance_backtest.analytics.risk_metrics import TRADING_DAYS_PER_YEAR
from finance_backtest.backtesting.cancellation import CancellationToken
from finance_backtest.backtesting.execution import OrderExecutor
from finance_backtest.backtesting.metrics import PerformanceReporter
from finance_backtest.backtesting.models import (
    BUY,
    BacktestResult,
    EquityPoint,
    Position,
    PriceBar,
    Signal,
    Trade,
    bars_from_frame
)
from finance_backtest.backtesting.sizing import PositionSizer
from finance_backtest.config.load_config import get_backtest_config, get_config
from finance_backtest.exceptions import ConfigurationError


class BacktestEngine:
    """
    Event-driven backtesting engine for strategy evaluation.

    One engine runs one backtest at a time; use spawn() to get an independent
    engine with the same settings for concurrent runs.

    Attributes:
        config: Configuration dictionary
        initial_capital: Starting cash for every run
        periods_per_year: Periods per year used to annualize metrics
        risk_free_rate: Annual risk-free rate for the Sharpe ratio
        position_sizer: PositionSizer for buy signals
        executor: OrderExecutor owning positions and the trade log
        reporter: PerformanceReporter building the result
        cash: Current cash balance
        equity_curve: EquityPoints recorded so far
        last_prices: Last seen close per symbol
        logger: Logger instance
    """

    def __init__(
        self,
        initial_capital: Optional[float] = None,
        commission: Optional[float] = None,
        slippage: Optional[float] = None,
        config: Optional[Dict] = None,
        position_sizer: Optional[PositionSizer] = None
    ):
        """
        Initialize backtesting engine.

        Unset arguments fall back to the 'backtesting' configuration section.

        Args:
            initial_capital: Starting capital
            commission: Commission rate as a fraction of trade value
            slippage: Slippage rate as a fraction of the close
            config: Optional configuration dictionary
            position_sizer: Optional PositionSizer (built from config if None)

        Raises:
            ConfigurationError: If initial capital is not positive or a rate is negative
        """
        self.logger = logging.getLogger(__name__)

        if config is None:
            config = get_config()
        self.config = config

        self.backtest_config = get_backtest_config(config)

        if initial_capital is None:
            initial_capital = self.backtest_config.get('initial_capital', 100000.0)
        if commission is None:
            commission = self.backtest_config.get('commission', 0.001)
        if slippage is None:
            slippage = self.backtest_config.get('slippage', 0.0005)

        if initial_capital <= 0:
            raise ConfigurationError(f"initial_capital must be positive, got {initial_capital}")

        self.initial_capital = float(initial_capital)
        self.periods_per_year = self.backtest_config.get('periods_per_year', TRADING_DAYS_PER_YEAR)
        self.risk_free_rate = self.backtest_config.get('risk_free_rate', 0.0)

        if position_sizer is None:
            position_sizer = PositionSizer(config)
        self.position_sizer = position_sizer

        self.executor = OrderExecutor(commission=commission, slippage=slippage)
        self.reporter = PerformanceReporter(
            periods_per_year=self.periods_per_year,
            risk_free_rate=self.risk_free_rate
        )

        self.cash = self.initial_capital
        self.equity_curve: List[EquityPoint] = []
        self.last_prices: Dict[str, float] = {}

        self.logger.debug(
            f"BacktestEngine initialized: initial_capital=${self.initial_capital:,.0f}, "
            f"commission={commission:.4%}, slippage={slippage:.4%}"
        )

    @property
    def positions(self) -> Dict[str, Position]:
        return self.executor.positions

    @property
    def trades(self) -> List[Trade]:
        return self.executor.trades

    def spawn(self) -> 'BacktestEngine':
        """Return a fresh engine with identical settings for an isolated run."""
        return BacktestEngine(
            initial_capital=self.initial_capital,
            commission=self.executor.commission,
            slippage=self.executor.slippage,
            config=self.config,
            position_sizer=self.position_sizer
        )

    def run(
        self,
        strategy,
        bars: Union[Sequence[PriceBar], pd.DataFrame],
        parameters: Optional[Mapping[str, Any]] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> BacktestResult:
        """
        Execute backtest simulation.

        Args:
            strategy: Object implementing get_signals(bars_so_far, parameters)
            bars: Chronologically ordered PriceBars (or an OHLCV DataFrame)
            parameters: Strategy parameters passed to every get_signals call
            cancel_token: Optional token checked before each bar

        Returns:
            BacktestResult; a flat result if there are no bars

        Raises:
            ConfigurationError: If a signal names an unknown sizing method
            BacktestCancelled: If cancel_token is cancelled mid-run
        """
        if isinstance(bars, pd.DataFrame):
            bars = bars_from_frame(bars)
        bars = list(bars)
        parameters = dict(parameters or {})
        strategy_name = getattr(strategy, 'name', type(strategy).__name__)

        self.reset()

        if not bars:
            self.logger.warning(f"No bars supplied for {strategy_name}, returning flat result")
            return self.reporter.build(self.initial_capital, [], [], [], parameters)

        self.logger.info(
            f"Starting backtest: strategy={strategy_name}, "
            f"{bars[0].date} to {bars[-1].date} ({len(bars)} bars)"
        )

        for i, bar in enumerate(bars):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            if bar.symbol is not None:
                self.last_prices[bar.symbol] = bar.close

            signals = strategy.get_signals(bars[:i + 1], parameters) or []
            for signal in signals:
                self._process_signal(signal, bar)

            # Untagged bars price every open position
            if bar.symbol is None:
                for symbol in self.positions:
                    self.last_prices[symbol] = bar.close

            self.equity_curve.append(EquityPoint(
                date=bar.date,
                total_value=self.calculate_portfolio_value(),
                cash=self.cash,
                positions_snapshot=tuple(replace(p) for p in self.positions.values())
            ))

        result = self.reporter.build(
            initial_capital=self.initial_capital,
            equity_curve=self.equity_curve,
            trades=self.trades,
            final_positions=[replace(p) for p in self.positions.values()],
            parameters=parameters
        )

        self.logger.info(
            f"Backtest complete: total_return={result.total_return:.2%}, "
            f"final_capital=${result.final_capital:,.0f}, trades={len(result.trades)}"
        )

        return result

    def _process_signal(self, signal: Signal, bar: PriceBar):
        """
        Size and execute one signal against the current bar.

        Rejected orders leave cash, positions and the trade log untouched.
        """
        execution_bar = self._execution_bar(signal, bar)
        if execution_bar is None:
            return

        if signal.action == BUY:
            quantity = self.position_sizer.size(signal, self.cash, execution_bar.close)
            self.cash = self.executor.buy(signal, execution_bar, self.cash, quantity)
        else:
            self.cash = self.executor.sell(signal, execution_bar, self.cash, signal.quantity)

        self.last_prices[signal.symbol] = execution_bar.close

    def _execution_bar(self, signal: Signal, bar: PriceBar) -> Optional[PriceBar]:
        """
        Bar to fill a signal against.

        A signal for another symbol than a tagged bar's fills at that symbol's
        last seen close; a symbol never seen is not tradable.
        """
        if bar.symbol is None or bar.symbol == signal.symbol:
            return bar

        last_price = self.last_prices.get(signal.symbol)
        if last_price is None:
            self.logger.warning(
                f"Signal rejected: no price seen for {signal.symbol} as of {bar.date}"
            )
            return None

        return replace(bar, close=last_price, symbol=signal.symbol)

    def calculate_portfolio_value(self, prices: Optional[Mapping[str, float]] = None) -> float:
        """
        Calculate current portfolio value (mark-to-market).

        Args:
            prices: Optional {symbol: price}; defaults to last seen closes

        Returns:
            Cash plus the market value of every open position
        """
        if prices is None:
            prices = self.last_prices

        equity = self.cash
        for symbol, position in self.positions.items():
            equity += position.quantity * prices.get(symbol, position.average_cost)

        return equity

    def reset(self):
        """
        Reset engine state for new backtest.
        """
        self.cash = self.initial_capital
        self.executor.reset()
        self.equity_curve = []
        self.last_prices = {}

        self.logger.debug("Engine state reset")
