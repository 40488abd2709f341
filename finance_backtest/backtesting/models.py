"""
Backtest Data Model

Typed records exchanged between the strategy, the engine, the order executor
and the performance reporter:
- PriceBar: One OHLCV observation (immutable, owned by the caller)
- Signal: A buy/sell request emitted by a strategy
- Position: Holdings for one symbol (mutated only by OrderExecutor)
- Trade: Executed fill, appended to the trade log
- EquityPoint: Portfolio valuation after each bar
- BacktestResult: Aggregate output of a run
- ParameterRange: Search range for one strategy parameter
"""

import math
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from finance_backtest.analytics.risk_metrics import DrawdownResult
from finance_backtest.exceptions import ConfigurationError

BUY = 'buy'
SELL = 'sell'
VALID_ACTIONS = (BUY, SELL)

_STEP_EPSILON = 1e-9


def whole_quantity(value: Any) -> int:
    """
    Share count as an int.

    Raises:
        ConfigurationError: If value is not a finite whole number (3.0 is accepted)
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Quantity must be a whole number, got {value!r}") from None
    if not math.isfinite(number) or not number.is_integer():
        raise ConfigurationError(f"Quantity must be a whole number, got {value!r}")
    return int(number)


@dataclass(frozen=True)
class PriceBar:
    """
    One OHLCV price bar.

    Attributes:
        date: Bar timestamp (datetime, pandas Timestamp or ISO string)
        open, high, low, close: Prices for the period
        volume: Traded volume
        symbol: Optional symbol; untagged bars price every held symbol
    """
    date: Any
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    symbol: Optional[str] = None


@dataclass(frozen=True)
class Signal:
    """
    Trading signal produced by a strategy for the current bar.

    quantity bypasses position sizing when set. Sell signals without a
    quantity close the whole position. The remaining optional fields feed the
    kelly_criterion and volatility_adjusted sizing methods.
    """
    action: str
    symbol: str
    quantity: Optional[int] = None
    sizing_method: Optional[str] = None
    sizing_value: Optional[float] = None
    reason: str = 'strategy_signal'
    win_rate: Optional[float] = None
    avg_win: Optional[float] = None
    avg_loss: Optional[float] = None
    volatility: Optional[float] = None
    target_volatility: Optional[float] = None

    def __post_init__(self):
        if self.action not in VALID_ACTIONS:
            raise ConfigurationError(
                f"Unknown signal action: {self.action!r}. Use 'buy' or 'sell'"
            )
        if self.quantity is not None:
            quantity = whole_quantity(self.quantity)
            if quantity < 0:
                raise ConfigurationError(f"Signal quantity must be non-negative, got {self.quantity}")
            object.__setattr__(self, 'quantity', quantity)


@dataclass
class Position:
    """Open long position in one symbol."""
    symbol: str
    quantity: int
    average_cost: float

    @property
    def cost_basis(self) -> float:
        return self.quantity * self.average_cost


@dataclass(frozen=True)
class Trade:
    """
    Executed trade record.

    Attributes:
        date: Bar date of the fill
        symbol: Traded symbol
        action: 'buy' or 'sell'
        quantity: Shares filled
        execution_price: Close adjusted for slippage
        gross_amount: quantity * execution_price
        commission: Commission charged on gross_amount
        net_amount: Cash moved (gross + commission for buys, gross - commission for sells)
        realized_pnl: (execution_price - average_cost) * quantity, sells only
        cost_basis: Average cost of the position sold, sells only
        reason: Strategy-supplied reason
    """
    date: Any
    symbol: str
    action: str
    quantity: int
    execution_price: float
    gross_amount: float
    commission: float
    net_amount: float
    realized_pnl: Optional[float] = None
    cost_basis: Optional[float] = None
    reason: str = 'strategy_signal'


@dataclass(frozen=True)
class EquityPoint:
    """Portfolio valuation after processing one bar."""
    date: Any
    total_value: float
    cash: float
    positions_snapshot: Tuple[Position, ...] = ()


@dataclass(frozen=True)
class BacktestResult:
    """
    Dataclass encapsulating backtest results.

    Attributes:
        initial_capital: Starting capital
        final_capital: Portfolio value after the last bar
        final_cash: Cash after the last bar
        total_return: (final_capital - initial_capital) / initial_capital
        annualized_return: CAGR using periods / periods_per_year
        max_drawdown: Drawdown of the equity curve
        sharpe_ratio: Annualized Sharpe ratio of period returns
        sortino_ratio: Annualized Sortino ratio of period returns
        volatility: Annualized volatility of period returns
        win_rate: Winning sells / sells with realized P&L
        profit_factor: |avg_win * wins| / |avg_loss * losses|
        total_trades: Trades with realized P&L (closed trades)
        winning_trades, losing_trades: Counts of profitable / losing sells
        avg_win, avg_loss: Mean realized P&L of winners / losers
        largest_win, largest_loss: Extremes of realized P&L
        total_commission: Commission paid over the run
        start_date, end_date: First and last bar dates
        equity_curve: One EquityPoint per bar
        trades: Trade log in execution order
        final_positions: Positions open at the end
        parameters: Strategy parameters used for the run
    """
    initial_capital: float
    final_capital: float
    final_cash: float
    total_return: float
    annualized_return: float
    max_drawdown: DrawdownResult
    sharpe_ratio: float
    sortino_ratio: float
    volatility: float
    win_rate: float
    profit_factor: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float
    largest_win: float
    largest_loss: float
    total_commission: float
    start_date: Any
    end_date: Any
    equity_curve: Tuple[EquityPoint, ...] = ()
    trades: Tuple[Trade, ...] = ()
    final_positions: Tuple[Position, ...] = ()
    parameters: Mapping[str, Any] = field(default_factory=dict)

    @property
    def total_return_percent(self) -> float:
        return self.total_return * 100

    @property
    def metrics(self) -> Dict[str, float]:
        """Flat dictionary of scalar performance metrics."""
        return {
            'total_return': self.total_return,
            'annualized_return': self.annualized_return,
            'max_drawdown': self.max_drawdown.max_drawdown,
            'sharpe_ratio': self.sharpe_ratio,
            'sortino_ratio': self.sortino_ratio,
            'volatility': self.volatility,
            'win_rate': self.win_rate,
            'profit_factor': self.profit_factor,
            'total_trades': self.total_trades,
            'winning_trades': self.winning_trades,
            'losing_trades': self.losing_trades,
            'avg_win': self.avg_win,
            'avg_loss': self.avg_loss,
            'largest_win': self.largest_win,
            'largest_loss': self.largest_loss,
            'total_commission': self.total_commission
        }

    def equity_frame(self) -> pd.DataFrame:
        """Equity curve as a DataFrame indexed by date."""
        if not self.equity_curve:
            return pd.DataFrame(columns=['total_value', 'cash', 'positions_value'])

        return pd.DataFrame(
            {
                'total_value': [p.total_value for p in self.equity_curve],
                'cash': [p.cash for p in self.equity_curve],
                'positions_value': [p.total_value - p.cash for p in self.equity_curve]
            },
            index=pd.Index([p.date for p in self.equity_curve], name='date')
        )

    def trades_frame(self) -> pd.DataFrame:
        """Trade log as a DataFrame, one row per trade."""
        columns = [
            'date', 'symbol', 'action', 'quantity', 'execution_price',
            'gross_amount', 'commission', 'net_amount', 'realized_pnl',
            'cost_basis', 'reason'
        ]
        return pd.DataFrame([asdict(t) for t in self.trades], columns=columns)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable structure for persistence collaborators."""
        result = asdict(self)
        result['parameters'] = dict(self.parameters)
        return result


@dataclass(frozen=True)
class ParameterRange:
    """
    Inclusive numeric range searched by walk-forward optimization.

    Candidate values are min, min + step, ... up to max.
    """
    min: float
    max: float
    step: float = 1

    def __post_init__(self):
        for name in ('min', 'max', 'step'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ConfigurationError(f"Parameter range {name} must be a finite number, got {value!r}")
        if self.step <= 0:
            raise ConfigurationError(f"Parameter range step must be positive, got {self.step}")
        if self.min > self.max:
            raise ConfigurationError(
                f"Parameter range min ({self.min}) must not exceed max ({self.max})"
            )

    @property
    def n_steps(self) -> int:
        return int(math.floor((self.max - self.min) / self.step + _STEP_EPSILON))

    def value_at(self, k: int) -> Union[int, float]:
        """k-th candidate value, kept integral when the range is integral."""
        value = self.min + k * self.step
        if all(isinstance(v, int) for v in (self.min, self.max, self.step)):
            return int(value)
        return float(value)

    def values(self) -> List[Union[int, float]]:
        return [self.value_at(k) for k in range(self.n_steps + 1)]

    @classmethod
    def from_value(cls, value: Any) -> 'ParameterRange':
        """
        Build a range from a ParameterRange, a {'min', 'max', 'step'} mapping or
        a (min, max[, step]) sequence.

        Raises:
            ConfigurationError: If the value cannot describe a range
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, Mapping):
            if 'min' not in value or 'max' not in value:
                raise ConfigurationError(f"Parameter range needs 'min' and 'max': {value!r}")
            return cls(value['min'], value['max'], value.get('step', 1))
        if isinstance(value, (list, tuple)) and len(value) in (2, 3):
            return cls(*value)
        raise ConfigurationError(f"Malformed parameter range: {value!r}")


def bars_from_frame(
    data: pd.DataFrame,
    symbol: Optional[str] = None
) -> List[PriceBar]:
    """
    Convert an OHLCV DataFrame into PriceBars.

    Args:
        data: DataFrame with open/high/low/close/volume columns (case-insensitive)
            and either a DatetimeIndex or a 'date' column. A single 'price'
            column is accepted in place of OHLC.
        symbol: Optional symbol to tag every bar with

    Returns:
        PriceBars sorted by date

    Raises:
        ValueError: If no close/price column is present
    """
    frame = data.rename(columns=str.lower)

    if 'date' in frame.columns:
        frame = frame.sort_values('date')
        dates = list(frame['date'])
    else:
        frame = frame.sort_index()
        dates = list(frame.index)

    if 'close' in frame.columns:
        close = frame['close']
    elif 'price' in frame.columns:
        close = frame['price']
    else:
        raise ValueError("data must contain a 'close' or 'price' column")

    def column(name: str) -> Sequence[float]:
        return frame[name] if name in frame.columns else close

    volume = frame['volume'] if 'volume' in frame.columns else [0.0] * len(frame)

    return [
        PriceBar(
            date=d,
            open=float(o),
            high=float(h),
            low=float(lo),
            close=float(c),
            volume=float(v),
            symbol=symbol
        )
        for d, o, h, lo, c, v in zip(
            dates, column('open'), column('high'), column('low'), close, volume
        )
    ]
