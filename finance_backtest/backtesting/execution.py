"""
Order Execution Module

Simulates fills for buy and sell orders against a bar's close with
proportional slippage and commission, and keeps the position ledger and the
trade log.

Per symbol the ledger moves NoPosition -> Long on the first buy, Long -> Long
on further buys or partial sells, and Long -> NoPosition on a full sell.
Orders that would overdraw cash or oversell a position are rejected without
touching cash, the ledger or the trade log.
"""

import logging
from typing import Dict, List, Optional

from finance_backtest.backtesting.models import (
    BUY,
    SELL,
    Position,
    PriceBar,
    Signal,
    Trade,
    whole_quantity
)
from finance_backtest.exceptions import ConfigurationError


class OrderExecutor:
    """
    Order executor with fixed fractional commission and slippage.

    Attributes:
        commission: Commission as a fraction of gross trade value
        slippage: Adverse price move as a fraction of the close
        positions: Open positions {symbol: Position}
        trades: Executed trades in order
    """

    def __init__(self, commission: float = 0.001, slippage: float = 0.0005):
        """
        Initialize order executor.

        Args:
            commission: Commission rate (default 0.1%)
            slippage: Slippage rate (default 0.05%)

        Raises:
            ConfigurationError: If a rate is negative
        """
        if commission < 0 or slippage < 0:
            raise ConfigurationError(
                f"commission and slippage must be non-negative "
                f"(commission={commission}, slippage={slippage})"
            )

        self.logger = logging.getLogger(__name__)
        self.commission = commission
        self.slippage = slippage
        self.positions: Dict[str, Position] = {}
        self.trades: List[Trade] = []

    def reset(self):
        """Clear positions and trade log."""
        self.positions = {}
        self.trades = []

    def held_quantity(self, symbol: str) -> int:
        position = self.positions.get(symbol)
        return position.quantity if position is not None else 0

    def buy(
        self,
        signal: Signal,
        bar: PriceBar,
        cash: float,
        quantity: Optional[int] = None
    ) -> float:
        """
        Execute a buy order.

        execution_price = close * (1 + slippage)
        total_cost = quantity * execution_price * (1 + commission)

        Args:
            signal: Buy signal
            bar: Bar to fill against
            cash: Available cash
            quantity: Shares to buy (defaults to signal.quantity)

        Returns:
            Cash after the trade (unchanged if the order is rejected)

        Raises:
            ConfigurationError: If quantity is not a whole number
        """
        if quantity is None:
            quantity = signal.quantity
        if quantity is not None:
            quantity = whole_quantity(quantity)

        if not quantity or quantity <= 0:
            self.logger.debug(f"Buy rejected: {signal.symbol} non-positive quantity {quantity}")
            return cash

        execution_price = bar.close * (1 + self.slippage)
        gross_amount = quantity * execution_price
        commission = gross_amount * self.commission
        total_cost = gross_amount + commission

        if total_cost > cash:
            self.logger.debug(
                f"Buy rejected: {signal.symbol} {quantity} @ ${execution_price:.4f} "
                f"costs ${total_cost:,.2f}, cash=${cash:,.2f}"
            )
            return cash

        self.trades.append(Trade(
            date=bar.date,
            symbol=signal.symbol,
            action=BUY,
            quantity=quantity,
            execution_price=execution_price,
            gross_amount=gross_amount,
            commission=commission,
            net_amount=total_cost,
            reason=signal.reason
        ))

        position = self.positions.get(signal.symbol)
        if position is None:
            self.positions[signal.symbol] = Position(
                symbol=signal.symbol,
                quantity=quantity,
                average_cost=execution_price
            )
        else:
            new_quantity = position.quantity + quantity
            position.average_cost = (position.cost_basis + gross_amount) / new_quantity
            position.quantity = new_quantity

        self.logger.debug(
            f"Executed buy: {signal.symbol} {quantity} @ ${execution_price:.4f}, "
            f"commission=${commission:.2f}"
        )

        return cash - total_cost

    def sell(
        self,
        signal: Signal,
        bar: PriceBar,
        cash: float,
        quantity: Optional[int] = None
    ) -> float:
        """
        Execute a sell order.

        execution_price = close * (1 - slippage)
        net_proceeds = quantity * execution_price * (1 - commission)
        realized_pnl = (execution_price - average_cost) * quantity

        Args:
            signal: Sell signal
            bar: Bar to fill against
            cash: Available cash
            quantity: Shares to sell (defaults to signal.quantity, then the
                whole position)

        Returns:
            Cash after the trade (unchanged if the order is rejected)

        Raises:
            ConfigurationError: If quantity is not a whole number
        """
        position = self.positions.get(signal.symbol)
        if position is None:
            self.logger.debug(f"Sell rejected: no position in {signal.symbol}")
            return cash

        if quantity is None:
            quantity = signal.quantity if signal.quantity is not None else position.quantity
        quantity = whole_quantity(quantity)

        if quantity <= 0 or quantity > position.quantity:
            self.logger.debug(
                f"Sell rejected: {signal.symbol} quantity {quantity}, held {position.quantity}"
            )
            return cash

        execution_price = bar.close * (1 - self.slippage)
        gross_amount = quantity * execution_price
        commission = gross_amount * self.commission
        net_proceeds = gross_amount - commission
        realized_pnl = (execution_price - position.average_cost) * quantity

        self.trades.append(Trade(
            date=bar.date,
            symbol=signal.symbol,
            action=SELL,
            quantity=quantity,
            execution_price=execution_price,
            gross_amount=gross_amount,
            commission=commission,
            net_amount=net_proceeds,
            realized_pnl=realized_pnl,
            cost_basis=position.average_cost,
            reason=signal.reason
        ))

        position.quantity -= quantity
        if position.quantity <= 0:
            del self.positions[signal.symbol]

        self.logger.debug(
            f"Executed sell: {signal.symbol} {quantity} @ ${execution_price:.4f}, "
            f"commission=${commission:.2f}, pnl=${realized_pnl:+.2f}"
        )

        return cash + net_proceeds
