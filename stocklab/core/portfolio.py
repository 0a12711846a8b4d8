# stocklab/core/portfolio.py
"""
Single-symbol cash and share accounting for the backtest engine.
"""

import datetime as dt
import logging
from dataclasses import dataclass, field

from ..models.results import EquityPoint, Trade, TradeType


logger = logging.getLogger(__name__)

CASH_EPSILON = 1e-9


@dataclass
class Portfolio:
    """
    Cash plus a whole-share position in one symbol.

    Peak equity starts at the initial cash and never decreases.
    """
    initial_cash: float
    cash: float = field(init=False)
    shares: int = field(default=0, init=False)
    peak_equity: float = field(init=False)

    def __post_init__(self):
        self.cash = self.initial_cash
        self.peak_equity = self.initial_cash

    @property
    def is_flat(self) -> bool:
        return self.shares == 0

    def equity(self, price: float) -> float:
        """cash + shares * price."""
        return self.cash + self.shares * price

    def buy(self, date: dt.date, price: float, shares: int, reason: str = "") -> Trade:
        """
        Buy whole shares at price.

        Raises:
            ValueError: If the purchase exceeds available cash
        """
        cost = shares * price
        if shares <= 0 or cost > self.cash + CASH_EPSILON:
            raise ValueError(f"Cannot buy {shares} shares at {price} with cash {self.cash}")

        self.cash = max(self.cash - cost, 0.0)
        self.shares += shares
        logger.debug(f"{date} BUY {shares} @ {price:.2f}, cash {self.cash:.2f}")
        return Trade(date=date, type=TradeType.BUY, price=price, shares=shares, value=cost, reason=reason)

    def sell_all(self, date: dt.date, price: float, reason: str = "") -> Trade:
        """Liquidate the whole position at price."""
        shares = self.shares
        proceeds = shares * price
        self.cash += proceeds
        self.shares = 0
        logger.debug(f"{date} SELL {shares} @ {price:.2f}, cash {self.cash:.2f}")
        return Trade(date=date, type=TradeType.SELL, price=price, shares=shares, value=proceeds, reason=reason)

    def mark(self, date: dt.date, close: float) -> EquityPoint:
        """Record end-of-bar equity and drawdown from the running peak."""
        position = self.shares * close
        equity = self.cash + position
        self.peak_equity = max(self.peak_equity, equity)
        drawdown = (self.peak_equity - equity) / self.peak_equity if self.peak_equity > 0 else 0.0
        return EquityPoint(
            date=date,
            equity=equity,
            cash=self.cash,
            position=position,
            drawdown=drawdown,
        )
