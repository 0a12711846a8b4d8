# stocklab/models/results.py
"""
Backtest results and performance statistics models.
"""

import datetime as dt
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class TradeType(str, Enum):
    """Trade direction."""
    BUY = "buy"
    SELL = "sell"


class Trade(BaseModel):
    """Executed fill."""
    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(..., description="Execution date")
    type: TradeType = Field(..., description="Buy or sell")
    price: float = Field(..., description="Execution price (bar close)")
    shares: int = Field(..., description="Share count")
    value: float = Field(..., description="price * shares")
    reason: str = Field(default="", description="Strategy or signal label")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'date': self.date.isoformat(),
            'type': self.type.value,
            'price': self.price,
            'shares': self.shares,
            'value': self.value,
            'reason': self.reason,
        }


class RoundTrip(BaseModel):
    """A buy paired with the sell that closed it."""
    model_config = ConfigDict(frozen=True)

    entry_date: dt.date = Field(..., description="Entry date")
    exit_date: dt.date = Field(..., description="Exit date")
    entry_price: float = Field(..., description="Entry price")
    exit_price: float = Field(..., description="Exit price")
    shares: int = Field(..., description="Shares sold")
    profit: float = Field(..., description="(exit - entry) * shares")
    return_pct: float = Field(..., description="Return percentage on entry price")
    holding_days: int = Field(..., description="Calendar days held")

    @property
    def is_win(self) -> bool:
        return self.profit > 0


class EquityPoint(BaseModel):
    """Equity curve point recorded after each bar."""
    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(..., description="Bar date")
    equity: float = Field(..., description="cash + position")
    cash: float = Field(..., description="Cash balance")
    position: float = Field(..., description="Market value of shares held")
    drawdown: float = Field(..., description="Fraction below running peak equity")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'date': self.date.isoformat(),
            'equity': self.equity,
            'cash': self.cash,
            'position': self.position,
            'drawdown': self.drawdown,
        }


class BacktestStats(BaseModel):
    """Summary statistics for a backtest run."""
    model_config = ConfigDict(frozen=True)

    # Returns
    total_return: float = Field(..., description="Final equity minus initial capital")
    total_return_pct: float = Field(..., description="Total return percentage")

    # Trading
    win_rate: float = Field(..., description="Winning round trips percentage")
    num_trades: int = Field(..., description="Completed round trips")
    num_wins: int = Field(..., description="Round trips with profit > 0")
    num_losses: int = Field(..., description="Round trips with profit <= 0")
    profit_factor: float = Field(..., description="Gross profit / gross loss")
    avg_win: float = Field(..., description="Mean winning profit")
    avg_loss: float = Field(..., description="Mean losing profit as a positive magnitude")
    max_trade_return_pct: float = Field(..., description="Best round-trip return percentage")

    # Risk
    max_drawdown: float = Field(..., description="Max drawdown in currency of initial capital")
    max_drawdown_pct: float = Field(..., description="Max drawdown percentage")
    avg_drawdown_pct: float = Field(..., description="Mean drawdown percentage")
    sharpe_ratio: float = Field(..., description="Annualized Sharpe ratio")
    recovery_factor: float = Field(..., description="Total return pct / max drawdown pct")

    # Holding period
    avg_holding_days: float = Field(..., description="Mean holding days")
    holding_days_min: float = Field(..., description="Minimum holding days")
    holding_days_q1: float = Field(..., description="25th percentile holding days")
    holding_days_median: float = Field(..., description="Median holding days")
    holding_days_q3: float = Field(..., description="75th percentile holding days")
    holding_days_max: float = Field(..., description="Maximum holding days")

    @classmethod
    def empty(cls) -> "BacktestStats":
        """Zero-valued statistics."""
        return cls(**{name: 0 for name in cls.model_fields})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump()


class BacktestResult(BaseModel):
    """Complete backtest result."""
    model_config = ConfigDict(frozen=True)

    trades: List[Trade] = Field(default_factory=list, description="Executed fills")
    equity: List[EquityPoint] = Field(default_factory=list, description="Per-bar equity curve")
    stats: BacktestStats = Field(..., description="Summary statistics")
    initial_capital: float = Field(..., description="Starting capital")
    final_equity: float = Field(..., description="Equity after the last bar")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'initial_capital': self.initial_capital,
            'final_equity': self.final_equity,
            'stats': self.stats.to_dict(),
            'trades': [t.to_dict() for t in self.trades],
            'equity': [p.to_dict() for p in self.equity],
        }
