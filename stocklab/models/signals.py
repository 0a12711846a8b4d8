# stocklab/models/signals.py
"""
Signal, strategy parameter and scanner output models.
"""

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


StrategyParams = Dict[str, float]


class Signal(str, Enum):
    """Per-bar trading signal."""
    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class ExecutionMode(str, Enum):
    """Capital allocation policy used by the backtest engine."""
    ALL_IN_OUT = "all_in_out"
    FIXED_AMOUNT = "fixed_amount"


class PeriodType(str, Enum):
    """Bar period of a price series."""
    DAILY = "daily"
    WEEKLY = "weekly"


class SignalAction(str, Enum):
    """Chart marker action."""
    BUY = "buy"
    TAKE_PROFIT = "take_profit"
    STOP_LOSS = "stop_loss"
    DEAD_CROSS = "dead_cross"


class StrategyParam(BaseModel):
    """Schema entry for one tunable strategy parameter."""
    key: str = Field(..., description="Parameter key")
    label: str = Field(..., description="Human readable label")
    default: float = Field(..., description="Default value")
    min: Optional[float] = Field(None, description="Lower bound for tuning")
    max: Optional[float] = Field(None, description="Upper bound for tuning")
    step: Optional[float] = Field(None, description="Tuning step")


class ActivePosition(BaseModel):
    """Open position implied by a signal sequence."""
    buy_date: dt.date = Field(..., description="Entry date")
    buy_price: float = Field(..., description="Entry close")
    buy_index: int = Field(..., description="Entry bar index")


class ExitLevels(BaseModel):
    """Take-profit and stop-loss levels for an open position."""
    take_profit_price: Optional[float] = Field(None, description="Take-profit price")
    take_profit_label: str = Field(default="", description="Take-profit rule")
    stop_loss_price: Optional[float] = Field(None, description="Stop-loss price")
    stop_loss_label: str = Field(default="", description="Stop-loss rule")


class ActiveSignalInfo(BaseModel):
    """Open position for one strategy with current P&L."""
    strategy_id: str = Field(..., description="Strategy id")
    strategy_name: str = Field(..., description="Strategy display name")
    buy_date: dt.date = Field(..., description="Entry date")
    buy_price: float = Field(..., description="Entry close")
    current_price: float = Field(..., description="Latest close")
    pnl_pct: float = Field(..., description="Unrealized P&L percentage")
    exit_levels: ExitLevels = Field(default_factory=ExitLevels, description="Exit levels")


class RecentSignalInfo(BaseModel):
    """Recent buy signal for one strategy."""
    strategy_id: str = Field(..., description="Strategy id")
    strategy_name: str = Field(..., description="Strategy display name")
    date: dt.date = Field(..., description="Signal date")
    price: float = Field(..., description="Close on the signal bar")


class SignalPoint(BaseModel):
    """Chart marker derived from a signal sequence."""
    index: int = Field(..., description="Bar index")
    date: dt.date = Field(..., description="Bar date")
    price: float = Field(..., description="Close on the bar")
    action: SignalAction = Field(..., description="Marker action")
    label: str = Field(default="", description="Marker label")


class ScanResult(BaseModel):
    """Open positions and recent entries across strategies for one series."""
    active: List[ActiveSignalInfo] = Field(default_factory=list, description="Open positions")
    recent: List[RecentSignalInfo] = Field(default_factory=list, description="Recent buy signals")
