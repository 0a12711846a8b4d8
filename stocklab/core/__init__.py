"""
Core computation: indicators, patterns, backtest engine and statistics.

The signal scanner and optimizer depend on the strategy package and are
imported from their own modules.
"""

from . import indicators
from .backtest_engine import BacktestEngine, run_backtest, run_signals
from .errors import ConfigurationError, InvalidParameterError, StockLabError, UnknownStrategyError
from .metrics import MetricsCalculator, pair_round_trips
from .patterns import (
    detect_bb_reversal,
    detect_buy_signals,
    detect_cup_with_handle,
    detect_cup_with_handle_forming,
    detect_gap_down_reversal,
    detect_market_sentiment,
)
from .portfolio import Portfolio

__all__ = [
    "indicators",
    "BacktestEngine",
    "run_backtest",
    "run_signals",
    "ConfigurationError",
    "InvalidParameterError",
    "StockLabError",
    "UnknownStrategyError",
    "MetricsCalculator",
    "pair_round_trips",
    "detect_bb_reversal",
    "detect_buy_signals",
    "detect_cup_with_handle",
    "detect_cup_with_handle_forming",
    "detect_gap_down_reversal",
    "detect_market_sentiment",
    "Portfolio",
]
