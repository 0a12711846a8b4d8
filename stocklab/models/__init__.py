"""
Data models for stocklab.
"""

from .config import (
    AppConfig,
    BacktestConfig,
    CupWithHandleConfig,
    LoggingConfig,
    OptimizerConfig,
    ScannerConfig,
)
from .market_data import PriceBar, bars_to_frame, frame_to_bars
from .patterns import (
    CupFormingPattern,
    CupGeometry,
    FormingStage,
    MarketSentiment,
    PatternEvent,
    PatternType,
    Sentiment,
)
from .results import BacktestResult, BacktestStats, EquityPoint, RoundTrip, Trade, TradeType
from .signals import (
    ActivePosition,
    ActiveSignalInfo,
    ExecutionMode,
    ExitLevels,
    PeriodType,
    RecentSignalInfo,
    ScanResult,
    Signal,
    SignalAction,
    SignalPoint,
    StrategyParam,
    StrategyParams,
)

__all__ = [
    "AppConfig",
    "BacktestConfig",
    "CupWithHandleConfig",
    "LoggingConfig",
    "OptimizerConfig",
    "ScannerConfig",
    "PriceBar",
    "bars_to_frame",
    "frame_to_bars",
    "CupFormingPattern",
    "CupGeometry",
    "FormingStage",
    "MarketSentiment",
    "PatternEvent",
    "PatternType",
    "Sentiment",
    "BacktestResult",
    "BacktestStats",
    "EquityPoint",
    "RoundTrip",
    "Trade",
    "TradeType",
    "ActivePosition",
    "ActiveSignalInfo",
    "ExecutionMode",
    "ExitLevels",
    "PeriodType",
    "RecentSignalInfo",
    "ScanResult",
    "Signal",
    "SignalAction",
    "SignalPoint",
    "StrategyParam",
    "StrategyParams",
]
