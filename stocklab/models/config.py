# stocklab/models/config.py
"""
Configuration models for stocklab.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .signals import PeriodType


class BacktestConfig(BaseModel):
    """Backtest execution configuration."""
    initial_capital: float = Field(default=1_000_000.0, description="Starting capital")
    fixed_amount: float = Field(default=100_000.0, description="Per-buy amount for fixed-amount strategies")
    period_type: PeriodType = Field(default=PeriodType.DAILY, description="Bar period of the input series")
    preset: str = Field(default="optimized", description="Parameter preset: default or optimized")

    @field_validator('initial_capital')
    @classmethod
    def validate_capital(cls, v):
        if v <= 0:
            raise ValueError("initial_capital must be positive")
        return v

    @field_validator('preset')
    @classmethod
    def validate_preset(cls, v):
        if v not in ('default', 'optimized'):
            raise ValueError("preset must be 'default' or 'optimized'")
        return v


class CupWithHandleConfig(BaseModel):
    """Cup-with-handle geometry thresholds."""
    min_bars: int = Field(default=30, description="Minimum series length")
    peak_window: int = Field(default=5, description="Bars on each side a peak must dominate")
    cup_min_days: int = Field(default=15, description="Minimum bars between rims")
    cup_max_days: int = Field(default=120, description="Maximum bars between rims")
    cup_min_depth: float = Field(default=0.08, description="Minimum cup depth fraction")
    cup_max_depth: float = Field(default=0.50, description="Maximum cup depth fraction")
    rim_tolerance: float = Field(default=0.06, description="Maximum relative rim height difference")
    bottom_min_position: float = Field(default=0.15, description="Earliest relative bottom position")
    bottom_max_position: float = Field(default=0.85, description="Latest relative bottom position")
    handle_min_days: int = Field(default=3, description="Minimum handle length in bars")
    handle_max_days: int = Field(default=25, description="Maximum handle length in bars")
    handle_min_pullback: float = Field(default=0.01, description="Minimum handle pullback fraction")
    handle_max_pullback: float = Field(default=0.12, description="Maximum handle pullback fraction")
    dedup_bars: int = Field(default=3, description="Events closer than this to a kept event are dropped")

    # Optional breakout filters
    breakout_volume_ratio: Optional[float] = Field(None, description="Required volume multiple of the 20-bar average")
    volume_lookback: int = Field(default=20, description="Bars in the breakout volume average")
    require_52_week_high: bool = Field(default=False, description="Breakout close must reach the 252-bar high")
    high_lookback: int = Field(default=252, description="Bars in the 52-week high check")
    require_uptrend: bool = Field(default=False, description="Left rim must sit in an MA50 > MA200 uptrend")

    @field_validator('cup_max_days')
    @classmethod
    def validate_cup_days(cls, v, info):
        if v < info.data.get('cup_min_days', 0):
            raise ValueError("cup_max_days must be >= cup_min_days")
        return v


class ScannerConfig(BaseModel):
    """Signal scanner configuration."""
    daily_lookback_days: int = Field(default=90, description="Recent-signal window for daily bars")
    weekly_lookback_days: int = Field(default=270, description="Recent-signal window for weekly bars")
    strategy_ids: List[str] = Field(
        default_factory=lambda: [
            "choruko_bb",
            "choruko_shitabanare",
            "tabata_cwh",
            "rsi_reversal",
            "ma_cross",
            "macd_signal",
            "dip_buy",
            "macd_trail",
            "cwh_trail",
        ],
        description="Strategies scanned for active positions and recent signals",
    )


class OptimizerConfig(BaseModel):
    """Parameter sweep and walk-forward configuration."""
    max_workers: int = Field(default=4, description="Worker processes for parameter sweeps")
    min_trades: int = Field(default=3, description="Minimum trades for a combo to be ranked")
    train_years: int = Field(default=3, description="Walk-forward training window in years")
    test_years: int = Field(default=1, description="Walk-forward test window in years")
    min_train_bars: int = Field(default=30, description="Minimum bars in a training slice")
    min_test_bars: int = Field(default=20, description="Minimum bars in a test slice")


LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format"
    )
    file: Optional[str] = Field(None, description="Log file path")
    colored: bool = Field(default=False, description="Colorize console output")
    logger_levels: Dict[str, str] = Field(
        default_factory=dict,
        description="Per-logger level overrides, e.g. stocklab.core.optimizer: WARNING"
    )

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        if v.upper() not in LOG_LEVELS:
            raise ValueError(f"Log level must be one of {LOG_LEVELS}")
        return v.upper()

    @field_validator('logger_levels')
    @classmethod
    def validate_logger_levels(cls, v):
        for name, level in v.items():
            if level.upper() not in LOG_LEVELS:
                raise ValueError(f"Log level for {name} must be one of {LOG_LEVELS}")
        return {name: level.upper() for name, level in v.items()}


class AppConfig(BaseModel):
    """Main application configuration."""
    backtest: BacktestConfig = Field(default_factory=BacktestConfig)
    patterns: CupWithHandleConfig = Field(default_factory=CupWithHandleConfig)
    scanner: ScannerConfig = Field(default_factory=ScannerConfig)
    optimizer: OptimizerConfig = Field(default_factory=OptimizerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return self.model_dump(mode='json')
