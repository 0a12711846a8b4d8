# stocklab/strategies/presets.py
"""
Optimized parameter presets per strategy and bar period.

Daily presets come from walk-forward stability ranking (3-year train,
1-year test windows); weekly presets from in-sample grid search. Strategies
with fixed rules (choruko_bb, choruko_shitabanare, dca) have no entry.
"""

import logging
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..core.errors import ConfigurationError
from ..models.signals import PeriodType, StrategyParams
from .base_strategy import BaseStrategy

logger = logging.getLogger(__name__)


DEFAULT_PRESETS_PATH = "configs/presets.yaml"


class OptimizedPreset(BaseModel):
    """Parameter set with the results observed when it was chosen."""
    params: Dict[str, float] = Field(..., description="Strategy parameters")
    win_rate: float = Field(default=0.0, description="Pooled win rate during the search")
    total_return_pct: float = Field(default=0.0, description="Pooled return percentage during the search")
    trades: int = Field(default=0, description="Pooled trade count during the search")


PresetTable = Dict[str, Dict[PeriodType, OptimizedPreset]]


def _preset(params: Dict[str, float], win_rate: float, total_return_pct: float, trades: int) -> OptimizedPreset:
    return OptimizedPreset(params=params, win_rate=win_rate, total_return_pct=total_return_pct, trades=trades)


DEFAULT_PRESETS: PresetTable = {
    "ma_cross": {
        PeriodType.DAILY: _preset({"shortPeriod": 2, "longPeriod": 5}, 0, 6.9, 0),
        PeriodType.WEEKLY: _preset({"shortPeriod": 10, "longPeriod": 20}, 66.7, 183.5, 18),
    },
    "rsi_reversal": {
        PeriodType.DAILY: _preset(
            {"period": 5, "oversold": 37, "overbought": 70, "atrPeriod": 14, "atrMultiple": 2, "stopLossPct": 5},
            0, 16.6, 0,
        ),
        PeriodType.WEEKLY: _preset(
            {"period": 10, "oversold": 40, "overbought": 75, "atrPeriod": 14, "atrMultiple": 2, "stopLossPct": 10},
            100, 376.0, 10,
        ),
    },
    "macd_signal": {
        PeriodType.DAILY: _preset({"shortPeriod": 5, "longPeriod": 10, "signalPeriod": 12}, 0, 13.5, 0),
        PeriodType.WEEKLY: _preset({"shortPeriod": 10, "longPeriod": 30, "signalPeriod": 12}, 47.2, 253.4, 36),
    },
    "dip_buy": {
        PeriodType.DAILY: _preset({"dipPct": 3, "recoveryPct": 39, "stopLossPct": 5}, 0, 17.4, 0),
        PeriodType.WEEKLY: _preset({"dipPct": 3, "recoveryPct": 30, "stopLossPct": 15}, 100, 1206.6, 35),
    },
    "dip_kairi": {
        PeriodType.DAILY: _preset(
            {"entryKairi": -30, "exitKairi": -15, "stopLossPct": 3, "timeStopDays": 2}, 0, 0.0, 0,
        ),
        PeriodType.WEEKLY: _preset(
            {"entryKairi": -8, "exitKairi": -5, "stopLossPct": 7, "timeStopDays": 5}, 80.6, 140.2, 36,
        ),
    },
    "dip_rsi_volume": {
        PeriodType.DAILY: _preset(
            {"rsiThreshold": 30, "volumeMultiple": 2, "rsiExit": 55, "takeProfitPct": 6}, 0, 0.0, 0,
        ),
        PeriodType.WEEKLY: _preset(
            {"rsiThreshold": 35, "volumeMultiple": 1.2, "rsiExit": 35, "takeProfitPct": 3}, 75.0, 12.0, 4,
        ),
    },
    "dip_bb3sigma": {
        PeriodType.DAILY: _preset({"stopLossPct": 3}, 0, 0.0, 0),
        PeriodType.WEEKLY: _preset({"stopLossPct": 5}, 100, 11.3, 1),
    },
    "macd_trail": {
        PeriodType.DAILY: _preset(
            {"shortPeriod": 5, "longPeriod": 23, "signalPeriod": 3, "trailPct": 12, "stopLossPct": 15}, 0, 18.9, 0,
        ),
        PeriodType.WEEKLY: _preset(
            {"shortPeriod": 12, "longPeriod": 26, "signalPeriod": 9, "trailPct": 12, "stopLossPct": 5}, 0, 0, 0,
        ),
    },
    "tabata_cwh": {
        PeriodType.DAILY: _preset({"takeProfitPct": 20, "stopLossPct": 8}, 43.8, 19.8, 1241),
        PeriodType.WEEKLY: _preset({"takeProfitPct": 20, "stopLossPct": 8}, 75.0, 57.4, 4),
    },
    "cwh_trail": {
        PeriodType.DAILY: _preset({"trailPct": 8, "stopLossPct": 6}, 28.8, 0.0, 243),
        PeriodType.WEEKLY: _preset({"trailPct": 12, "stopLossPct": 5}, 0, 0, 0),
    },
}


def get_preset_info(
    strategy_id: str,
    period_type: Union[PeriodType, str],
    presets: Optional[PresetTable] = None
) -> Optional[OptimizedPreset]:
    """Optimized preset entry for display, or None."""
    table = DEFAULT_PRESETS if presets is None else presets
    return table.get(strategy_id, {}).get(PeriodType(period_type))


def get_preset_params(
    strategy: BaseStrategy,
    preset: str,
    period_type: Union[PeriodType, str],
    presets: Optional[PresetTable] = None
) -> StrategyParams:
    """
    Resolve parameters for a strategy, preset and bar period.

    Args:
        strategy: Strategy whose schema supplies the defaults
        preset: "default" or "optimized"
        period_type: Bar period
        presets: Preset table, built-in table when omitted

    Returns:
        Full parameter set; schema defaults when no optimized entry exists
    """
    if preset == "default":
        return strategy.default_params()
    if preset != "optimized":
        raise ValueError(f"Unknown preset '{preset}'. Allowed: default, optimized")

    info = get_preset_info(strategy.id, period_type, presets)
    if info is None:
        return strategy.default_params()
    return strategy.resolve_params(info.params)


def load_presets(presets_path: str = DEFAULT_PRESETS_PATH) -> PresetTable:
    """
    Load preset overrides from YAML and merge them over the built-in table.

    Expected format:
      presets:
        ma_cross:
          daily:
            params: {shortPeriod: 2, longPeriod: 5}
            win_rate: 0
            total_return_pct: 6.9
            trades: 0

    Falls back to DEFAULT_PRESETS if the file is missing.
    """
    table: PresetTable = {sid: dict(periods) for sid, periods in DEFAULT_PRESETS.items()}

    path = Path(presets_path)
    if not path.exists():
        logger.debug(f"Preset file {presets_path} not found, using built-in presets")
        return table

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in preset file: {e}")

    if not isinstance(data, dict) or not isinstance(data.get("presets"), dict):
        raise ConfigurationError("Preset file must contain a 'presets' mapping")

    for strategy_id, periods in data["presets"].items():
        if not isinstance(periods, Mapping):
            raise ConfigurationError(f"Presets for '{strategy_id}' must be a mapping of period to preset")
        entry = table.setdefault(str(strategy_id), {})
        for period_key, raw in periods.items():
            try:
                entry[PeriodType(period_key)] = OptimizedPreset(**raw)
            except (ValueError, TypeError, ValidationError) as e:
                raise ConfigurationError(f"Invalid preset '{strategy_id}.{period_key}': {e}")

    logger.info(f"Loaded preset overrides from {presets_path}")
    return table
