"""
Signal-generating strategies, registry and parameter presets.
"""

from .accumulation import DCAStrategy
from .base_strategy import BaseStrategy
from .breakout import CupWithHandleStrategy, CupWithHandleTrailStrategy
from .dip import DipBB3SigmaStrategy, DipBuyStrategy, DipKairiStrategy, DipRSIVolumeStrategy
from .oscillator import RSIReversalStrategy
from .presets import DEFAULT_PRESETS, OptimizedPreset, get_preset_info, get_preset_params, load_presets
from .registry import BUILTIN_STRATEGIES, StrategyRegistry, build_default_registry
from .reversal import BBReversalStrategy, GapDownReversalStrategy
from .trend import MACDSignalStrategy, MACDTrailStrategy, MACrossStrategy, TrailingExit

__all__ = [
    "BaseStrategy",
    "StrategyRegistry",
    "build_default_registry",
    "BUILTIN_STRATEGIES",
    "MACrossStrategy",
    "MACDSignalStrategy",
    "MACDTrailStrategy",
    "RSIReversalStrategy",
    "DCAStrategy",
    "DipBuyStrategy",
    "DipKairiStrategy",
    "DipRSIVolumeStrategy",
    "DipBB3SigmaStrategy",
    "BBReversalStrategy",
    "GapDownReversalStrategy",
    "CupWithHandleStrategy",
    "CupWithHandleTrailStrategy",
    "TrailingExit",
    "DEFAULT_PRESETS",
    "OptimizedPreset",
    "get_preset_info",
    "get_preset_params",
    "load_presets",
]
