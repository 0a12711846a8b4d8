# stocklab/strategies/registry.py
"""
Strategy registry.

Registries are explicitly constructed tables passed by reference to the
engine, scanner and optimizer. There is no module-level instance.
"""

import logging
from typing import Dict, Iterator, List, Optional

from ..core.errors import UnknownStrategyError
from .accumulation import DCAStrategy
from .base_strategy import BaseStrategy
from .breakout import CupWithHandleStrategy, CupWithHandleTrailStrategy
from .dip import DipBB3SigmaStrategy, DipBuyStrategy, DipKairiStrategy, DipRSIVolumeStrategy
from .oscillator import RSIReversalStrategy
from .reversal import BBReversalStrategy, GapDownReversalStrategy
from .trend import MACDSignalStrategy, MACDTrailStrategy, MACrossStrategy

logger = logging.getLogger(__name__)


BUILTIN_STRATEGIES = (
    MACrossStrategy,
    RSIReversalStrategy,
    MACDSignalStrategy,
    DCAStrategy,
    DipBuyStrategy,
    BBReversalStrategy,
    GapDownReversalStrategy,
    DipKairiStrategy,
    DipRSIVolumeStrategy,
    DipBB3SigmaStrategy,
    CupWithHandleStrategy,
    MACDTrailStrategy,
    CupWithHandleTrailStrategy,
)


class StrategyRegistry:
    """
    Table of strategies keyed by id.

    Usage:
        registry = StrategyRegistry()
        registry.register(MACrossStrategy())
        strategy = registry.get('ma_cross')
    """

    def __init__(self, strategies: Optional[List[BaseStrategy]] = None):
        self._strategies: Dict[str, BaseStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: BaseStrategy) -> None:
        """
        Add a strategy to the registry.

        Args:
            strategy: Strategy instance with a non-empty id
        """
        if not strategy.id:
            raise ValueError(f"Strategy {strategy!r} has no id")
        if strategy.id in self._strategies:
            logger.warning(f"Strategy '{strategy.id}' already registered. Overwriting.")
        self._strategies[strategy.id] = strategy
        logger.debug(f"Strategy '{strategy.id}' registered")

    def get(self, strategy_id: str) -> BaseStrategy:
        """
        Get a strategy by id.

        Raises:
            UnknownStrategyError: If the id is not registered
        """
        if strategy_id not in self._strategies:
            available = ', '.join(self._strategies.keys())
            raise UnknownStrategyError(
                f"Unknown strategy: '{strategy_id}'. "
                f"Available strategies: {available or 'none'}"
            )
        return self._strategies[strategy_id]

    def is_registered(self, strategy_id: str) -> bool:
        return strategy_id in self._strategies

    def list_strategies(self) -> Dict[str, str]:
        """Map strategy id to display name."""
        return {sid: s.name for sid, s in self._strategies.items()}

    def ids(self) -> List[str]:
        return list(self._strategies.keys())

    def clear(self) -> None:
        """Remove all strategies."""
        self._strategies.clear()

    def __contains__(self, strategy_id: str) -> bool:
        return strategy_id in self._strategies

    def __iter__(self) -> Iterator[BaseStrategy]:
        return iter(self._strategies.values())

    def __len__(self) -> int:
        return len(self._strategies)


def build_default_registry() -> StrategyRegistry:
    """Registry populated with every built-in strategy."""
    registry = StrategyRegistry([cls() for cls in BUILTIN_STRATEGIES])
    logger.debug(f"Default registry built with strategies: {registry.ids()}")
    return registry
