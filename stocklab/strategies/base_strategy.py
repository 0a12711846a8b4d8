# stocklab/strategies/base_strategy.py
"""
Base strategy interface for signal generation.
"""

import logging
from abc import ABC, abstractmethod
from numbers import Real
from typing import List, Mapping, Optional, Sequence

from ..core.errors import InvalidParameterError
from ..models.market_data import PriceBar
from ..models.signals import ExecutionMode, Signal, StrategyParam, StrategyParams


logger = logging.getLogger(__name__)


class BaseStrategy(ABC):
    """
    Base strategy interface that all strategies must implement.

    A strategy maps a bar sequence and a parameter set to one signal per bar.
    Signal i may only depend on bars[0..i], so the signals computed for a
    prefix of a series always equal the same prefix of the full signals.
    """

    id: str = ""
    name: str = ""
    description: str = ""
    execution_mode: ExecutionMode = ExecutionMode.ALL_IN_OUT
    params: List[StrategyParam] = []

    def default_params(self) -> StrategyParams:
        """Schema defaults keyed by parameter name."""
        return {p.key: p.default for p in self.params}

    def resolve_params(self, params: Optional[Mapping[str, float]] = None) -> StrategyParams:
        """
        Overlay caller values on the schema defaults.

        Raises:
            InvalidParameterError: On unknown keys or non-numeric values
        """
        resolved = self.default_params()
        if not params:
            return resolved

        for key, value in params.items():
            if key not in resolved:
                allowed = ", ".join(resolved) or "none"
                raise InvalidParameterError(
                    f"Unknown parameter '{key}' for strategy '{self.id}'. Allowed: {allowed}"
                )
            if isinstance(value, bool) or not isinstance(value, Real):
                raise InvalidParameterError(
                    f"Parameter '{key}' for strategy '{self.id}' must be numeric, got {value!r}"
                )
            resolved[key] = float(value)
        return resolved

    def required_bars(self, params: StrategyParams) -> int:
        """Minimum series length for any signal other than hold."""
        return 1

    def compute(
        self,
        bars: Sequence[PriceBar],
        params: Optional[Mapping[str, float]] = None
    ) -> List[Signal]:
        """
        Generate one signal per bar.

        Args:
            bars: Ascending price bars
            params: Parameter overrides

        Returns:
            Signals aligned with bars; all hold when the series is too short
        """
        resolved = self.resolve_params(params)
        n = len(bars)
        needed = self.required_bars(resolved)
        if n < needed:
            logger.debug(f"{self.id}: {n} bars < {needed} required, holding")
            return [Signal.HOLD] * n

        signals = self._generate(bars, resolved)
        if len(signals) != n:
            raise RuntimeError(f"{self.id} produced {len(signals)} signals for {n} bars")
        return signals

    @abstractmethod
    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        """Produce signals for a series that satisfies required_bars."""

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self.id!r})"


def period(params: StrategyParams, key: str) -> int:
    """Integer lookback parameter."""
    return int(round(params[key]))
