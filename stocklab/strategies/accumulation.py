# stocklab/strategies/accumulation.py
"""
Periodic accumulation strategy.
"""

from typing import List, Sequence

from ..models.market_data import PriceBar
from ..models.signals import ExecutionMode, Signal, StrategyParam, StrategyParams
from .base_strategy import BaseStrategy


class DCAStrategy(BaseStrategy):
    """Dollar-cost averaging: buy a fixed amount on the first bar of each month."""

    id = "dca"
    name = "Dollar-Cost Averaging"
    description = "Buy a fixed amount every month"
    execution_mode = ExecutionMode.FIXED_AMOUNT
    params = [
        StrategyParam(key="monthlyAmount", label="Monthly amount", default=100000, min=10000, max=10000000, step=10000),
    ]

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        last_month = None
        signals = []
        for bar in bars:
            month = (bar.date.year, bar.date.month)
            if month != last_month:
                last_month = month
                signals.append(Signal.BUY)
            else:
                signals.append(Signal.HOLD)
        return signals
