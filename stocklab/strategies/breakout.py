# stocklab/strategies/breakout.py
"""
Cup-with-handle breakout strategies.
"""

from typing import List, Sequence

from ..core.patterns import BREAKOUT_CONFIG, detect_cup_with_handle
from ..models.market_data import PriceBar
from ..models.signals import Signal, StrategyParam, StrategyParams
from .base_strategy import BaseStrategy
from .trend import TrailingExit


def breakout_indices(bars: Sequence[PriceBar]) -> set:
    """
    Bar indices of filtered cup-with-handle breakouts.

    Detection needs BREAKOUT_CONFIG.min_bars bars, so a breakout only counts
    once its own prefix is that long.
    """
    first_index = BREAKOUT_CONFIG.min_bars - 1
    return {
        event.index
        for event in detect_cup_with_handle(bars, BREAKOUT_CONFIG)
        if event.index >= first_index
    }


class CupWithHandleStrategy(BaseStrategy):
    """Buy cup-with-handle breakouts with a fixed take profit and stop loss."""

    id = "tabata_cwh"
    name = "Cup with Handle"
    description = "Buy the cup-with-handle breakout, +20% take profit, -7% stop loss"
    params = [
        StrategyParam(key="takeProfitPct", label="Take profit (%)", default=20, min=5, max=50, step=1),
        StrategyParam(key="stopLossPct", label="Stop loss (%)", default=7, min=2, max=20, step=1),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return BREAKOUT_CONFIG.min_bars

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        entries = breakout_indices(bars)
        tp = params["takeProfitPct"] / 100
        sl = params["stopLossPct"] / 100
        in_position = False
        entry_price = 0.0

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if not in_position:
                if i in entries:
                    in_position = True
                    entry_price = bar.close
                    signal = Signal.BUY
            elif bar.close >= entry_price * (1 + tp) or bar.close <= entry_price * (1 - sl):
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals


class CupWithHandleTrailStrategy(BaseStrategy):
    """Cup-with-handle breakout entry with an initial stop and a trailing stop."""

    id = "cwh_trail"
    name = "Cup with Handle Trailing Stop"
    description = "Buy the cup-with-handle breakout, exit on -N% stop or M% off the highest close"
    params = [
        StrategyParam(key="trailPct", label="Trail (%)", default=12, min=5, max=25, step=1),
        StrategyParam(key="stopLossPct", label="Stop loss (%)", default=5, min=3, max=15, step=1),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return BREAKOUT_CONFIG.min_bars

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        entries = breakout_indices(bars)
        exit_rule = TrailingExit(params["trailPct"], params["stopLossPct"])
        in_position = False

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if not in_position:
                if i in entries:
                    in_position = True
                    exit_rule.enter(bar.close)
                    signal = Signal.BUY
            elif exit_rule.update(bar.close):
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals
