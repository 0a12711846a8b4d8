# stocklab/strategies/oscillator.py
"""
RSI mean-reversion strategy.
"""

from typing import List, Sequence

import numpy as np

from ..core import indicators
from ..models.market_data import PriceBar
from ..models.signals import Signal, StrategyParam, StrategyParams
from .base_strategy import BaseStrategy, period


def rsi_stop_level(entry_price: float, atr_value: float, atr_multiple: float, stop_loss_pct: float) -> float:
    """Tighter of the ATR stop and the percentage stop."""
    atr_stop = entry_price - atr_value * atr_multiple if not np.isnan(atr_value) else 0.0
    pct_stop = entry_price * (1 - stop_loss_pct / 100)
    return max(atr_stop, pct_stop)


class RSIReversalStrategy(BaseStrategy):
    """Buy oversold RSI, sell overbought RSI or on an ATR/percentage stop."""

    id = "rsi_reversal"
    name = "RSI Reversal"
    description = "Buy when RSI is oversold, sell when overbought or on the ATR stop"
    params = [
        StrategyParam(key="period", label="RSI period", default=14, min=5, max=30),
        StrategyParam(key="oversold", label="Buy below RSI", default=30, min=10, max=50),
        StrategyParam(key="overbought", label="Sell above RSI", default=70, min=50, max=90),
        StrategyParam(key="atrPeriod", label="ATR period", default=14, min=5, max=30),
        StrategyParam(key="atrMultiple", label="ATR multiple", default=2, min=1, max=4, step=0.5),
        StrategyParam(key="stopLossPct", label="Stop loss (%)", default=10, min=3, max=20, step=1),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return period(params, "period") + 1

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        rsi = indicators.rsi(bars, period(params, "period"))
        atr = indicators.atr(bars, period(params, "atrPeriod"))
        in_position = False
        stop_level = 0.0

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if np.isnan(rsi[i]):
                pass
            elif not in_position and rsi[i] < params["oversold"]:
                in_position = True
                stop_level = rsi_stop_level(bar.close, atr[i], params["atrMultiple"], params["stopLossPct"])
                signal = Signal.BUY
            elif in_position and (rsi[i] > params["overbought"] or bar.close <= stop_level):
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals
