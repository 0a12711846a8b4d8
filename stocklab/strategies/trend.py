# stocklab/strategies/trend.py
"""
Trend-following crossover strategies.
"""

from typing import List, Sequence

import numpy as np

from ..core import indicators
from ..models.market_data import PriceBar
from ..models.signals import Signal, StrategyParam, StrategyParams
from .base_strategy import BaseStrategy, period


def crossed_above(fast: np.ndarray, slow: np.ndarray, i: int) -> bool:
    """fast moved from at-or-below slow to strictly above it at bar i."""
    if i < 1 or np.isnan([fast[i], slow[i], fast[i - 1], slow[i - 1]]).any():
        return False
    return fast[i - 1] <= slow[i - 1] and fast[i] > slow[i]


def crossed_below(fast: np.ndarray, slow: np.ndarray, i: int) -> bool:
    """fast moved from at-or-above slow to strictly below it at bar i."""
    if i < 1 or np.isnan([fast[i], slow[i], fast[i - 1], slow[i - 1]]).any():
        return False
    return fast[i - 1] >= slow[i - 1] and fast[i] < slow[i]


class TrailingExit:
    """
    Initial stop plus a trailing stop from the highest close since entry.

    The initial stop is checked first.
    """

    def __init__(self, trail_pct: float, stop_loss_pct: float):
        self.trail_mult = 1 - trail_pct / 100
        self.stop_mult = 1 - stop_loss_pct / 100
        self.entry_price = 0.0
        self.peak = 0.0

    def enter(self, price: float) -> None:
        self.entry_price = price
        self.peak = price

    def level(self) -> float:
        """Current trailing stop price."""
        return self.peak * self.trail_mult

    def update(self, close: float) -> bool:
        """Advance the peak with this close; True when the position should exit."""
        if close > self.peak:
            self.peak = close
        if close <= self.entry_price * self.stop_mult:
            return True
        return close <= self.level()


class MACrossStrategy(BaseStrategy):
    """Golden cross / dead cross of two simple moving averages."""

    id = "ma_cross"
    name = "Golden/Dead Cross"
    description = "Buy when the short MA crosses above the long MA, sell when it crosses below"
    params = [
        StrategyParam(key="shortPeriod", label="Short MA", default=5, min=2, max=50),
        StrategyParam(key="longPeriod", label="Long MA", default=25, min=5, max=200),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return period(params, "longPeriod") + 1

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        short_ma = indicators.sma(bars, period(params, "shortPeriod"))
        long_ma = indicators.sma(bars, period(params, "longPeriod"))

        signals = []
        for i in range(len(bars)):
            if crossed_above(short_ma, long_ma, i):
                signals.append(Signal.BUY)
            elif crossed_below(short_ma, long_ma, i):
                signals.append(Signal.SELL)
            else:
                signals.append(Signal.HOLD)
        return signals


class MACDSignalStrategy(BaseStrategy):
    """MACD line crossing its signal line."""

    id = "macd_signal"
    name = "MACD Signal"
    description = "Buy when MACD crosses above its signal line, sell when it crosses below"
    params = [
        StrategyParam(key="shortPeriod", label="Short EMA", default=12, min=5, max=30),
        StrategyParam(key="longPeriod", label="Long EMA", default=26, min=10, max=50),
        StrategyParam(key="signalPeriod", label="Signal", default=9, min=3, max=20),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return period(params, "longPeriod") + period(params, "signalPeriod")

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        result = indicators.macd(
            bars,
            period(params, "shortPeriod"),
            period(params, "longPeriod"),
            period(params, "signalPeriod"),
        )

        signals = []
        for i in range(len(bars)):
            if crossed_above(result.macd, result.signal, i):
                signals.append(Signal.BUY)
            elif crossed_below(result.macd, result.signal, i):
                signals.append(Signal.SELL)
            else:
                signals.append(Signal.HOLD)
        return signals


class MACDTrailStrategy(BaseStrategy):
    """MACD golden cross entry with an initial stop and a trailing stop."""

    id = "macd_trail"
    name = "MACD Trailing Stop"
    description = "Buy on MACD golden cross, exit on -N% stop or M% off the highest close"
    params = [
        StrategyParam(key="shortPeriod", label="Short EMA", default=12, min=5, max=30),
        StrategyParam(key="longPeriod", label="Long EMA", default=26, min=10, max=50),
        StrategyParam(key="signalPeriod", label="Signal", default=9, min=3, max=20),
        StrategyParam(key="trailPct", label="Trail (%)", default=12, min=5, max=25, step=1),
        StrategyParam(key="stopLossPct", label="Stop loss (%)", default=5, min=3, max=15, step=1),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return period(params, "longPeriod") + period(params, "signalPeriod")

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        result = indicators.macd(
            bars,
            period(params, "shortPeriod"),
            period(params, "longPeriod"),
            period(params, "signalPeriod"),
        )
        exit_rule = TrailingExit(params["trailPct"], params["stopLossPct"])
        in_position = False

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if not in_position:
                if crossed_above(result.macd, result.signal, i):
                    in_position = True
                    exit_rule.enter(bar.close)
                    signal = Signal.BUY
            elif exit_rule.update(bar.close):
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals
