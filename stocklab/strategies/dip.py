# stocklab/strategies/dip.py
"""
Dip-buying strategies.

Each of these buys into a sharp decline and exits on a rebound target or a
stop. Position state lives only inside a single compute call.
"""

from typing import List, Sequence

import numpy as np

from ..core import indicators
from ..models.market_data import PriceBar
from ..models.signals import Signal, StrategyParam, StrategyParams
from .base_strategy import BaseStrategy


MA_LONG = 25
MA_SHORT = 5
BB_PERIOD = 25
RSI_PERIOD = 14
VOLUME_WINDOW = 5


def pct_change(price: float, base: float) -> float:
    return (price - base) / base * 100


class DipBuyStrategy(BaseStrategy):
    """Buy N% below the running peak close, sell on M% recovery or stop."""

    id = "dip_buy"
    name = "Dip Buy"
    description = "Buy after an N% drop from the recent peak, sell on M% recovery"
    params = [
        StrategyParam(key="dipPct", label="Drop (%)", default=10, min=3, max=30, step=1),
        StrategyParam(key="recoveryPct", label="Recovery (%)", default=15, min=5, max=50, step=1),
        StrategyParam(key="stopLossPct", label="Stop loss (%)", default=15, min=5, max=30, step=1),
    ]

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        peak = bars[0].close
        buy_price = 0.0
        in_position = False

        signals = []
        for bar in bars:
            signal = Signal.HOLD
            if bar.close > peak:
                peak = bar.close

            if not in_position:
                if peak > 0 and (peak - bar.close) / peak * 100 >= params["dipPct"]:
                    in_position = True
                    buy_price = bar.close
                    signal = Signal.BUY
            else:
                gain = pct_change(bar.close, buy_price)
                if gain >= params["recoveryPct"] or gain <= -params["stopLossPct"]:
                    in_position = False
                    peak = bar.close
                    signal = Signal.SELL
            signals.append(signal)
        return signals


class DipKairiStrategy(BaseStrategy):
    """Buy a deep negative deviation from the 25-bar average."""

    id = "dip_kairi"
    name = "Dip Buy (MA Deviation)"
    description = "Buy at -10% from MA25, exit at -5% deviation or MA5 touch, -7% stop, 5-bar time stop"
    params = [
        StrategyParam(key="entryKairi", label="Entry deviation (%)", default=-10, min=-30, max=-5, step=1),
        StrategyParam(key="exitKairi", label="Exit deviation (%)", default=-5, min=-15, max=0, step=1),
        StrategyParam(key="stopLossPct", label="Stop loss (%)", default=7, min=3, max=15, step=1),
        StrategyParam(key="timeStopDays", label="Time stop (bars)", default=5, min=2, max=10, step=1),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return MA_LONG

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        ma25 = indicators.sma(bars, MA_LONG)
        ma5 = indicators.sma(bars, MA_SHORT)
        in_position = False
        entry_price = 0.0
        entry_idx = 0

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if np.isnan(ma25[i]):
                signals.append(signal)
                continue

            kairi = pct_change(bar.close, ma25[i])
            if not in_position:
                if kairi <= params["entryKairi"]:
                    in_position = True
                    entry_price = bar.close
                    entry_idx = i
                    signal = Signal.BUY
            elif (
                kairi >= params["exitKairi"]
                or (not np.isnan(ma5[i]) and bar.close >= ma5[i])
                or pct_change(bar.close, entry_price) <= -params["stopLossPct"]
                or (i - entry_idx >= params["timeStopDays"] and bar.close <= entry_price)
            ):
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals


class DipRSIVolumeStrategy(BaseStrategy):
    """Buy capitulation: deeply oversold RSI on a volume spike."""

    id = "dip_rsi_volume"
    name = "Dip Buy (RSI + Volume)"
    description = "Buy at RSI <= 20 on 2x volume, exit on RSI recovery, +5% or entry-low break"
    params = [
        StrategyParam(key="rsiThreshold", label="RSI threshold", default=20, min=10, max=30, step=1),
        StrategyParam(key="volumeMultiple", label="Volume multiple", default=2, min=1.5, max=5, step=0.5),
        StrategyParam(key="rsiExit", label="Exit RSI", default=40, min=30, max=60, step=5),
        StrategyParam(key="takeProfitPct", label="Take profit (%)", default=5, min=3, max=15, step=1),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return RSI_PERIOD + 1

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        rsi = indicators.rsi(bars, RSI_PERIOD)
        in_position = False
        entry_price = 0.0
        entry_low = 0.0

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if i < VOLUME_WINDOW or np.isnan(rsi[i]):
                signals.append(signal)
                continue

            avg_volume = indicators.rolling_mean_volume(bars, i, VOLUME_WINDOW)
            if not in_position:
                if rsi[i] <= params["rsiThreshold"] and bar.volume >= avg_volume * params["volumeMultiple"]:
                    in_position = True
                    entry_price = bar.close
                    entry_low = bar.low
                    signal = Signal.BUY
            elif (
                rsi[i] >= params["rsiExit"]
                or pct_change(bar.close, entry_price) >= params["takeProfitPct"]
                or bar.close < entry_low
            ):
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals


class DipBB3SigmaStrategy(BaseStrategy):
    """Buy a close at or below the -3 sigma band, exit back at -2 sigma."""

    id = "dip_bb3sigma"
    name = "Dip Buy (BB -3σ)"
    description = "Buy at BB -3σ, take profit at -2σ, -5% stop"
    params = [
        StrategyParam(key="stopLossPct", label="Stop loss (%)", default=5, min=3, max=10, step=1),
    ]

    def required_bars(self, params: StrategyParams) -> int:
        return BB_PERIOD

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        bands = indicators.bollinger_bands(bars, BB_PERIOD)
        lower2 = bands.lower2
        lower3 = bands.lower3
        in_position = False
        entry_price = 0.0

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if np.isnan(lower3[i]):
                pass
            elif not in_position:
                if bar.close <= lower3[i]:
                    in_position = True
                    entry_price = bar.close
                    signal = Signal.BUY
            elif bar.close >= lower2[i] or pct_change(bar.close, entry_price) <= -params["stopLossPct"]:
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals
