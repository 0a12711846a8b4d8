# stocklab/strategies/reversal.py
"""
Bollinger Band reversal strategies.
"""

from typing import List, Sequence

import numpy as np

from ..core import indicators
from ..core.patterns import BB_PERIOD, is_gap_down_reversal
from ..models.market_data import PriceBar
from ..models.signals import Signal, StrategyParams
from .base_strategy import BaseStrategy


class BBReversalStrategy(BaseStrategy):
    """
    Buy the first bullish candle after a close below the -2 sigma band.

    Take profit when the close reaches the 25-bar average, stop out when it
    closes below the entry bar's low.
    """

    id = "choruko_bb"
    name = "BB Reversal"
    description = "Buy the bullish candle after a -2σ break, exit at MA25 or below the entry low"
    params = []

    def required_bars(self, params: StrategyParams) -> int:
        return BB_PERIOD

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        bands = indicators.bollinger_bands(bars, BB_PERIOD)
        lower2 = bands.lower2
        ma25 = bands.middle
        in_position = False
        below_band = False
        entry_low = 0.0

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if np.isnan(lower2[i]):
                signals.append(signal)
                continue

            if not in_position:
                if bar.close < lower2[i]:
                    below_band = True
                elif below_band and bar.is_bullish:
                    in_position = True
                    entry_low = bar.low
                    below_band = False
                    signal = Signal.BUY
                elif bar.close > lower2[i]:
                    below_band = False
            elif bar.close >= ma25[i] or bar.close < entry_low:
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals


class GapDownReversalStrategy(BaseStrategy):
    """
    Buy a gap down followed by two bearish candles near the -2 sigma band.

    Take profit when the close refills the gap, stop out below the entry low.
    """

    id = "choruko_shitabanare"
    name = "Gap-Down Two Black Candles"
    description = "Buy gap-down plus two bearish candles near BB -2σ, exit at the gap top or below the entry low"
    params = []

    def required_bars(self, params: StrategyParams) -> int:
        return BB_PERIOD

    def _generate(self, bars: Sequence[PriceBar], params: StrategyParams) -> List[Signal]:
        lower2 = indicators.bollinger_bands(bars, BB_PERIOD).lower2
        in_position = False
        entry_low = 0.0
        gap_upper = 0.0

        signals = []
        for i, bar in enumerate(bars):
            signal = Signal.HOLD
            if i < 2 or np.isnan(lower2[i]):
                signals.append(signal)
                continue

            if not in_position:
                if is_gap_down_reversal(bars, i, lower2[i]):
                    in_position = True
                    entry_low = bar.low
                    gap_upper = bars[i - 2].low
                    signal = Signal.BUY
            elif bar.close >= gap_upper or bar.close < entry_low:
                in_position = False
                signal = Signal.SELL
            signals.append(signal)
        return signals
