# stocklab/core/indicators.py
"""
Technical indicators over price bar sequences.

Every function returns a float array aligned with the input, with NaN at
positions where the lookback is not yet satisfied. Inputs are never mutated.
"""

from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np
import pandas as pd

from ..models.market_data import PriceBar


ArrayLike = Union[Sequence[float], np.ndarray]


def closes(bars: Sequence[PriceBar]) -> np.ndarray:
    """Close prices as a float array."""
    return np.array([b.close for b in bars], dtype=float)


def highs(bars: Sequence[PriceBar]) -> np.ndarray:
    return np.array([b.high for b in bars], dtype=float)


def lows(bars: Sequence[PriceBar]) -> np.ndarray:
    return np.array([b.low for b in bars], dtype=float)


def volumes(bars: Sequence[PriceBar]) -> np.ndarray:
    return np.array([b.volume for b in bars], dtype=float)


def rolling_mean(values: ArrayLike, period: int) -> np.ndarray:
    """
    Trailing simple mean of raw values.

    Args:
        values: Input values
        period: Window length

    Returns:
        Array with the mean of values[i-period+1..i] at i >= period-1
    """
    arr = np.asarray(values, dtype=float)
    result = np.full(arr.shape[0], np.nan)
    if period <= 0 or arr.shape[0] < period:
        return result

    windows = np.lib.stride_tricks.sliding_window_view(arr, period)
    result[period - 1:] = windows.mean(axis=1)
    return result


def sma(bars: Sequence[PriceBar], period: int) -> np.ndarray:
    """Simple moving average of closes."""
    return rolling_mean(closes(bars), period)


def ema(values: ArrayLike, period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the first value.

    Uses k = 2 / (period + 1); every position is defined.
    """
    arr = np.asarray(values, dtype=float)
    if arr.shape[0] == 0:
        return arr.copy()
    return pd.Series(arr).ewm(span=period, adjust=False).mean().to_numpy()


def rsi(bars: Sequence[PriceBar], period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with Wilder smoothing.

    The first value sits at index `period` and uses the simple average of the
    first `period` close-to-close changes. A zero average loss gives 100.
    """
    n = len(bars)
    result = np.full(n, np.nan)
    if period <= 0 or n < period + 1:
        return result

    changes = np.diff(closes(bars))
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        avg_gain = (avg_gain * (period - 1) + gains[i - 1]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i - 1]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)


@dataclass(frozen=True)
class MACDResult:
    """MACD line, signal line and histogram."""
    macd: np.ndarray
    signal: np.ndarray
    histogram: np.ndarray


def macd(
    bars: Sequence[PriceBar],
    short_period: int = 12,
    long_period: int = 26,
    signal_period: int = 9
) -> MACDResult:
    """
    Moving Average Convergence Divergence.

    The MACD line is defined from index long_period-1. The signal line is the
    EMA of the MACD line starting at that index and is defined once
    signal_period MACD values exist.
    """
    n = len(bars)
    macd_line = np.full(n, np.nan)
    signal_line = np.full(n, np.nan)

    if n < long_period:
        return MACDResult(macd_line, signal_line, np.full(n, np.nan))

    values = closes(bars)
    start = long_period - 1
    macd_line[start:] = (ema(values, short_period) - ema(values, long_period))[start:]

    seeded_signal = ema(macd_line[start:], signal_period)
    first_signal = start + signal_period - 1
    if first_signal < n:
        signal_line[first_signal:] = seeded_signal[signal_period - 1:]

    return MACDResult(macd_line, signal_line, macd_line - signal_line)


@dataclass(frozen=True)
class BollingerBands:
    """Bollinger Bands at 1, 2 and 3 standard deviations."""
    middle: np.ndarray
    std: np.ndarray

    def band(self, k: float) -> np.ndarray:
        """Band at middle + k * std; negative k gives lower bands."""
        return self.middle + k * self.std

    @property
    def upper1(self) -> np.ndarray:
        return self.band(1)

    @property
    def upper2(self) -> np.ndarray:
        return self.band(2)

    @property
    def upper3(self) -> np.ndarray:
        return self.band(3)

    @property
    def lower1(self) -> np.ndarray:
        return self.band(-1)

    @property
    def lower2(self) -> np.ndarray:
        return self.band(-2)

    @property
    def lower3(self) -> np.ndarray:
        return self.band(-3)


def bollinger_bands(bars: Sequence[PriceBar], period: int = 25) -> BollingerBands:
    """
    Bollinger Bands with population standard deviation.

    Args:
        bars: Price bars
        period: Window length

    Returns:
        BollingerBands with middle and std defined from index period-1
    """
    values = closes(bars)
    n = values.shape[0]
    middle = np.full(n, np.nan)
    std = np.full(n, np.nan)

    if period > 0 and n >= period:
        windows = np.lib.stride_tricks.sliding_window_view(values, period)
        middle[period - 1:] = windows.mean(axis=1)
        std[period - 1:] = windows.std(axis=1, ddof=0)

    return BollingerBands(middle=middle, std=std)


def true_range(bars: Sequence[PriceBar]) -> np.ndarray:
    """True range; the first bar uses high - low."""
    n = len(bars)
    if n == 0:
        return np.array([], dtype=float)

    high = highs(bars)
    low = lows(bars)
    close = closes(bars)

    tr = high - low
    if n > 1:
        prev_close = close[:-1]
        tr[1:] = np.maximum.reduce([
            high[1:] - low[1:],
            np.abs(high[1:] - prev_close),
            np.abs(low[1:] - prev_close),
        ])
    return tr


def atr(bars: Sequence[PriceBar], period: int = 14) -> np.ndarray:
    """
    Average True Range with Wilder smoothing.

    The first value at index `period` is the mean of the true ranges of bars
    1..period.
    """
    n = len(bars)
    result = np.full(n, np.nan)
    if period <= 0 or n <= period:
        return result

    tr = true_range(bars)
    value = tr[1:period + 1].mean()
    result[period] = value
    for i in range(period + 1, n):
        value = (value * (period - 1) + tr[i]) / period
        result[i] = value
    return result


def rolling_mean_volume(bars: Sequence[PriceBar], i: int, window: int) -> float:
    """Average volume of the `window` bars before index i, NaN if unavailable."""
    if window <= 0 or i < window:
        return float('nan')
    return float(np.mean([bars[j].volume for j in range(i - window, i)]))
