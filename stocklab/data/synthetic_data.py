# stocklab/data/synthetic_data.py
"""
Synthetic daily price series for demos and tests.
"""

import datetime as dt
from typing import List, Optional

import numpy as np
import pandas as pd

from ..models.market_data import PriceBar


class SyntheticDataProvider:
    """
    Generates synthetic OHLCV bars on business days.

    Closes follow a geometric Brownian motion with mild autocorrelation in
    the returns; opens gap from the previous close and volume scales with
    the size of the move.
    """

    def __init__(self, seed: Optional[int] = None):
        """
        Initialize synthetic data provider.

        Args:
            seed: Random seed for reproducible data generation
        """
        self.seed = seed
        self._rng = np.random.RandomState(seed)

    def generate_bars(
        self,
        start: dt.date,
        end: Optional[dt.date] = None,
        periods: Optional[int] = None,
        initial_price: float = 1000.0,
        volatility: float = 0.02,
        trend: float = 0.0003,
        volume_base: float = 500_000
    ) -> List[PriceBar]:
        """
        Generate synthetic daily bars.

        Args:
            start: First calendar date
            end: Last calendar date; required unless periods is given
            periods: Number of business days to generate
            initial_price: Starting price
            volatility: Daily return volatility
            trend: Daily drift
            volume_base: Base volume for generation

        Returns:
            Ascending list of PriceBar objects
        """
        if end is None and periods is None:
            raise ValueError("Either end or periods must be given")

        dates = pd.bdate_range(start=start, end=end, periods=periods if end is None else None)
        n_periods = len(dates)
        if n_periods == 0:
            return []

        returns = self._rng.normal(trend, volatility, n_periods)
        returns = self._add_autocorrelation(returns, 0.1)
        closes = initial_price * np.exp(np.cumsum(returns))

        bars: List[PriceBar] = []
        prev_close = initial_price
        for i, timestamp in enumerate(dates):
            close_price = closes[i]
            open_price = prev_close * (1 + self._rng.normal(0, volatility * 0.3))

            intrabar_range = abs(close_price - open_price) * 0.5 + open_price * volatility * self._rng.random_sample()
            high_price = max(open_price, close_price) + intrabar_range * self._rng.random_sample()
            low_price = min(open_price, close_price) - intrabar_range * self._rng.random_sample()

            volume = volume_base * (0.5 + self._rng.random_sample()) * (1 + abs(returns[i]) * 10)

            bars.append(PriceBar(
                date=timestamp.date(),
                open=float(round(open_price, 2)),
                high=float(round(high_price, 2)),
                low=float(round(max(low_price, 0.01), 2)),
                close=float(round(close_price, 2)),
                volume=float(round(volume)),
            ))
            prev_close = close_price

        return bars

    def _add_autocorrelation(self, series: np.ndarray, correlation: float) -> np.ndarray:
        """Add autocorrelation to a time series."""
        if correlation == 0:
            return series

        result = np.copy(series)
        for i in range(1, len(result)):
            result[i] += correlation * result[i-1]

        return result
