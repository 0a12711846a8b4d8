import datetime as dt
from typing import List, Optional, Sequence

import pandas as pd
import pytest

from stocklab.models.market_data import PriceBar


def build_bars(
    closes: Sequence[float],
    start: dt.date = dt.date(2024, 1, 1),
    opens: Optional[Sequence[float]] = None,
    highs: Optional[Sequence[float]] = None,
    lows: Optional[Sequence[float]] = None,
    volumes: Optional[Sequence[float]] = None,
) -> List[PriceBar]:
    """Bars on consecutive business days; missing OHLC fields default to the close."""
    dates = pd.bdate_range(start=start, periods=len(closes))
    bars = []
    for i, close in enumerate(closes):
        open_ = opens[i] if opens is not None else close
        high = highs[i] if highs is not None else max(open_, close)
        low = lows[i] if lows is not None else min(open_, close)
        bars.append(PriceBar(
            date=dates[i].date(),
            open=open_,
            high=high,
            low=low,
            close=close,
            volume=volumes[i] if volumes is not None else 1000.0,
        ))
    return bars


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def wavy_bars():
    """Three years of deterministic synthetic bars."""
    from stocklab.data.synthetic_data import SyntheticDataProvider

    return SyntheticDataProvider(seed=7).generate_bars(start=dt.date(2020, 1, 1), periods=780)
