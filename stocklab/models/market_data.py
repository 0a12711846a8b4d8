# stocklab/models/market_data.py
"""
Market data models.
"""

import datetime as dt
from typing import List, Sequence

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field


class PriceBar(BaseModel):
    """Daily or weekly OHLCV bar."""
    model_config = ConfigDict(frozen=True)

    date: dt.date = Field(..., description="Bar date")
    open: float = Field(..., description="Opening price")
    high: float = Field(..., description="High price")
    low: float = Field(..., description="Low price")
    close: float = Field(..., description="Closing price")
    volume: float = Field(default=0.0, description="Traded volume")

    @property
    def is_bullish(self) -> bool:
        """Candle closed above its open."""
        return self.close > self.open

    @property
    def is_bearish(self) -> bool:
        """Candle closed below its open."""
        return self.close < self.open

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'date': self.date.isoformat(),
            'open': self.open,
            'high': self.high,
            'low': self.low,
            'close': self.close,
            'volume': self.volume,
        }


def bars_to_frame(bars: Sequence[PriceBar]) -> pd.DataFrame:
    """
    Convert a bar sequence to a DataFrame indexed by date.

    Args:
        bars: Ascending sequence of price bars

    Returns:
        DataFrame with open/high/low/close/volume columns
    """
    if not bars:
        return pd.DataFrame(columns=['open', 'high', 'low', 'close', 'volume'])

    df = pd.DataFrame([bar.to_dict() for bar in bars])
    df['date'] = pd.to_datetime(df['date'])
    return df.set_index('date')


def frame_to_bars(df: pd.DataFrame) -> List[PriceBar]:
    """
    Convert a DataFrame with a date column or DatetimeIndex back to bars.

    Column names are matched case-insensitively.
    """
    frame = df.copy()
    frame.columns = [str(c).lower() for c in frame.columns]
    if 'date' not in frame.columns:
        frame = frame.reset_index()
        frame.columns = [str(c).lower() for c in frame.columns]
        frame = frame.rename(columns={'index': 'date'})

    frame['date'] = pd.to_datetime(frame['date']).dt.date
    if 'volume' not in frame.columns:
        frame['volume'] = 0.0
    frame = frame.sort_values('date')

    return [
        PriceBar(
            date=row.date,
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in frame.itertuples(index=False)
    ]
