# stocklab/data/csv_loader.py
"""
CSV price files and weekly aggregation.
"""

import logging
from pathlib import Path
from typing import List, Sequence

import pandas as pd

from ..models.market_data import PriceBar, bars_to_frame, frame_to_bars


logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ('date', 'open', 'high', 'low', 'close')


def load_bars_csv(csv_path: str) -> List[PriceBar]:
    """
    Load daily bars from a CSV file.

    The file needs date/open/high/low/close columns (any case); volume is
    optional. Rows are sorted ascending by date.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If a required column is missing
    """
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"Price file not found: {csv_path}")

    df = pd.read_csv(path)
    columns = {str(c).lower() for c in df.columns}
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise ValueError(f"Price file {csv_path} is missing columns: {', '.join(missing)}")

    bars = frame_to_bars(df.dropna(subset=[c for c in df.columns if str(c).lower() in REQUIRED_COLUMNS]))
    logger.info(f"Loaded {len(bars)} bars from {csv_path}")
    return bars


def resample_weekly(bars: Sequence[PriceBar]) -> List[PriceBar]:
    """
    Aggregate daily bars into weeks ending Friday.

    Each weekly bar is dated by its last trading day.
    """
    if not bars:
        return []

    df = bars_to_frame(bars)
    df['last_date'] = df.index
    weekly = df.resample('W-FRI').agg({
        'open': 'first',
        'high': 'max',
        'low': 'min',
        'close': 'last',
        'volume': 'sum',
        'last_date': 'last',
    }).dropna(subset=['close'])

    weekly = weekly.set_index('last_date')
    weekly.index.name = 'date'
    return frame_to_bars(weekly)
