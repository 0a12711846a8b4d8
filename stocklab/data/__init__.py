"""
Price data sources for stocklab.
"""

from .csv_loader import load_bars_csv, resample_weekly
from .synthetic_data import SyntheticDataProvider

__all__ = ["SyntheticDataProvider", "load_bars_csv", "resample_weekly"]
