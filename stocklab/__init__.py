"""
stocklab: indicator, strategy, pattern and backtest core for stock research.
"""

__version__ = "0.1.0"
