from __future__ import annotations


class StockLabError(Exception):
    """Base exception for stocklab failures."""


class InvalidParameterError(StockLabError, ValueError):
    """Raised when strategy parameters are malformed or unknown."""


class UnknownStrategyError(StockLabError, ValueError):
    """Raised when a strategy id is not present in the registry."""


class ConfigurationError(StockLabError, ValueError):
    """Raised when a configuration or preset file cannot be used."""
