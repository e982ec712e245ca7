"""Strategies: indicator library, weighted signal, optimal prices and weight presets."""

from signal_engine.strategies.base import BaseStrategy
from signal_engine.strategies.weighted import WeightedSignalStrategy, generate_signal, feature_contributions
from signal_engine.strategies.optimal_price import OptimalPrices, find_optimal_prices
from signal_engine.strategies.weights import (
    WEIGHT_PRESETS,
    normalize_weights,
    equal_weights,
    default_weights,
    regime_weights,
)

__all__ = [
    "BaseStrategy",
    "WeightedSignalStrategy",
    "generate_signal",
    "feature_contributions",
    "OptimalPrices",
    "find_optimal_prices",
    "WEIGHT_PRESETS",
    "normalize_weights",
    "equal_weights",
    "default_weights",
    "regime_weights",
]
