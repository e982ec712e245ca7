"""Abstract strategy: decision at one bar of a price series."""

from __future__ import annotations
from abc import ABC, abstractmethod

from signal_engine.core.types import PriceArrays, Signal, WeightMap


class BaseStrategy(ABC):
    """Strategy turns the bars up to a decision point into a Signal."""

    @abstractmethod
    def evaluate(self, series: PriceArrays, index: int, weights: WeightMap) -> Signal:
        """
        Signal for bar `index` using only bars [0, index]. No lookahead.
        Weights are passed explicitly on every call.
        """
        pass
