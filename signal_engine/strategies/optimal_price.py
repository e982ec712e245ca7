"""
Optimal entry / exit price search.

Walks the last close down (for BUY) and up (for SELL) in fixed relative steps and
re-runs the full signal at each step. The decision function is piecewise and
non-monotonic, so this is a brute-force local search.

A series whose closes before the last bar never moved has nothing to anchor a target
to: any simulated move would be the only move in the window, so no price qualifies.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from signal_engine.core.types import Action, IndicatorSettings, PriceArrays, PriceSeries, WeightMap
from signal_engine.strategies.weighted import generate_signal

logger = logging.getLogger("signal_engine.strategies")

STEP_RATIO = 0.001
MAX_ITERATIONS = 200
MIN_CONFIDENCE = 60.0


@dataclass(frozen=True)
class OptimalPrices:
    buy: Optional[float] = None
    sell: Optional[float] = None


def has_price_history(bars: PriceArrays) -> bool:
    """True when the closes before the last bar are not all the same price."""
    history = bars.close[:-1]
    return len(history) > 1 and float(np.ptp(history)) > 0.0

def _search(
    bars: PriceArrays,
    live_price: float,
    direction: int,
    target: Action,
    settings: IndicatorSettings,
    weights: WeightMap,
    step_ratio: float,
    max_iterations: int,
    min_confidence: float,
) -> Optional[float]:
    step = live_price * step_ratio
    last = len(bars) - 1
    for i in range(1, max_iterations + 1):
        price = live_price + direction * i * step
        signal = generate_signal(bars.with_last_close(price), last, settings, weights)
        if signal.action == target and signal.confidence >= min_confidence:
            return price
    return None


def find_optimal_prices(
    series: PriceSeries,
    live_price: float,
    settings: IndicatorSettings,
    weights: WeightMap,
    step_ratio: float = STEP_RATIO,
    max_iterations: int = MAX_ITERATIONS,
    min_confidence: float = MIN_CONFIDENCE,
    sides: Iterable[Action] = (Action.BUY, Action.SELL),
) -> OptimalPrices:
    """
    Nearest price below `live_price` giving BUY >= min_confidence and nearest price above
    giving SELL >= min_confidence, replacing only the last bar's close. None per side when
    nothing qualifies within `max_iterations` steps, and for both sides on a flat history.
    """
    bars = PriceArrays.from_series(series)
    if len(bars) == 0 or live_price <= 0:
        return OptimalPrices()
    if not has_price_history(bars):
        logger.debug("Optimal price search skipped: closes before the last bar are flat")
        return OptimalPrices()
    sides = set(sides)
    buy = sell = None
    if Action.BUY in sides:
        buy = _search(bars, live_price, -1, Action.BUY, settings, weights,
                      step_ratio, max_iterations, min_confidence)
    if Action.SELL in sides:
        sell = _search(bars, live_price, 1, Action.SELL, settings, weights,
                       step_ratio, max_iterations, min_confidence)
    return OptimalPrices(buy=buy, sell=sell)
