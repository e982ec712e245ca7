"""
In-backtest weight update: nudge the indicators that voted for the entry by the trade's return.

Weights become a path-dependent function of trade order; this is online reinforcement,
not a closed-form optimizer.
"""

from __future__ import annotations
import logging
from typing import Iterable, List

from signal_engine.core.types import Action, SignalSource, WeightMap
from signal_engine.strategies.weights import normalize_weights

logger = logging.getLogger("signal_engine.learning")

WEIGHT_FLOOR = 0.01


def contributing_indicators(sources: Iterable[SignalSource], direction: Action = Action.BUY) -> List[str]:
    """Unique indicators that voted `direction`, in vote order."""
    seen: List[str] = []
    for source in sources:
        if source.direction == direction and source.indicator not in seen:
            seen.append(source.indicator)
    return seen


def apply_trade_feedback(
    weights: WeightMap,
    entry_sources: Iterable[SignalSource],
    profit_pct: float,
    learning_rate: float = 0.01,
    direction: Action = Action.BUY,
) -> WeightMap:
    """
    Add learning_rate * profit_pct / 100 to every contributing indicator already in `weights`,
    floor all weights at 0.01 and renormalize. Returns a new map.
    """
    adjustment = learning_rate * (profit_pct / 100.0)
    updated = dict(weights)
    for name in contributing_indicators(entry_sources, direction):
        if updated.get(name):
            updated[name] += adjustment
    updated = {k: max(WEIGHT_FLOOR, w) for k, w in updated.items()}
    result = normalize_weights(updated)
    logger.debug("Weights updated (profit %.2f%%, adj %+.5f): %s", profit_pct, adjustment, result)
    return result
