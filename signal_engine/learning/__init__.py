"""Learning: in-backtest weight feedback, cross-session learner and profit-based optimizer."""

from signal_engine.learning.online import apply_trade_feedback, contributing_indicators
from signal_engine.learning.learner import (
    AdaptiveWeightLearner,
    IndicatorPerformance,
    LearningState,
    LearningStats,
    TradeOutcome,
)
from signal_engine.learning.optimizer import WeightOptimization, optimize_weights

__all__ = [
    "apply_trade_feedback",
    "contributing_indicators",
    "AdaptiveWeightLearner",
    "IndicatorPerformance",
    "LearningState",
    "LearningStats",
    "TradeOutcome",
    "WeightOptimization",
    "optimize_weights",
]
