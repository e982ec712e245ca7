"""
Cross-session adaptive weight learner.

Tracks per-indicator trades, wins, contribution-weighted profit and a bounded window of
recent outcomes, derives a reliability score in [0.1, 0.9] and moves each weight a
`learning_rate` fraction toward its score after every trade. State is persisted per symbol.
"""

from __future__ import annotations
import logging
import math
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

import numpy as np

from signal_engine.core.types import Action, Trade, WeightMap
from signal_engine.storage.base import KeyValueStore, StoreError
from signal_engine.strategies.weighted import feature_contributions
from signal_engine.strategies.weights import equal_weights, normalize_weights

logger = logging.getLogger("signal_engine.learning")

DEFAULT_LEARNING_RATE = 0.05
PERFORMANCE_WINDOW = 10
INITIAL_RELIABILITY = 0.5
MIN_WEIGHT = 0.10
EXPORT_TRADES = 50
TRADE_HISTORY_LIMIT = 200
PROGRESS_MIN_TRADES = 10


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class IndicatorPerformance:
    """Running outcome statistics for one indicator. win_rate is a fraction."""
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    total_profit: float = 0.0
    average_profit: float = 0.0
    win_rate: float = 0.0
    reliability: float = INITIAL_RELIABILITY
    recent_outcomes: List[float] = field(default_factory=list)

    def record(self, profit: float, is_winning: bool, contribution: float, window: int) -> None:
        self.total_trades += 1
        if is_winning:
            self.winning_trades += 1
        else:
            self.losing_trades += 1
        self.total_profit += profit * contribution
        self.average_profit = self.total_profit / self.total_trades
        self.win_rate = self.winning_trades / self.total_trades

        self.recent_outcomes.append(contribution if is_winning else -contribution)
        if len(self.recent_outcomes) > window:
            del self.recent_outcomes[:-window]

        recent = sum(self.recent_outcomes) / max(len(self.recent_outcomes), 1)
        profit_score = math.tanh(self.average_profit / 100.0)
        win_score = (self.win_rate - 0.5) * 2
        self.reliability = max(0.1, min(0.9, 0.5 + recent * 0.4 + profit_score * 0.3 + win_score * 0.3))


@dataclass
class TradeOutcome:
    """A realized trade and how much each indicator contributed to its entry."""
    trade_id: str
    date: str
    action: Action
    entry_price: float
    exit_price: float
    profit: float
    profit_pct: float
    is_winning: bool
    contributions: WeightMap = field(default_factory=dict)
    signals: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_trade(cls, trade: Trade, weights: Optional[WeightMap] = None) -> "TradeOutcome":
        """Contributions come from the trade's entry sources on its own side."""
        side = Action.BUY if trade.action == Action.BUY else Action.SELL
        entry_weights = weights if weights is not None else trade.entry_weights
        signals: Dict[str, float] = {}
        for s in trade.entry_sources:
            if s.direction == side:
                signals[s.indicator] = max(signals.get(s.indicator, 0.0), s.strength)
        return cls(
            trade_id=uuid.uuid4().hex[:12],
            date=trade.exit_date,
            action=trade.action,
            entry_price=trade.entry_price,
            exit_price=trade.exit_price,
            profit=trade.profit,
            profit_pct=trade.profit_pct,
            is_winning=trade.profit > 0,
            contributions=feature_contributions(trade.entry_sources, entry_weights, side),
            signals=signals,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["action"] = Action(self.action).value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "TradeOutcome":
        data = dict(data)
        data["action"] = Action(data["action"])
        return cls(**data)


@dataclass
class LearningState:
    weights: WeightMap
    performance: Dict[str, IndicatorPerformance]
    trade_history: List[TradeOutcome] = field(default_factory=list)  # newest TRADE_HISTORY_LIMIT only
    learning_rate: float = DEFAULT_LEARNING_RATE
    total_trades: int = 0
    start_date: str = field(default_factory=_now)
    last_updated: str = field(default_factory=_now)

    def to_dict(self) -> dict:
        return {
            "weights": dict(self.weights),
            "performance": {k: asdict(v) for k, v in self.performance.items()},
            "trade_history": [t.to_dict() for t in self.trade_history],
            "learning_rate": self.learning_rate,
            "total_trades": self.total_trades,
            "start_date": self.start_date,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LearningState":
        return cls(
            weights={k: float(v) for k, v in data["weights"].items()},
            performance={k: IndicatorPerformance(**v) for k, v in data.get("performance", {}).items()},
            trade_history=[TradeOutcome.from_dict(t) for t in data.get("trade_history", [])[-TRADE_HISTORY_LIMIT:]],
            learning_rate=float(data.get("learning_rate", DEFAULT_LEARNING_RATE)),
            total_trades=int(data.get("total_trades", 0)),
            start_date=data.get("start_date") or _now(),
            last_updated=data.get("last_updated") or _now(),
        )


@dataclass
class LearningStats:
    total_trades: int
    top_performers: List[dict]
    worst_performers: List[dict]
    learning_progress: float  # 0..100


def weight_dispersion(weights: WeightMap) -> float:
    """Std of the weights relative to the most uneven possible split, in [0, 1]."""
    values = np.array(list(weights.values()), dtype=float)
    n = len(values)
    if n == 0:
        return 0.0
    max_std = math.sqrt((n - 1) / n) / math.sqrt(n)
    if max_std <= 0:
        return 0.0
    return float(min(values.std() / max_std, 1.0))


class AdaptiveWeightLearner:
    """Persisted per-symbol learner over a fixed set of enabled indicators."""

    def __init__(
        self,
        store: KeyValueStore,
        symbol: str,
        indicators: Sequence[str],
        learning_rate: float = DEFAULT_LEARNING_RATE,
        performance_window: int = PERFORMANCE_WINDOW,
    ):
        if not indicators:
            raise ValueError("At least one indicator is required")
        self.store = store
        self.symbol = symbol.upper()
        self.indicators = list(indicators)
        self.learning_rate = learning_rate
        self.performance_window = performance_window
        self._state: Optional[LearningState] = None

    @property
    def state(self) -> LearningState:
        if self._state is None:
            self._state = self.load()
        return self._state

    def initialize(self) -> LearningState:
        """Fresh equal-weight state for the enabled indicators; persisted immediately."""
        state = LearningState(
            weights=equal_weights(self.indicators),
            performance={name: IndicatorPerformance() for name in self.indicators},
            learning_rate=self.learning_rate,
        )
        self._save(state)
        self._state = state
        return state

    def load(self) -> LearningState:
        """Stored state reconciled with the enabled indicators, or a fresh one."""
        try:
            payload = self.store.load(self.symbol)
            if payload is None:
                return self.initialize()
            state = LearningState.from_dict(payload)
        except (StoreError, KeyError, TypeError, ValueError) as e:
            logger.warning("Learning state for %s unreadable, starting fresh: %s", self.symbol, e)
            return self.initialize()

        equal = 1.0 / len(self.indicators)
        for name in self.indicators:
            if not state.weights.get(name):
                state.weights[name] = equal
                state.performance[name] = IndicatorPerformance()
        for name in list(state.weights):
            if name not in self.indicators:
                del state.weights[name]
                state.performance.pop(name, None)
        for name in self.indicators:
            state.performance.setdefault(name, IndicatorPerformance())
        state.weights = normalize_weights(state.weights)
        self._state = state
        return state

    def record_trade(self, outcome: TradeOutcome) -> LearningState:
        """Update indicator statistics from one outcome, recompute weights and persist."""
        state = self.state
        state.trade_history.append(outcome)
        del state.trade_history[:-TRADE_HISTORY_LIMIT]
        state.total_trades += 1

        for name, contribution in outcome.contributions.items():
            perf = state.performance.get(name)
            if perf is None:
                continue
            perf.record(outcome.profit, outcome.is_winning, contribution, self.performance_window)

        state.weights = self._next_weights(state)
        state.last_updated = _now()
        self._save(state)
        logger.info(
            "%s trade %s (%s %.2f%%) -> weights %s",
            self.symbol, outcome.trade_id, "win" if outcome.is_winning else "loss",
            outcome.profit_pct, {k: round(v, 4) for k, v in state.weights.items()},
        )
        return state

    def _next_weights(self, state: LearningState) -> WeightMap:
        adjusted: WeightMap = {}
        for name, current in state.weights.items():
            perf = state.performance[name]
            score = perf.reliability
            if perf.average_profit > 0:
                score *= 1 + min(perf.average_profit / 100.0, 0.5)
            if perf.win_rate > 0.6:
                score *= 1 + (perf.win_rate - 0.6) / 2
            if perf.win_rate < 0.4 and perf.total_trades >= 5:
                score *= 0.7
            adjusted[name] = max(MIN_WEIGHT, current + (score - current) * state.learning_rate)
        return normalize_weights(adjusted)

    def current_weights(self) -> WeightMap:
        return dict(self.state.weights)

    def learning_stats(self) -> LearningStats:
        state = self.state
        performers = sorted(
            (
                {
                    "indicator": name,
                    "reliability": perf.reliability,
                    "win_rate": perf.win_rate,
                    "avg_profit": perf.average_profit,
                }
                for name, perf in state.performance.items()
            ),
            key=lambda p: p["reliability"],
            reverse=True,
        )
        trade_progress = min(state.total_trades / PROGRESS_MIN_TRADES, 1.0) * 50
        spread_progress = min(weight_dispersion(state.weights) * 50, 50.0)
        return LearningStats(
            total_trades=state.total_trades,
            top_performers=performers[:3],
            worst_performers=list(reversed(performers[-3:])),
            learning_progress=min(trade_progress + spread_progress, 100.0),
        )

    def export_snapshot(self) -> dict:
        """Weights, per-indicator statistics and the last 50 trades, JSON-ready."""
        state = self.state
        data = state.to_dict()
        data["trade_history"] = data["trade_history"][-EXPORT_TRADES:]
        data["symbol"] = self.symbol
        data["stats"] = asdict(self.learning_stats())
        return data

    def reset(self) -> None:
        """Forget everything learned for this symbol."""
        self.store.reset(self.symbol)
        self._state = None
        logger.info("Learning state reset for %s", self.symbol)

    def _save(self, state: LearningState) -> None:
        self.store.save(self.symbol, state.to_dict())
