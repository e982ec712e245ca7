"""
Profit-based weight optimization over a finished backtest's trades.

Builds candidate weight maps (profit-, win-rate-, reliability-weighted, hybrid and the
default preset), tilts them for the test horizon, scores each against the trades and
keeps the one with the best expected_profit * sharpe * win_rate.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from signal_engine.core.types import IndicatorSettings, INDICATORS, Trade, WeightMap
from signal_engine.strategies.weights import default_weights, normalize_weights

logger = logging.getLogger("signal_engine.learning")

WEIGHT_FLOOR = 0.01

SHORT_TERM_ADJUSTMENTS = {
    "rsi": 1.3, "stochastic_rsi": 1.4, "williams_r": 1.2, "cci": 1.2, "eq30": 1.5,
    "macd": 0.8, "adx": 0.9, "moving_averages": 0.7, "eq90": 0.6,
}
MEDIUM_TERM_ADJUSTMENTS = {"volume_analysis": 1.1, "eq60": 1.3}
LONG_TERM_ADJUSTMENTS = {
    "eq90": 1.5, "eq60": 1.2, "macd": 1.2, "adx": 1.2, "moving_averages": 1.4,
    "rsi": 0.8, "stochastic_rsi": 0.7, "williams_r": 0.6, "eq30": 0.5,
}


@dataclass
class IndicatorReport:
    indicator: str
    total_trades: int
    winning_trades: int
    total_profit: float
    avg_profit: float
    win_rate: float  # percent
    reliability: float


@dataclass
class WeightOptimization:
    strategy: str
    weights: WeightMap
    expected_profit: float
    win_rate: float  # percent
    sharpe_ratio: float


def _relevant(trades: Sequence[Trade], indicator: str) -> List[Trade]:
    return [t for t in trades if any(s.indicator == indicator for s in t.entry_sources)]


def timeframe_reliability(timeframe_days: int) -> float:
    if timeframe_days < 30:
        return 1.2
    if timeframe_days <= 90:
        return 1.0
    return 0.9


def timeframe_adjusted(weights: WeightMap, timeframe_days: int) -> WeightMap:
    if timeframe_days < 30:
        factors = SHORT_TERM_ADJUSTMENTS
    elif timeframe_days <= 90:
        factors = MEDIUM_TERM_ADJUSTMENTS
    else:
        factors = LONG_TERM_ADJUSTMENTS
    adjusted = {k: w * factors.get(k, 1.0) for k, w in weights.items()}
    return normalize_weights(adjusted)


def indicator_reports(trades: Sequence[Trade], settings: IndicatorSettings, timeframe_days: int) -> List[IndicatorReport]:
    multiplier = timeframe_reliability(timeframe_days)
    reports = []
    for name in INDICATORS:
        if not settings.is_enabled(name):
            continue
        relevant = _relevant(trades, name)
        wins = sum(1 for t in relevant if t.profit > 0)
        total = sum(t.profit for t in relevant)
        n = len(relevant)
        win_rate = wins / n * 100 if n else 0.0
        reports.append(IndicatorReport(
            indicator=name,
            total_trades=n,
            winning_trades=wins,
            total_profit=total,
            avg_profit=total / n if n else 0.0,
            win_rate=win_rate,
            reliability=min(1.0, win_rate / 100 * math.sqrt(n / 10) * multiplier),
        ))
    return reports


def candidate_weights(reports: List[IndicatorReport], settings: IndicatorSettings, timeframe_days: int) -> Dict[str, WeightMap]:
    positive_profit = max(1.0, sum(max(0.0, r.total_profit) for r in reports))
    total_win_rate = max(1.0, sum(r.win_rate for r in reports))
    total_reliability = max(1.0, sum(r.reliability for r in reports))

    candidates = {
        "profit-weighted": {r.indicator: max(WEIGHT_FLOOR, r.total_profit / positive_profit) for r in reports},
        "winrate-weighted": {r.indicator: max(WEIGHT_FLOOR, r.win_rate / total_win_rate) for r in reports},
        "reliability-weighted": {r.indicator: max(WEIGHT_FLOOR, r.reliability / total_reliability) for r in reports},
        "hybrid-optimized": {
            r.indicator: max(WEIGHT_FLOOR, max(0.0, r.avg_profit) / 1000 * (r.win_rate / 100) * r.reliability)
            for r in reports
        },
        "current-optimized": default_weights(settings),
    }
    return {name: timeframe_adjusted(normalize_weights(w), timeframe_days) for name, w in candidates.items()}


def evaluate_weights(weights: WeightMap, trades: Sequence[Trade]) -> Dict[str, float]:
    """Weight-averaged profit and win rate of each indicator's trades, plus per-trade Sharpe."""
    if not trades:
        return {"expected_profit": 0.0, "win_rate": 0.0, "sharpe_ratio": 0.0}
    weighted_profit = weighted_win_rate = total_weight = 0.0
    for name, weight in weights.items():
        relevant = _relevant(trades, name)
        if not relevant:
            continue
        weighted_profit += sum(t.profit for t in relevant) * weight
        weighted_win_rate += sum(1 for t in relevant if t.profit > 0) / len(relevant) * 100 * weight
        total_weight += weight
    returns = np.array([t.profit_pct / 100 for t in trades], dtype=float)
    std = returns.std()
    return {
        "expected_profit": weighted_profit / total_weight if total_weight > 0 else 0.0,
        "win_rate": weighted_win_rate / total_weight if total_weight > 0 else 0.0,
        "sharpe_ratio": float(returns.mean() / std) if std > 0 else 0.0,
    }


def optimize_weights(trades: Sequence[Trade], settings: IndicatorSettings, timeframe_days: int) -> WeightOptimization:
    """Best candidate by expected_profit * sharpe * win_rate / 100; ties keep the earlier one."""
    if not trades:
        return WeightOptimization("default", default_weights(settings), 0.0, 0.0, 0.0)

    reports = indicator_reports(trades, settings, timeframe_days)
    best = None
    best_score = 0.0
    for name, weights in candidate_weights(reports, settings, timeframe_days).items():
        metrics = evaluate_weights(weights, trades)
        score = metrics["expected_profit"] * metrics["sharpe_ratio"] * (metrics["win_rate"] / 100)
        logger.debug("Candidate %s score %.4f", name, score)
        if best is None or score > best_score:
            best = WeightOptimization(name, weights, **metrics)
            best_score = score
    logger.info("Optimized weights: %s (profit %.2f, win rate %.1f%%)", best.strategy, best.expected_profit, best.win_rate)
    return best
