"""Unit tests for learning.optimizer."""

import pytest
from signal_engine.core.types import Action, IndicatorSettings, SignalSource, Trade
from signal_engine.learning.optimizer import (
    indicator_reports,
    optimize_weights,
    timeframe_adjusted,
)

SETTINGS = IndicatorSettings.only("rsi", "macd", "eq90")


def _trade(profit, indicators):
    return Trade(
        entry_date="2024-01-01", exit_date="2024-01-10", entry_price=100.0,
        exit_price=100.0 + profit, action=Action.BUY, quantity=1.0, profit=profit,
        profit_pct=profit, confidence=60.0, holding_period_days=9,
        entry_sources=[SignalSource(name, Action.BUY, 0.5, name) for name in indicators],
    )


TRADES = [
    _trade(10.0, ["rsi", "eq90"]),
    _trade(8.0, ["rsi"]),
    _trade(-4.0, ["macd"]),
    _trade(-6.0, ["macd", "eq90"]),
    _trade(5.0, ["rsi"]),
]


def test_no_trades_returns_default():
    result = optimize_weights([], SETTINGS, 30)
    assert result.strategy == "default"
    assert sum(result.weights.values()) == pytest.approx(1.0)
    assert result.expected_profit == 0.0


def test_indicator_reports():
    reports = {r.indicator: r for r in indicator_reports(TRADES, SETTINGS, 60)}
    assert set(reports) == {"rsi", "macd", "eq90"}
    assert reports["rsi"].total_trades == 3
    assert reports["rsi"].win_rate == pytest.approx(100.0)
    assert reports["macd"].total_profit == pytest.approx(-10.0)
    assert reports["eq90"].avg_profit == pytest.approx(2.0)


def test_optimized_weights_normalized_and_favour_winners():
    result = optimize_weights(TRADES, SETTINGS, 60)
    assert result.strategy in {
        "profit-weighted", "winrate-weighted", "reliability-weighted", "hybrid-optimized", "current-optimized",
    }
    assert set(result.weights) == {"rsi", "macd", "eq90"}
    assert sum(result.weights.values()) == pytest.approx(1.0)
    assert result.weights["rsi"] > result.weights["macd"]
    assert 0.0 <= result.win_rate <= 100.0


def test_timeframe_adjustment():
    base = {"rsi": 0.5, "eq90": 0.5}
    short = timeframe_adjusted(base, 7)
    long = timeframe_adjusted(base, 180)
    assert short["rsi"] > short["eq90"]
    assert long["eq90"] > long["rsi"]
    assert timeframe_adjusted(base, 60) == base
