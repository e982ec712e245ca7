"""Backtesting: baseline and adaptive day-by-day replay engines."""

from signal_engine.backtesting.engine import (
    AdaptiveBacktestEngine,
    AdaptiveBacktestResult,
    BacktestEngine,
    run_adaptive_backtest,
    run_backtest,
)

__all__ = [
    "AdaptiveBacktestEngine",
    "AdaptiveBacktestResult",
    "BacktestEngine",
    "run_adaptive_backtest",
    "run_backtest",
]
