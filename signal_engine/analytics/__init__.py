"""Analytics: performance metrics (Sharpe, MDD, win rate, etc.)."""

from signal_engine.analytics.metrics import (
    PerformanceMetrics,
    compute_metrics,
    sharpe_ratio,
    max_drawdown,
    win_rate,
    profit_factor,
    expectancy,
)

__all__ = [
    "PerformanceMetrics",
    "compute_metrics",
    "sharpe_ratio",
    "max_drawdown",
    "win_rate",
    "profit_factor",
    "expectancy",
]
