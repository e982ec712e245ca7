"""
Backtest statistics from trade PnLs and the daily mark-to-market equity curve.
Daily returns are percentage changes of portfolio value.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

TRADING_DAYS = 252.0


@dataclass
class PerformanceMetrics:
    """win_rate is a percentage; avg_loss is reported as a positive amount."""
    total_return: float
    total_return_pct: float
    sharpe_ratio: float
    max_drawdown: float
    max_drawdown_pct: float
    win_rate: float
    profit_factor: float
    expectancy: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float


def _pnl_array(pnls: Sequence[float]) -> np.ndarray:
    return np.asarray(list(pnls), dtype=float)


def sharpe_ratio(returns: Sequence[float], risk_free_rate: float = 0.0, periods_per_year: float = TRADING_DAYS) -> float:
    """mean / sample std of excess returns, scaled by sqrt(periods_per_year). 0 when undefined."""
    r = np.asarray(list(returns), dtype=float)
    r = r[np.isfinite(r)]
    if r.size < 2:
        return 0.0
    r = r - risk_free_rate / periods_per_year
    sigma = r.std(ddof=1)
    if sigma <= 1e-12:
        return 0.0
    return float(r.mean() / sigma * np.sqrt(periods_per_year))


def max_drawdown(values: Sequence[float], initial: Optional[float] = None) -> Tuple[float, float]:
    """
    Largest fall from a running peak as (amount, percent). The percent is taken
    against the highest value the curve ever reached. `initial` seeds the peak.
    """
    curve = np.asarray(([] if initial is None else [initial]) + list(values), dtype=float)
    if curve.size == 0:
        return 0.0, 0.0
    running_peak = np.maximum.accumulate(curve)
    worst = max(0.0, float(np.max(running_peak - curve)))
    top = float(running_peak[-1])
    return worst, (worst / top * 100.0 if top > 0 else 0.0)


def win_rate(pnls: Sequence[float]) -> float:
    """Share of trades with PnL > 0, as a fraction."""
    p = _pnl_array(pnls)
    return float((p > 0).mean()) if p.size else 0.0


def profit_factor(pnls: Sequence[float]) -> float:
    """Gross profit over gross loss; inf when there are wins but no losses."""
    p = _pnl_array(pnls)
    gross_win = float(p[p > 0].sum())
    gross_loss = float(-p[p < 0].sum())
    if gross_loss > 0:
        return gross_win / gross_loss
    return float("inf") if gross_win > 0 else 0.0


def expectancy(pnls: Sequence[float]) -> float:
    p = _pnl_array(pnls)
    return float(p.mean()) if p.size else 0.0


def compute_metrics(
    pnls: Sequence[float],
    equity_values: Sequence[float],
    daily_returns: Sequence[float],
    initial_capital: float,
    final_capital: float,
    periods_per_year: float = TRADING_DAYS,
) -> PerformanceMetrics:
    """Report statistics for one run. A zero-PnL trade counts as a loss."""
    p = _pnl_array(pnls)
    wins = p[p > 0]
    losses = p[p <= 0]
    dd_amount, dd_pct = max_drawdown(equity_values, initial_capital)
    net = final_capital - initial_capital
    return PerformanceMetrics(
        total_return=net,
        total_return_pct=net / initial_capital * 100.0 if initial_capital else 0.0,
        sharpe_ratio=sharpe_ratio(daily_returns, periods_per_year=periods_per_year),
        max_drawdown=dd_amount,
        max_drawdown_pct=dd_pct,
        win_rate=win_rate(p) * 100.0,
        profit_factor=profit_factor(p),
        expectancy=expectancy(p),
        total_trades=int(p.size),
        winning_trades=int(wins.size),
        losing_trades=int(losses.size),
        avg_win=float(wins.mean()) if wins.size else 0.0,
        avg_loss=float(abs(losses.mean())) if losses.size else 0.0,
    )
