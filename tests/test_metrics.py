"""Trade and equity statistics used by backtest reports."""

import pytest
from signal_engine.analytics.metrics import (
    sharpe_ratio,
    max_drawdown,
    win_rate,
    profit_factor,
    expectancy,
    compute_metrics,
)


def test_sharpe_ratio_empty():
    assert sharpe_ratio([]) == 0.0
    assert sharpe_ratio([1.5]) == 0.0


def test_sharpe_ratio_constant():
    assert sharpe_ratio([0.01] * 10) == 0.0


def test_sharpe_ratio_sign():
    assert sharpe_ratio([1.0, 2.0, 0.5, 1.5]) > 0
    assert sharpe_ratio([-1.0, -2.0, -0.5, -1.5]) < 0


def test_win_rate():
    assert win_rate([12.5, -3.0, 4.0, 0.0]) == 0.5
    assert win_rate([]) == 0.0


def test_profit_factor():
    assert profit_factor([30.0, -10.0, 15.0, -5.0]) == 3.0
    assert profit_factor([8.0, 0.0]) == float("inf")
    assert profit_factor([-2.5, 0.0]) == 0.0
    assert profit_factor([]) == 0.0


def test_expectancy():
    assert expectancy([40.0, -25.0, 0.0, 5.0]) == pytest.approx(5.0)
    assert expectancy([]) == 0.0


def test_max_drawdown():
    # equity 1 -> 1.2 -> 1.0 -> 1.1  =>  peak 1.2, fall 0.2 = 16.67%
    amount, pct = max_drawdown([1.0, 1.2, 1.0, 1.1])
    assert amount == pytest.approx(0.2)
    assert pct == pytest.approx(16.666, rel=0.01)


def test_max_drawdown_monotonic_and_initial():
    assert max_drawdown([1.0, 2.0, 3.0]) == (0.0, 0.0)
    assert max_drawdown([]) == (0.0, 0.0)
    amount, _ = max_drawdown([90.0, 95.0], initial=100.0)
    assert amount == pytest.approx(10.0)


def test_compute_metrics():
    pnls = [10.0, -5.0, 15.0, -3.0]
    m = compute_metrics(pnls, [1000.0, 1010.0, 1005.0, 1020.0, 1017.0], [0.0, 1.0, -0.5, 1.5, -0.3], 1000.0, 1017.0)
    assert m.total_trades == 4
    assert m.winning_trades == 2
    assert m.losing_trades == 2
    assert m.expectancy == pytest.approx(4.25)
    assert m.win_rate == pytest.approx(50.0)
    assert m.avg_win == pytest.approx(12.5)
    assert m.avg_loss == pytest.approx(4.0)
    assert m.total_return == pytest.approx(17.0)
    assert m.total_return_pct == pytest.approx(1.7)
    assert m.max_drawdown == pytest.approx(5.0)


def test_compute_metrics_zero_pnl_counts_as_loss():
    m = compute_metrics([0.0], [100.0], [0.0], 100.0, 100.0)
    assert m.winning_trades == 0
    assert m.losing_trades == 1
