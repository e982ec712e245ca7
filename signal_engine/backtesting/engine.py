"""
Backtest engines: day-by-day replay, one decision per bar from bars [0, i] only.

BacktestEngine is the baseline (LONG and SHORT, fixed or regime-adjusted weights).
AdaptiveBacktestEngine is spot-only and re-learns weights after every closed trade.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from signal_engine.analytics.metrics import compute_metrics
from signal_engine.core.types import (
    Action,
    BacktestReport,
    EquityPoint,
    IndicatorSettings,
    Position,
    PositionSide,
    PriceArrays,
    PriceSeries,
    Signal,
    Trade,
    WeightMap,
)
from signal_engine.learning.online import apply_trade_feedback
from signal_engine.strategies.base import BaseStrategy
from signal_engine.strategies.optimal_price import find_optimal_prices
from signal_engine.strategies.weighted import WeightedSignalStrategy
from signal_engine.strategies.weights import DEFAULT_PRESET, equal_weights, regime_weights

logger = logging.getLogger("signal_engine.backtest")

StopCheck = Callable[[], bool]


def warmup_period(length: int) -> int:
    """First replayed bar: min(30, 30% of the series)."""
    return min(30, int(length * 0.3))


def _holding_days(entry_date: str, exit_date: str, entry_index: int, exit_index: int) -> int:
    try:
        return int((pd.Timestamp(exit_date) - pd.Timestamp(entry_date)).days)
    except (ValueError, TypeError):
        return exit_index - entry_index


def _record_date(record: object) -> str:
    if isinstance(record, Mapping):
        value = record.get("date")
    else:
        value = getattr(record, "date", None)
    return "" if value is None else str(value)[:10]


def _date_span(series: object) -> Tuple[str, str]:
    """First and last record dates of a series that failed validation, "" when unknown."""
    if isinstance(series, pd.DataFrame):
        if len(series) > 0 and "date" in series.columns:
            return str(series["date"].iloc[0])[:10], str(series["date"].iloc[-1])[:10]
        return "", ""
    if not isinstance(series, Sequence) or isinstance(series, str) or len(series) == 0:
        return "", ""
    return _record_date(series[0]), _record_date(series[-1])


@dataclass
class _Run:
    """Mutable state owned by a single run."""
    bars: PriceArrays
    weights: WeightMap
    capital: float
    position: Optional[Position] = None
    entry_index: int = 0
    trades: List[Trade] = field(default_factory=list)
    equity: List[EquityPoint] = field(default_factory=list)
    weight_history: List[Tuple[str, WeightMap]] = field(default_factory=list)


class BacktestEngine:
    """
    Baseline replay. Enters LONG on BUY (SHORT on SELL when allowed) with confidence >=
    min_confidence using all capital; exits on the opposite signal or when confidence
    drops below exit_confidence. Weights are the fixed map if given, else regime-adjusted
    preset weights recomputed each bar.
    """

    def __init__(
        self,
        settings: Optional[IndicatorSettings] = None,
        initial_capital: float = 10000.0,
        min_confidence: float = 55.0,
        weights: Optional[WeightMap] = None,
        exit_confidence: float = 35.0,
        allow_short: bool = True,
        preset: str = DEFAULT_PRESET,
        strategy: Optional[BaseStrategy] = None,
    ):
        self.settings = settings or IndicatorSettings()
        self.initial_capital = initial_capital
        self.min_confidence = min_confidence
        self.weights = dict(weights) if weights else None
        self.exit_confidence = exit_confidence
        self.allow_short = allow_short
        self.preset = preset
        self.strategy = strategy or WeightedSignalStrategy(self.settings)

    def run(
        self,
        series: PriceSeries,
        symbol: str = "BTCUSDT",
        should_stop: Optional[StopCheck] = None,
    ) -> BacktestReport:
        """
        Replay `series` (oldest first). Malformed or empty input yields a zero-activity
        report. `should_stop` is polled once per bar; when it returns True the replay ends
        and any open position is closed at the last replayed bar.
        """
        report, _ = self._execute(series, symbol, should_stop)
        return report

    def _execute(
        self,
        series: PriceSeries,
        symbol: str,
        should_stop: Optional[StopCheck],
    ) -> Tuple[BacktestReport, Optional[_Run]]:
        bars = self._validated(series, symbol)
        if bars is None:
            return self._empty_report(series, symbol), None

        run = _Run(bars=bars, weights=self._initial_weights(), capital=self.initial_capital)
        start = warmup_period(len(bars))
        daily_returns: List[float] = []
        last_index = len(bars) - 1
        exit_reason = "end_of_data"

        for i in range(start, len(bars)):
            if should_stop is not None and should_stop():
                logger.info("Backtest %s cancelled at bar %d/%d", symbol, i, len(bars))
                last_index = i - 1
                exit_reason = "cancelled"
                break
            close = float(bars.close[i])
            weights = self._weights_for(run, i)
            signal = self.strategy.evaluate(bars, i, weights)

            value = self._portfolio_value(run, close)
            prev = run.equity[-1].portfolio_value if run.equity else None
            ret = (value - prev) / prev * 100.0 if i > start and prev else 0.0
            run.equity.append(EquityPoint(bars.dates[i], value, ret))
            daily_returns.append(ret)

            if run.position is None:
                self._maybe_enter(run, i, signal, weights)
            else:
                reason = self._exit_reason(run.position, signal)
                if reason is not None:
                    self._close(run, i, self._exit_price(run, i, weights), signal, reason)

        if run.position is not None and last_index >= 0:
            self._close(run, last_index, float(bars.close[last_index]), None, exit_reason)

        report = self._report(run, symbol, daily_returns)
        logger.info(
            "Backtest %s: %d trades, return %.2f%%, win rate %.1f%%, max DD %.2f%%, Sharpe %.2f",
            symbol, report.total_trades, report.total_return_pct, report.win_rate,
            report.max_drawdown_pct, report.sharpe_ratio,
        )
        return report, run

    # --- hooks -------------------------------------------------------------

    def _initial_weights(self) -> WeightMap:
        return dict(self.weights) if self.weights else {}

    def _weights_for(self, run: _Run, index: int) -> WeightMap:
        if self.weights:
            return self.weights
        return regime_weights(run.bars, index, self.settings, self.preset)

    def _exit_reason(self, position: Position, signal: Signal) -> Optional[str]:
        opposite = Action.SELL if position.side == PositionSide.LONG else Action.BUY
        if signal.action == opposite:
            return "signal"
        if signal.confidence < self.exit_confidence:
            return "low_confidence"
        return None

    def _entry_price(self, run: _Run, index: int, weights: WeightMap) -> float:
        return float(run.bars.close[index])

    def _exit_price(self, run: _Run, index: int, weights: WeightMap) -> float:
        return float(run.bars.close[index])

    def _on_trade_closed(self, run: _Run, trade: Trade) -> None:
        pass

    # --- position lifecycle -----------------------------------------------

    def _maybe_enter(self, run: _Run, index: int, signal: Signal, weights: WeightMap) -> None:
        if signal.confidence < self.min_confidence:
            return
        if signal.action == Action.BUY:
            side = PositionSide.LONG
        elif signal.action == Action.SELL and self.allow_short:
            side = PositionSide.SHORT
        else:
            return
        price = self._entry_price(run, index, weights)
        if price <= 0 or run.capital <= 0:
            return
        run.position = Position(
            side=side,
            entry_price=price,
            entry_date=run.bars.dates[index],
            quantity=run.capital / price,
            entry_confidence=signal.confidence,
            entry_reasoning=list(signal.reasoning),
            entry_snapshot=dict(signal.indicator_values),
            entry_sources=list(signal.sources),
            entry_weights=dict(weights),
        )
        run.entry_index = index
        run.capital = 0.0
        logger.debug("%s open %s @ %.4f (confidence %.1f)", run.bars.dates[index], side.value, price, signal.confidence)

    def _close(self, run: _Run, index: int, exit_price: float, signal: Optional[Signal], reason: str) -> None:
        pos = run.position
        if pos.side == PositionSide.LONG:
            profit = pos.quantity * (exit_price - pos.entry_price)
            run.capital = pos.quantity * exit_price
        else:
            profit = pos.quantity * (pos.entry_price - exit_price)
            run.capital = pos.quantity * (2 * pos.entry_price - exit_price)
        trade = Trade(
            entry_date=pos.entry_date,
            exit_date=run.bars.dates[index],
            entry_price=pos.entry_price,
            exit_price=exit_price,
            action=Action.BUY if pos.side == PositionSide.LONG else Action.SELL,
            quantity=pos.quantity,
            profit=profit,
            profit_pct=profit / (pos.quantity * pos.entry_price) * 100.0,
            confidence=pos.entry_confidence,
            holding_period_days=_holding_days(pos.entry_date, run.bars.dates[index], run.entry_index, index),
            reasoning=list(pos.entry_reasoning),
            entry_sources=list(pos.entry_sources),
            entry_weights=dict(pos.entry_weights),
            indicator_values=dict(signal.indicator_values) if signal is not None else dict(pos.entry_snapshot),
            exit_reason=reason,
        )
        run.trades.append(trade)
        run.position = None
        logger.debug("%s close %s @ %.4f profit %.2f (%s)", trade.exit_date, pos.side.value, exit_price, profit, reason)
        self._on_trade_closed(run, trade)

    @staticmethod
    def _portfolio_value(run: _Run, close: float) -> float:
        pos = run.position
        if pos is None:
            return run.capital
        if pos.side == PositionSide.LONG:
            return pos.quantity * close
        return pos.quantity * (2 * pos.entry_price - close)

    # --- input / output ----------------------------------------------------

    @staticmethod
    def _validated(series: PriceSeries, symbol: str) -> Optional[PriceArrays]:
        try:
            bars = PriceArrays.from_series(series)
        except (ValueError, TypeError, KeyError) as e:
            logger.warning("Backtest %s: malformed price series (%s)", symbol, e)
            return None
        if len(bars) == 0:
            logger.warning("Backtest %s: empty price series", symbol)
            return None
        if not np.all(np.isfinite(bars.close)) or np.any(bars.close <= 0):
            logger.warning("Backtest %s: non-finite or non-positive closes", symbol)
            return None
        columns = np.vstack([bars.open, bars.high, bars.low, bars.volume])
        if not np.all(np.isfinite(columns)):
            logger.warning("Backtest %s: missing open/high/low/volume values", symbol)
            return None
        return bars

    def _empty_report(self, series: PriceSeries, symbol: str) -> BacktestReport:
        start, end = _date_span(series)
        return BacktestReport(
            symbol=symbol,
            start_date=start,
            end_date=end,
            initial_capital=self.initial_capital,
            final_capital=self.initial_capital,
        )

    def _report(self, run: _Run, symbol: str, daily_returns: List[float]) -> BacktestReport:
        m = compute_metrics(
            [t.profit for t in run.trades],
            [p.portfolio_value for p in run.equity],
            daily_returns,
            self.initial_capital,
            run.capital,
        )
        return BacktestReport(
            symbol=symbol,
            start_date=run.bars.dates[0],
            end_date=run.bars.dates[-1],
            initial_capital=self.initial_capital,
            final_capital=run.capital,
            total_return=m.total_return,
            total_return_pct=m.total_return_pct,
            total_trades=m.total_trades,
            winning_trades=m.winning_trades,
            losing_trades=m.losing_trades,
            win_rate=m.win_rate,
            avg_win=m.avg_win,
            avg_loss=m.avg_loss,
            max_drawdown=m.max_drawdown,
            max_drawdown_pct=m.max_drawdown_pct,
            sharpe_ratio=m.sharpe_ratio,
            profit_factor=m.profit_factor,
            expectancy=m.expectancy,
            trades=list(run.trades),
            equity_curve=list(run.equity),
        )


@dataclass
class AdaptiveBacktestResult:
    """Report plus the weights learned during the run."""
    report: BacktestReport
    weights: WeightMap
    weight_history: List[Tuple[str, WeightMap]] = field(default_factory=list)


class AdaptiveBacktestEngine(BacktestEngine):
    """
    Spot-only replay that starts from equal weights and, after every closed trade, moves
    weight toward the indicators that voted for the entry in proportion to the trade's
    return. Entries and exits use the optimal-price targets when they lie within 0.5%
    of the close.
    """

    def __init__(
        self,
        settings: Optional[IndicatorSettings] = None,
        initial_capital: float = 10000.0,
        min_confidence: float = 55.0,
        learning_rate: float = 0.01,
        use_optimal_prices: bool = True,
        initial_weights: Optional[WeightMap] = None,
        strategy: Optional[BaseStrategy] = None,
    ):
        super().__init__(
            settings=settings,
            initial_capital=initial_capital,
            min_confidence=min_confidence,
            allow_short=False,
            strategy=strategy,
        )
        self.learning_rate = learning_rate
        self.use_optimal_prices = use_optimal_prices
        self.initial_weights = dict(initial_weights) if initial_weights else None

    def run_adaptive(
        self,
        series: PriceSeries,
        symbol: str = "BTCUSDT",
        should_stop: Optional[StopCheck] = None,
    ) -> AdaptiveBacktestResult:
        report, run = self._execute(series, symbol, should_stop)
        if run is None:
            return AdaptiveBacktestResult(report, self._initial_weights())
        return AdaptiveBacktestResult(report, dict(run.weights), list(run.weight_history))

    def _initial_weights(self) -> WeightMap:
        if self.initial_weights:
            return dict(self.initial_weights)
        return equal_weights(self.settings.enabled())

    def _weights_for(self, run: _Run, index: int) -> WeightMap:
        return run.weights

    def _exit_reason(self, position: Position, signal: Signal) -> Optional[str]:
        return "signal" if signal.action == Action.SELL else None

    def _entry_price(self, run: _Run, index: int, weights: WeightMap) -> float:
        close = float(run.bars.close[index])
        if not self.use_optimal_prices:
            return close
        target = find_optimal_prices(run.bars.upto(index), close, self.settings, weights, sides=(Action.BUY,)).buy
        return target if target is not None and close <= target * 1.005 else close

    def _exit_price(self, run: _Run, index: int, weights: WeightMap) -> float:
        close = float(run.bars.close[index])
        if not self.use_optimal_prices:
            return close
        target = find_optimal_prices(run.bars.upto(index), close, self.settings, weights, sides=(Action.SELL,)).sell
        return target if target is not None and close >= target * 0.995 else close

    def _on_trade_closed(self, run: _Run, trade: Trade) -> None:
        if trade.exit_reason in ("end_of_data", "cancelled"):
            return
        run.weights = apply_trade_feedback(run.weights, trade.entry_sources, trade.profit_pct, self.learning_rate)
        run.weight_history.append((trade.exit_date, dict(run.weights)))


def run_backtest(
    series: PriceSeries,
    symbol: str = "BTCUSDT",
    initial_capital: float = 10000.0,
    min_confidence: float = 55.0,
    settings: Optional[IndicatorSettings] = None,
    weights: Optional[WeightMap] = None,
    should_stop: Optional[StopCheck] = None,
) -> BacktestReport:
    engine = BacktestEngine(settings, initial_capital, min_confidence, weights=weights)
    return engine.run(series, symbol, should_stop)


def run_adaptive_backtest(
    series: PriceSeries,
    symbol: str = "BTCUSDT",
    initial_capital: float = 10000.0,
    min_confidence: float = 55.0,
    settings: Optional[IndicatorSettings] = None,
    learning_rate: float = 0.01,
    use_optimal_prices: bool = True,
    should_stop: Optional[StopCheck] = None,
) -> AdaptiveBacktestResult:
    engine = AdaptiveBacktestEngine(settings, initial_capital, min_confidence, learning_rate, use_optimal_prices)
    return engine.run_adaptive(series, symbol, should_stop)
