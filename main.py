#!/usr/bin/env python3
"""
Signal Engine CLI: backtest | adaptive | signal | learning | reset
Usage:
  python main.py backtest [--config config.yaml] [--symbol BTCUSDT]
  python main.py adaptive [--config config.yaml]
  python main.py signal [--config config.yaml]
  python main.py learning [--config config.yaml]
  python main.py reset [--config config.yaml]
"""

from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path

# Project root
ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from signal_engine.core.config import load_config, Config
from signal_engine.core.logger import setup_logging
from signal_engine.core.types import BacktestReport, PriceArrays
from signal_engine.backtesting.engine import BacktestEngine, AdaptiveBacktestEngine
from signal_engine.data import BinanceKlineSource, CsvPriceSource, PriceSource, SyntheticPriceSource
from signal_engine.learning import AdaptiveWeightLearner, TradeOutcome, optimize_weights
from signal_engine.storage import JsonFileStore
from signal_engine.strategies import find_optimal_prices, generate_signal, regime_weights

logger = logging.getLogger("signal_engine")


def _setup(config_path: Path | None, symbol: str | None) -> Config:
    config = load_config(config_path, ROOT)
    if symbol:
        config = config.with_symbol(symbol)
    setup_logging(config.log_level, ROOT / config.log_dir, config.log_file)
    return config


def _price_source(config: Config) -> PriceSource:
    if config.data_source == "binance":
        return BinanceKlineSource(config.binance_api_key, config.binance_api_secret, interval=config.interval)
    if config.data_source == "csv":
        if not config.csv_path:
            raise ValueError("data_source is csv but no csv_path is configured")
        return CsvPriceSource(ROOT / config.csv_path)
    return SyntheticPriceSource()


def _learner(config: Config) -> AdaptiveWeightLearner:
    store = JsonFileStore(ROOT / config.state_dir)
    return AdaptiveWeightLearner(
        store,
        config.symbol,
        config.indicators.enabled(),
        learning_rate=config.learning_rate,
        performance_window=config.performance_window,
    )


def _print_report(report: BacktestReport) -> None:
    print("\n--- Backtest Results ---")
    print(f"Symbol: {report.symbol} ({report.start_date} -> {report.end_date})")
    print(f"Total trades: {report.total_trades} (wins: {report.winning_trades}, losses: {report.losing_trades})")
    print(f"Final capital: {report.final_capital:.2f} (initial {report.initial_capital:.2f})")
    print(f"Total return: {report.total_return_pct:.2f}%")
    print(f"Sharpe ratio: {report.sharpe_ratio:.2f}")
    print(f"Max drawdown: {report.max_drawdown_pct:.2f}%")
    print(f"Win rate: {report.win_rate:.1f}%")
    print(f"Profit factor: {report.profit_factor:.2f}")
    print(f"Expectancy: {report.expectancy:.2f} USD/trade")


def _print_weights(title: str, weights: dict) -> None:
    print(f"\n--- {title} ---")
    for name, w in sorted(weights.items(), key=lambda kv: kv[1], reverse=True):
        print(f"{name:<16} {w:.4f}")


def run_backtest(config_path: Path | None, symbol: str | None = None) -> int:
    """Baseline backtest with regime-adjusted preset weights."""
    config = _setup(config_path, symbol)
    series = _price_source(config).get_series(config.symbol, config.backtest_start, config.backtest_end)
    engine = BacktestEngine(
        settings=config.indicators,
        initial_capital=config.backtest_initial_capital,
        min_confidence=config.min_confidence,
        exit_confidence=config.exit_confidence,
        allow_short=config.allow_short,
        preset=config.weight_preset,
    )
    report = engine.run(series, symbol=config.symbol)
    _print_report(report)
    if report.trades:
        days = max(1, sum(t.holding_period_days for t in report.trades) // len(report.trades))
        best = optimize_weights(report.trades, config.indicators, days)
        _print_weights(f"Suggested weights ({best.strategy})", best.weights)
    return 0


def run_adaptive(config_path: Path | None, symbol: str | None = None) -> int:
    """Adaptive backtest starting from the persisted weights; learned outcomes are saved."""
    config = _setup(config_path, symbol)
    series = _price_source(config).get_series(config.symbol, config.backtest_start, config.backtest_end)
    learner = _learner(config)
    engine = AdaptiveBacktestEngine(
        settings=config.indicators,
        initial_capital=config.backtest_initial_capital,
        min_confidence=config.min_confidence,
        learning_rate=config.backtest_learning_rate,
        use_optimal_prices=config.use_optimal_prices,
        initial_weights=learner.current_weights(),
    )
    result = engine.run_adaptive(series, symbol=config.symbol)
    _print_report(result.report)
    _print_weights("Weights after backtest", result.weights)
    for trade in result.report.trades:
        learner.record_trade(TradeOutcome.from_trade(trade))
    stats = learner.learning_stats()
    logger.info("Recorded %d trades, learning progress %.0f%%", len(result.report.trades), stats.learning_progress)
    _print_weights("Persisted weights", learner.current_weights())
    return 0


def run_signal(config_path: Path | None, symbol: str | None = None) -> int:
    """Latest signal on the configured history, with learned weights and optimal prices."""
    config = _setup(config_path, symbol)
    series = _price_source(config).get_series(config.symbol, config.backtest_start, config.backtest_end)
    bars = PriceArrays.from_series(series)
    if len(bars) == 0:
        logger.error("No price data for %s", config.symbol)
        return 1
    learner = _learner(config)
    weights = learner.current_weights() if learner.state.total_trades else regime_weights(
        bars, len(bars) - 1, config.indicators, config.weight_preset
    )
    last = len(bars) - 1
    signal = generate_signal(bars, last, config.indicators, weights)
    close = float(bars.close[last])
    prices = find_optimal_prices(bars, close, config.indicators, weights)
    print(f"\n--- Signal {config.symbol} @ {bars.dates[last]} close {close:.2f} ---")
    print(f"Action: {signal.action.value} (confidence {signal.confidence:.1f}%)")
    for line in signal.reasoning:
        print(f"  - {line}")
    print(f"Optimal buy: {prices.buy:.2f}" if prices.buy is not None else "Optimal buy: none within range")
    print(f"Optimal sell: {prices.sell:.2f}" if prices.sell is not None else "Optimal sell: none within range")
    return 0


def run_learning(config_path: Path | None, symbol: str | None = None) -> int:
    """Print the learning snapshot (weights, stats, recent trades) as JSON."""
    config = _setup(config_path, symbol)
    print(json.dumps(_learner(config).export_snapshot(), indent=2, default=str))
    return 0


def run_reset(config_path: Path | None, symbol: str | None = None) -> int:
    config = _setup(config_path, symbol)
    _learner(config).reset()
    print(f"Learning state for {config.symbol} reset.")
    return 0


MODES = {
    "backtest": run_backtest,
    "adaptive": run_adaptive,
    "signal": run_signal,
    "learning": run_learning,
    "reset": run_reset,
}


def main() -> int:
    parser = argparse.ArgumentParser(description="Signal Engine CLI")
    parser.add_argument("mode", choices=list(MODES), help="What to run")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yaml")
    parser.add_argument("--symbol", default=None, help="Override the configured symbol")
    args = parser.parse_args()
    return MODES[args.mode](args.config, args.symbol)


if __name__ == "__main__":
    exit(main())
