"""Unit tests for core.config."""

import logging
from pathlib import Path

from signal_engine.core.config import Config, load_config
from signal_engine.core.logger import setup_logging


def test_defaults_without_files(tmp_path, monkeypatch):
    for key in ("SYMBOL", "DATA_SOURCE", "MIN_CONFIDENCE", "ALLOW_SHORT", "STATE_DIR"):
        monkeypatch.delenv(key, raising=False)
    config = load_config(tmp_path / "missing.yaml", tmp_path)
    assert config.symbol == "BTCUSDT"
    assert config.data_source == "synthetic"
    assert config.min_confidence == 55.0
    assert config.allow_short is True
    assert config.state_dir == Path("state")
    assert len(config.indicators.enabled()) == 13


def test_yaml_and_env_overlay(tmp_path, monkeypatch):
    for key in ("SYMBOL", "DATA_SOURCE", "CSV_PATH", "WEIGHT_PRESET", "MIN_CONFIDENCE", "INITIAL_CAPITAL", "LEARNING_RATE"):
        monkeypatch.delenv(key, raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "market:\n"
        "  symbol: ethusdt\n"
        "  data_source: CSV\n"
        "  csv_path: data/eth.csv\n"
        "signals:\n"
        "  weight_preset: crypto\n"
        "  indicators:\n"
        "    cci: false\n"
        "    williams_r: false\n"
        "backtest:\n"
        "  start_date: 2023-01-01\n"
        "  initial_capital: 2500\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("MIN_CONFIDENCE", "62.5")
    monkeypatch.setenv("LEARNING_RATE", "not-a-number")
    config = load_config(path, tmp_path)
    assert config.symbol == "ETHUSDT"
    assert config.data_source == "csv"
    assert config.csv_path == "data/eth.csv"
    assert config.weight_preset == "crypto"
    assert not config.indicators.cci
    assert len(config.indicators.enabled()) == 11
    assert config.backtest_start == "2023-01-01"
    assert config.backtest_end is None
    assert config.backtest_initial_capital == 2500.0
    assert config.min_confidence == 62.5
    assert config.learning_rate == 0.05


def test_with_symbol_copies():
    config = Config(symbol="BTCUSDT", min_confidence=60.0)
    other = config.with_symbol("solusdt")
    assert other.symbol == "SOLUSDT"
    assert other.min_confidence == 60.0
    assert config.symbol == "BTCUSDT"


def test_setup_logging_writes_file(tmp_path):
    logger = setup_logging("debug", tmp_path / "logs", "run.log")
    setup_logging("debug", tmp_path / "logs", "run.log")
    assert len(logger.handlers) == 2
    logging.getLogger("signal_engine.backtest").info("Backtest BTCUSDT: 0 trades")
    for handler in logger.handlers:
        handler.flush()
    text = (tmp_path / "logs" / "run.log").read_text(encoding="utf-8")
    assert "| INFO     | signal_engine.backtest | Backtest BTCUSDT: 0 trades" in text
    assert logging.getLogger("urllib3").level == logging.WARNING
    setup_logging("INFO")
