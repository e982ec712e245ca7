"""
Configuration: config.yaml sections overlaid by environment variables (.env supported).
Exchange credentials are read from the environment only.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from dotenv import load_dotenv

from signal_engine.core.types import IndicatorSettings

logger = logging.getLogger("signal_engine.config")

_TRUTHY = ("true", "1", "yes", "on")


def _project_root(project_root: Optional[Path]) -> Path:
    return project_root or Path(__file__).resolve().parents[2]


def load_dotenv_if_exists(project_root: Optional[Path] = None) -> None:
    """Load <root>/.env when it exists. Existing environment variables win."""
    path = _project_root(project_root) / ".env"
    if path.exists():
        load_dotenv(path)


def _raw(key: str, fallback: Any) -> Any:
    value = os.getenv(key)
    if value is None or not value.strip():
        return fallback
    return value.strip()


def _text(key: str, fallback: Any = "") -> str:
    value = _raw(key, fallback)
    return "" if value is None else str(value).strip()


def _number(key: str, fallback: Any, cast, default):
    """Env value, else YAML value, else default. Unparseable values are logged and skipped."""
    for source, candidate in (("env " + key, os.getenv(key)), ("config", fallback)):
        if candidate is None or (isinstance(candidate, str) and not candidate.strip()):
            continue
        try:
            return cast(candidate)
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid %s value %r for %s", source, candidate, key)
    return default


def _flag(key: str, fallback: Any, default: bool) -> bool:
    value = _raw(key, fallback)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in _TRUTHY


def _date_or_none(value: Any) -> Optional[str]:
    # YAML parses unquoted dates to datetime.date
    return str(value)[:10] if value else None


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"config section '{name}' must be a mapping")
    return section


def load_config(config_path: Optional[Path] = None, project_root: Optional[Path] = None) -> "Config":
    """Read config.yaml (missing file means defaults), then apply env overrides."""
    load_dotenv_if_exists(project_root)
    path = config_path or _project_root(project_root) / "config.yaml"
    data: dict[str, Any] = {}
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

    market = _section(data, "market")
    signals = _section(data, "signals")
    backtest = _section(data, "backtest")
    learning = _section(data, "learning")
    storage = _section(data, "storage")
    log_cfg = _section(data, "logging")

    return Config(
        binance_api_key=_text("BINANCE_API_KEY"),
        binance_api_secret=_text("BINANCE_API_SECRET"),
        symbol=_text("SYMBOL", market.get("symbol", "BTCUSDT")).upper(),
        interval=_text("INTERVAL", market.get("interval", "1d")),
        data_source=_text("DATA_SOURCE", market.get("data_source", "synthetic")).lower(),
        csv_path=_text("CSV_PATH", market.get("csv_path")) or None,
        indicators=IndicatorSettings.from_mapping(signals.get("indicators")),
        weight_preset=_text("WEIGHT_PRESET", signals.get("weight_preset", "profit")),
        min_confidence=_number("MIN_CONFIDENCE", signals.get("min_confidence"), float, 55.0),
        exit_confidence=_number("EXIT_CONFIDENCE", signals.get("exit_confidence"), float, 35.0),
        backtest_start=_date_or_none(_raw("BACKTEST_START", backtest.get("start_date"))),
        backtest_end=_date_or_none(_raw("BACKTEST_END", backtest.get("end_date"))),
        backtest_initial_capital=_number("INITIAL_CAPITAL", backtest.get("initial_capital"), float, 10000.0),
        allow_short=_flag("ALLOW_SHORT", backtest.get("allow_short"), True),
        use_optimal_prices=_flag("USE_OPTIMAL_PRICES", backtest.get("use_optimal_prices"), True),
        backtest_learning_rate=_number("BACKTEST_LEARNING_RATE", learning.get("backtest_learning_rate"), float, 0.01),
        learning_rate=_number("LEARNING_RATE", learning.get("learning_rate"), float, 0.05),
        performance_window=_number("PERFORMANCE_WINDOW", learning.get("performance_window"), int, 10),
        state_dir=Path(_text("STATE_DIR", storage.get("state_dir", "state"))),
        log_level=_text("LOG_LEVEL", log_cfg.get("level", "INFO")),
        log_dir=Path(log_cfg.get("log_dir", "logs")),
        log_file=log_cfg.get("log_file", "signal_engine.log"),
    )


class Config:
    """Unified configuration. Immutable after load."""

    __slots__ = (
        "binance_api_key", "binance_api_secret",
        "symbol", "interval", "data_source", "csv_path",
        "indicators", "weight_preset", "min_confidence", "exit_confidence",
        "backtest_start", "backtest_end", "backtest_initial_capital", "allow_short", "use_optimal_prices",
        "backtest_learning_rate", "learning_rate", "performance_window",
        "state_dir",
        "log_level", "log_dir", "log_file",
    )

    def __init__(
        self,
        binance_api_key: str = "",
        binance_api_secret: str = "",
        symbol: str = "BTCUSDT",
        interval: str = "1d",
        data_source: str = "synthetic",
        csv_path: Optional[str] = None,
        indicators: Optional[IndicatorSettings] = None,
        weight_preset: str = "profit",
        min_confidence: float = 55.0,
        exit_confidence: float = 35.0,
        backtest_start: Optional[str] = None,
        backtest_end: Optional[str] = None,
        backtest_initial_capital: float = 10000.0,
        allow_short: bool = True,
        use_optimal_prices: bool = True,
        backtest_learning_rate: float = 0.01,
        learning_rate: float = 0.05,
        performance_window: int = 10,
        state_dir: Path = None,
        log_level: str = "INFO",
        log_dir: Path = None,
        log_file: str = "signal_engine.log",
    ):
        self.binance_api_key = binance_api_key
        self.binance_api_secret = binance_api_secret
        self.symbol = symbol
        self.interval = interval
        self.data_source = data_source
        self.csv_path = csv_path
        self.indicators = indicators or IndicatorSettings()
        self.weight_preset = weight_preset
        self.min_confidence = min_confidence
        self.exit_confidence = exit_confidence
        self.backtest_start = backtest_start
        self.backtest_end = backtest_end
        self.backtest_initial_capital = backtest_initial_capital
        self.allow_short = allow_short
        self.use_optimal_prices = use_optimal_prices
        self.backtest_learning_rate = backtest_learning_rate
        self.learning_rate = learning_rate
        self.performance_window = performance_window
        self.state_dir = Path(state_dir) if state_dir else Path("state")
        self.log_level = log_level
        self.log_dir = Path(log_dir) if log_dir else Path("logs")
        self.log_file = log_file

    def with_symbol(self, symbol: str) -> "Config":
        """Copy with a different symbol."""
        values = {name: getattr(self, name) for name in self.__slots__}
        values["symbol"] = symbol.upper()
        return Config(**values)
