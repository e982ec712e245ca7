"""Core: config, types, logging."""

from signal_engine.core.config import load_config, Config
from signal_engine.core.types import (
    Action,
    PositionSide,
    PricePoint,
    IndicatorSettings,
    SignalSource,
    Signal,
    Position,
    Trade,
    EquityPoint,
    BacktestReport,
    as_frame,
)
from signal_engine.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "Action",
    "PositionSide",
    "PricePoint",
    "IndicatorSettings",
    "SignalSource",
    "Signal",
    "Position",
    "Trade",
    "EquityPoint",
    "BacktestReport",
    "as_frame",
    "setup_logging",
]
