"""
Core data types for price bars, indicator settings, signals, positions, trades and reports.
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd


INDICATORS = (
    "rsi",
    "macd",
    "bollinger_bands",
    "moving_averages",
    "stochastic_rsi",
    "williams_r",
    "cci",
    "adx",
    "obv",
    "volume_analysis",
    "eq30",
    "eq60",
    "eq90",
)

HIGH_RELIABILITY = frozenset({"eq30", "eq60", "eq90", "volume_analysis", "macd", "adx"})

OHLCV_COLUMNS = ["date", "open", "high", "low", "close", "volume"]

WeightMap = Dict[str, float]
IndicatorSnapshot = Dict[str, Any]


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class PositionSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"
    NONE = "NONE"


@dataclass(frozen=True)
class PricePoint:
    """Daily OHLCV record. high >= max(open, close), low <= min(open, close)."""
    date: str
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


PriceSeries = Union[pd.DataFrame, Sequence[PricePoint]]


def _record(point: Any) -> dict:
    if isinstance(point, PricePoint):
        return point.to_dict()
    if isinstance(point, Mapping):
        return {c: point.get(c) for c in OHLCV_COLUMNS}
    raise TypeError(f"Unsupported price record: {type(point).__name__}")


def as_frame(series: PriceSeries) -> pd.DataFrame:
    """
    Return an OHLCV DataFrame (date, open, high, low, close, volume) for a series.
    Records may be PricePoints or mappings with those keys; anything else is a TypeError.
    """
    if isinstance(series, pd.DataFrame):
        return series
    return pd.DataFrame([_record(p) for p in series], columns=OHLCV_COLUMNS)


@dataclass(frozen=True)
class PriceArrays:
    """Column arrays of a price series, oldest first."""
    dates: List[str]
    open: np.ndarray
    high: np.ndarray
    low: np.ndarray
    close: np.ndarray
    volume: np.ndarray

    def __len__(self) -> int:
        return len(self.close)

    @classmethod
    def from_series(cls, series: Union["PriceArrays", PriceSeries]) -> "PriceArrays":
        if isinstance(series, PriceArrays):
            return series
        df = as_frame(series)
        missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Price series missing columns: {missing}")
        return cls(
            dates=[str(d)[:10] for d in df["date"]],
            open=df["open"].to_numpy(dtype=float),
            high=df["high"].to_numpy(dtype=float),
            low=df["low"].to_numpy(dtype=float),
            close=df["close"].to_numpy(dtype=float),
            volume=df["volume"].to_numpy(dtype=float),
        )

    def upto(self, index: int) -> "PriceArrays":
        """Bars [0, index] inclusive."""
        end = index + 1
        return PriceArrays(
            self.dates[:end], self.open[:end], self.high[:end],
            self.low[:end], self.close[:end], self.volume[:end],
        )

    def with_last_close(self, price: float) -> "PriceArrays":
        """Copy with only the final bar's close replaced."""
        close = self.close.copy()
        close[-1] = price
        return PriceArrays(self.dates, self.open, self.high, self.low, close, self.volume)


@dataclass
class IndicatorSettings:
    """Which indicators take part in a decision."""
    rsi: bool = True
    macd: bool = True
    bollinger_bands: bool = True
    moving_averages: bool = True
    stochastic_rsi: bool = True
    williams_r: bool = True
    cci: bool = True
    adx: bool = True
    obv: bool = True
    volume_analysis: bool = True
    eq30: bool = True
    eq60: bool = True
    eq90: bool = True

    def enabled(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]

    def is_enabled(self, name: str) -> bool:
        return bool(getattr(self, name, False))

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "IndicatorSettings":
        data = data or {}
        return cls(**{k: bool(v) for k, v in data.items() if k in INDICATORS})

    @classmethod
    def only(cls, *names: str) -> "IndicatorSettings":
        unknown = set(names) - set(INDICATORS)
        if unknown:
            raise ValueError(f"Unknown indicators: {sorted(unknown)}")
        return cls(**{name: name in names for name in INDICATORS})


@dataclass(frozen=True)
class SignalSource:
    """One triggered indicator rule: direction and strength on a 0..1 scale."""
    indicator: str
    direction: Action
    strength: float
    description: str


@dataclass(frozen=True)
class Signal:
    """Decision at one bar: action, confidence in [0, 100], display reasoning and raw values."""
    action: Action
    confidence: float
    reasoning: List[str] = field(default_factory=list)
    indicator_values: IndicatorSnapshot = field(default_factory=dict)
    sources: List[SignalSource] = field(default_factory=list)


@dataclass
class Position:
    """Open simulated position inside one backtest run."""
    side: PositionSide
    entry_price: float
    entry_date: str
    quantity: float
    entry_confidence: float
    entry_reasoning: List[str] = field(default_factory=list)
    entry_snapshot: IndicatorSnapshot = field(default_factory=dict)
    entry_sources: List[SignalSource] = field(default_factory=list)
    entry_weights: WeightMap = field(default_factory=dict)


@dataclass(frozen=True)
class Trade:
    """Closed round-trip."""
    entry_date: str
    exit_date: str
    entry_price: float
    exit_price: float
    action: Action
    quantity: float
    profit: float
    profit_pct: float
    confidence: float
    holding_period_days: int
    reasoning: List[str] = field(default_factory=list)
    entry_sources: List[SignalSource] = field(default_factory=list)
    entry_weights: WeightMap = field(default_factory=dict)
    indicator_values: IndicatorSnapshot = field(default_factory=dict)
    exit_reason: str = "signal"  # "signal" | "low_confidence" | "end_of_data" | "cancelled"


@dataclass(frozen=True)
class EquityPoint:
    date: str
    portfolio_value: float
    return_pct: float


@dataclass
class BacktestReport:
    """Aggregate output of one backtest run."""
    symbol: str
    start_date: str
    end_date: str
    initial_capital: float
    final_capital: float
    total_return: float = 0.0
    total_return_pct: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    max_drawdown: float = 0.0
    max_drawdown_pct: float = 0.0
    sharpe_ratio: float = 0.0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    trades: List[Trade] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)
