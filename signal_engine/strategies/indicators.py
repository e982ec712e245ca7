"""
Technical indicators over close / OHLCV arrays.

Every function looks only at the data it is given (callers truncate to the decision bar)
and returns a neutral default when the window is too short instead of raising.
"""

from __future__ import annotations
from typing import Optional, Sequence

import numpy as np
import pandas as pd

ArrayLike = Sequence[float]


def _arr(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=float)


def sma(closes: ArrayLike, period: int) -> float:
    """Mean of the last `period` values; last value (or 0) when history is short."""
    arr = _arr(closes)
    if len(arr) == 0:
        return 0.0
    if len(arr) < period:
        return float(arr[-1])
    return float(arr[-period:].mean())


def ema(closes: ArrayLike, period: int) -> float:
    """EMA seeded with the first value, k = 2 / (period + 1)."""
    arr = _arr(closes)
    if len(arr) == 0:
        return 0.0
    # Shifted by the first value so a constant input stays exact.
    base = arr[0]
    shifted = pd.Series(arr - base).ewm(span=period, adjust=False).mean()
    return float(base + shifted.iloc[-1])


def rsi(closes: ArrayLike, period: int = 14) -> float:
    """Mean gain / mean loss over the last `period` changes, in [0, 100]."""
    arr = _arr(closes)
    if len(arr) < period + 1:
        return 50.0
    changes = np.diff(arr)[-period:]
    avg_gain = changes[changes > 0].sum() / period
    avg_loss = -changes[changes < 0].sum() / period
    if avg_loss == 0:
        return 100.0 if avg_gain > 0 else 50.0
    value = 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
    return float(min(100.0, max(0.0, value)))


def rsi_series(closes: ArrayLike, period: int = 14, count: Optional[int] = None) -> np.ndarray:
    """RSI of each trailing (period + 1)-close window; the last `count` readings if given."""
    arr = _arr(closes)
    ends = range(period, len(arr))
    if count is not None:
        ends = ends[-count:]
    return np.array([rsi(arr[i - period:i + 1], period) for i in ends], dtype=float)


def macd(closes: ArrayLike, signal_ratio: float = 0.2) -> dict:
    """
    EMA12 - EMA26. The signal line is `signal_ratio * macd` rather than an EMA9 of MACD;
    confidence thresholds downstream are tuned to this simplified line.
    """
    arr = _arr(closes)
    if len(arr) < 26:
        return {"macd": 0.0, "signal": 0.0, "histogram": 0.0}
    line = ema(arr, 12) - ema(arr, 26)
    signal = line * signal_ratio
    return {"macd": line, "signal": signal, "histogram": line - signal}


def bollinger_bands(closes: ArrayLike, period: int = 20, num_std: float = 2.0) -> dict:
    """SMA ± num_std population std. Bands collapse onto the last close when history is short."""
    arr = _arr(closes)
    if len(arr) < period:
        last = float(arr[-1]) if len(arr) else 0.0
        return {"upper": last, "middle": last, "lower": last}
    window = arr[-period:]
    middle = float(window.mean())
    std = float(window.std())
    return {"upper": middle + num_std * std, "middle": middle, "lower": middle - num_std * std}


def stochastic_rsi(closes: ArrayLike, rsi_period: int = 14, stoch_period: int = 14) -> float:
    """Position of the latest RSI within the min/max of the last `stoch_period` RSI readings."""
    arr = _arr(closes)
    if len(arr) < rsi_period + stoch_period:
        return 50.0
    recent = rsi_series(arr, rsi_period, count=stoch_period)
    lo, hi = recent.min(), recent.max()
    if hi == lo:
        return 50.0
    value = (recent[-1] - lo) / (hi - lo) * 100.0
    return float(min(100.0, max(0.0, value)))


def williams_r(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14) -> float:
    """(HH - close) / (HH - LL) * -100, in [-100, 0]."""
    h, l, c = _arr(highs), _arr(lows), _arr(closes)
    if len(c) < period:
        return -50.0
    hh = h[-period:].max()
    ll = l[-period:].min()
    if hh == ll:
        return -50.0
    value = (hh - c[-1]) / (hh - ll) * -100.0
    return float(min(0.0, max(-100.0, value)))


def cci(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 20) -> float:
    """Typical-price deviation from its SMA over 0.015 * mean deviation, clamped to ±500."""
    h, l, c = _arr(highs), _arr(lows), _arr(closes)
    if len(c) < period:
        return 0.0
    tp = (h[-period:] + l[-period:] + c[-period:]) / 3.0
    mean_tp = tp.mean()
    mean_dev = np.abs(tp - mean_tp).mean()
    if mean_dev == 0:
        return 0.0
    value = (tp[-1] - mean_tp) / (0.015 * mean_dev)
    return float(min(500.0, max(-500.0, value)))


def adx(highs: ArrayLike, lows: ArrayLike, closes: ArrayLike, period: int = 14) -> dict:
    """
    Directional movement over the last `period` bars only. Sums are window-local
    (no Wilder smoothing carried across windows), so `adx` here is the window DX.
    """
    h, l, c = _arr(highs), _arr(lows), _arr(closes)
    zero = {"adx": 0.0, "plus_di": 0.0, "minus_di": 0.0}
    if len(c) < period + 1:
        return zero
    tr = np.maximum.reduce([
        h[1:] - l[1:],
        np.abs(h[1:] - c[:-1]),
        np.abs(l[1:] - c[:-1]),
    ])
    up = h[1:] - h[:-1]
    down = l[:-1] - l[1:]
    plus_dm = np.where((up > down) & (up > 0), up, 0.0)
    minus_dm = np.where((down > up) & (down > 0), down, 0.0)

    tr_sum = tr[-period:].sum()
    if tr_sum == 0:
        return zero
    plus_di = plus_dm[-period:].sum() / tr_sum * 100.0
    minus_di = minus_dm[-period:].sum() / tr_sum * 100.0
    di_sum = plus_di + minus_di
    if di_sum == 0:
        return zero
    dx = abs(plus_di - minus_di) / di_sum * 100.0
    return {"adx": float(min(100.0, max(0.0, dx))), "plus_di": float(plus_di), "minus_di": float(minus_di)}


def obv_series(closes: ArrayLike, volumes: ArrayLike) -> np.ndarray:
    """Cumulative signed volume; first bar is 0."""
    c, v = _arr(closes), _arr(volumes)
    if len(c) == 0:
        return np.zeros(0)
    direction = np.sign(np.diff(c))
    return np.concatenate([[0.0], np.cumsum(direction * v[1:])])


def obv(closes: ArrayLike, volumes: ArrayLike) -> float:
    series = obv_series(closes, volumes)
    return float(series[-1]) if len(series) else 0.0


def obv_trend(closes: ArrayLike, volumes: ArrayLike, period: int = 20) -> str:
    """UP / DOWN / FLAT: latest OBV against the SMA of its trailing values."""
    series = obv_series(closes, volumes)
    if len(series) < 2:
        return "FLAT"
    avg = series[-period:].mean()
    if series[-1] > avg:
        return "UP"
    if series[-1] < avg:
        return "DOWN"
    return "FLAT"


def equilibrium(opens: ArrayLike, closes: ArrayLike, days: int) -> Optional[float]:
    """Mean candle-body midpoint (open + close) / 2 over the last `days` bars."""
    o, c = _arr(opens), _arr(closes)
    if len(c) < days:
        return None
    mids = (o[-days:] + c[-days:]) / 2.0
    mids = mids[np.isfinite(mids)]
    if len(mids) == 0:
        return None
    return float(mids.mean())


def volume_ratio(volumes: ArrayLike, lookback: int = 20) -> dict:
    """Current volume against the mean of the trailing `lookback` + 1 bars (current included)."""
    v = _arr(volumes)
    if len(v) == 0:
        return {"current": 0.0, "average": 0.0, "ratio": 1.0}
    window = v[max(0, len(v) - 1 - lookback):]
    average = float(window.mean())
    current = float(v[-1])
    return {"current": current, "average": average, "ratio": current / average if average > 0 else 1.0}


def volatility(closes: ArrayLike) -> float:
    """Population std of simple returns."""
    c = _arr(closes)
    if len(c) < 2:
        return 0.0
    returns = np.diff(c) / c[:-1]
    return float(returns.std())


def trend_strength(closes: ArrayLike) -> float:
    """min(1, 10 * |SMA10 - SMA20| / SMA20)."""
    c = _arr(closes)
    if len(c) < 10:
        return 0.0
    sma10 = sma(c[-10:], 10)
    sma20 = sma(c[-20:], 20)
    if sma20 == 0:
        return 0.0
    return float(min(1.0, abs(sma10 - sma20) / sma20 * 10.0))
