"""Unit tests for strategies.indicators."""

import numpy as np
import pytest
from signal_engine.strategies import indicators as ind


def test_sma_short_history_falls_back_to_last():
    assert ind.sma([1.0, 2.0, 3.0], 5) == 3.0
    assert ind.sma([], 5) == 0.0
    assert ind.sma([1.0, 2.0, 3.0, 4.0], 2) == pytest.approx(3.5)


def test_ema_constant_is_exact():
    assert ind.ema([42.0] * 50, 12) == 42.0


def test_rsi_neutral_defaults():
    assert ind.rsi([100.0] * 10) == 50.0  # too short
    assert ind.rsi([100.0] * 30) == 50.0  # no movement


def test_rsi_extremes_and_bounds():
    rising = [100.0 + i for i in range(30)]
    falling = [100.0 - i for i in range(30)]
    assert ind.rsi(rising) == 100.0
    assert ind.rsi(falling) == 0.0
    rng = np.random.default_rng(7)
    walk = 100 + np.cumsum(rng.normal(0, 1, 200))
    for end in range(20, 200, 15):
        assert 0.0 <= ind.rsi(walk[:end]) <= 100.0


def test_macd_short_history_is_zero():
    assert ind.macd([1.0] * 10) == {"macd": 0.0, "signal": 0.0, "histogram": 0.0}


def test_macd_rising_trend_positive():
    m = ind.macd([100.0 + i for i in range(60)])
    assert m["macd"] > 0
    assert m["signal"] == pytest.approx(m["macd"] * 0.2)
    assert m["histogram"] > 0


def test_bollinger_flat_has_zero_width():
    bb = ind.bollinger_bands([50.0] * 25)
    assert bb["upper"] == bb["middle"] == bb["lower"] == 50.0


def test_bollinger_short_history_collapses_to_last_close():
    bb = ind.bollinger_bands([1.0, 2.0, 3.0])
    assert bb == {"upper": 3.0, "middle": 3.0, "lower": 3.0}


def test_williams_r_range():
    highs = [10.0 + i for i in range(20)]
    lows = [5.0 + i for i in range(20)]
    closes = [24.0] * 20
    assert -100.0 <= ind.williams_r(highs, lows, closes) <= 0.0
    assert ind.williams_r([1.0] * 20, [1.0] * 20, [1.0] * 20) == -50.0


def test_cci_flat_is_zero():
    assert ind.cci([101.0] * 25, [99.0] * 25, [100.0] * 25) == 0.0


def test_adx_flat_is_zero():
    a = ind.adx([101.0] * 30, [99.0] * 30, [100.0] * 30)
    assert a == {"adx": 0.0, "plus_di": 0.0, "minus_di": 0.0}


def test_adx_strong_uptrend():
    highs = [101.0 + 2 * i for i in range(30)]
    lows = [99.0 + 2 * i for i in range(30)]
    closes = [100.0 + 2 * i for i in range(30)]
    a = ind.adx(highs, lows, closes)
    assert a["plus_di"] > a["minus_di"]
    assert a["adx"] > 25


def test_obv_trend():
    closes = [100.0 + i for i in range(30)]
    volumes = [1000.0] * 30
    assert ind.obv(closes, volumes) == pytest.approx(29000.0)
    assert ind.obv_trend(closes, volumes) == "UP"
    assert ind.obv_trend([100.0] * 30, volumes) == "FLAT"


def test_equilibrium():
    assert ind.equilibrium([1.0] * 10, [1.0] * 10, 30) is None
    opens = [10.0] * 30
    closes = [20.0] * 30
    assert ind.equilibrium(opens, closes, 30) == pytest.approx(15.0)


def test_volume_ratio():
    v = ind.volume_ratio([100.0] * 20 + [300.0])
    assert v["current"] == 300.0
    assert v["ratio"] > 1.5
    assert ind.volume_ratio([])["ratio"] == 1.0


def test_stochastic_rsi_neutral_when_flat():
    assert ind.stochastic_rsi([100.0] * 40) == 50.0
