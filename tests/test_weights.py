"""Unit tests for strategies.weights."""

import pytest
from signal_engine.core.types import IndicatorSettings, PriceArrays, PricePoint
from signal_engine.strategies.weights import (
    WEIGHT_PRESETS,
    default_weights,
    equal_weights,
    filter_enabled,
    normalize_weights,
    regime_weights,
)


def test_normalize_weights():
    w = normalize_weights({"a": 2.0, "b": 6.0})
    assert w == {"a": pytest.approx(0.25), "b": pytest.approx(0.75)}
    assert normalize_weights({"a": 0.0, "b": 0.0}) == {"a": 0.5, "b": 0.5}
    assert normalize_weights({}) == {}


def test_normalize_returns_new_map():
    src = {"a": 1.0, "b": 1.0}
    normalize_weights(src)
    assert src == {"a": 1.0, "b": 1.0}


def test_equal_weights():
    assert equal_weights(["x", "y", "z", "w"]) == {k: 0.25 for k in "xyzw"}
    assert equal_weights([]) == {}


@pytest.mark.parametrize("preset", sorted(WEIGHT_PRESETS))
def test_presets_normalized(preset):
    w = default_weights(IndicatorSettings(), preset)
    assert sum(w.values()) == pytest.approx(1.0)
    assert set(w) == set(IndicatorSettings().enabled())
    assert sum(default_weights(None, preset).values()) == pytest.approx(1.0)


def test_unknown_preset():
    with pytest.raises(ValueError):
        default_weights(None, "momentum")


def test_filter_enabled_drops_disabled():
    settings = IndicatorSettings.only("rsi", "macd")
    w = filter_enabled({"rsi": 1.0, "macd": 3.0, "cci": 5.0}, settings)
    assert w == {"rsi": pytest.approx(0.25), "macd": pytest.approx(0.75)}
    assert filter_enabled({"cci": 1.0}, settings) == {"rsi": 0.5, "macd": 0.5}


def test_regime_weights_sideways_favours_oscillators():
    bars = PriceArrays.from_series([PricePoint(f"d{i}", 100.0, 101.0, 99.0, 100.0, 1.0) for i in range(40)])
    settings = IndicatorSettings()
    base = default_weights(settings)
    tilted = regime_weights(bars, 30, settings)
    assert sum(tilted.values()) == pytest.approx(1.0)
    assert tilted["rsi"] > base["rsi"]
    assert tilted["adx"] < base["adx"]


def test_regime_weights_short_history_is_preset():
    bars = PriceArrays.from_series([PricePoint(f"d{i}", 1.0, 1.0, 1.0, 1.0, 1.0) for i in range(10)])
    assert regime_weights(bars, 9) == default_weights(None)
