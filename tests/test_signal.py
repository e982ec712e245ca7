"""Unit tests for strategies.weighted."""

import pytest
from signal_engine.core.types import Action, IndicatorSettings, PriceArrays, PricePoint
from signal_engine.data.synthetic import generate_history
from signal_engine.strategies.weighted import (
    INSUFFICIENT_DATA,
    WeightedSignalStrategy,
    evaluate_rules,
    feature_contributions,
    generate_signal,
    quality_multiplier,
    warmup_index,
)
from signal_engine.strategies.weights import default_weights


def _bars(closes):
    return [
        PricePoint(f"d{i}", c - 0.5, c + 1.0, c - 1.0, c, 1000.0)
        for i, c in enumerate(closes)
    ]


def _flat(n=60):
    return [PricePoint(f"d{i}", 100.0, 101.0, 99.0, 100.0, 1000.0) for i in range(n)]


RISING = _bars([100.0 + i for i in range(90)])
RSI_MA = IndicatorSettings.only("rsi", "moving_averages")
RSI_MA_WEIGHTS = {"rsi": 0.2, "moving_averages": 0.8}


def test_warmup_index():
    assert warmup_index(100) == 20
    assert warmup_index(40) == 10
    assert warmup_index(0) == 0


def test_insufficient_data_holds():
    for index in (0, 5, 19, 90):
        signal = generate_signal(RISING, index, RSI_MA, RSI_MA_WEIGHTS)
        assert signal.action == Action.HOLD
        assert signal.confidence == 0.0
        assert signal.reasoning == [INSUFFICIENT_DATA]
    assert generate_signal([], 0, RSI_MA, RSI_MA_WEIGHTS).reasoning == [INSUFFICIENT_DATA]


def test_flat_series_always_holds():
    settings = IndicatorSettings()
    weights = default_weights(settings)
    bars = _flat(100)
    for index in range(len(bars)):
        signal = generate_signal(bars, index, settings, weights)
        assert signal.action == Action.HOLD
        assert signal.confidence == 0.0
    assert signal.reasoning == ["No clear signals - market indecision"]


def test_overbought_rsi_alone_is_moderate_sell():
    signal = generate_signal(RISING, 30, RSI_MA, RSI_MA_WEIGHTS)
    assert signal.action == Action.SELL
    assert signal.confidence == pytest.approx(60.0)
    assert signal.reasoning[-1] == "Moderate sell signal (1 indicators)"
    assert signal.indicator_values["rsi"] == 100.0


def test_uptrend_trend_weight_outvotes_rsi():
    signal = generate_signal(RISING, 60, RSI_MA, RSI_MA_WEIGHTS)
    assert signal.action == Action.BUY
    # (0.4*0.8) vs (0.6*0.2), quality 1.0 + 0.1 (two indicators) - 0.2 (conflict)
    assert signal.confidence == pytest.approx(28.8)
    assert signal.reasoning == [
        "RSI overbought (100.0)",
        "Price above rising 20 SMA",
        "Weak buy signal (limited confirmation)",
    ]
    assert {s.indicator for s in signal.sources} == {"rsi", "moving_averages"}


def test_uptrend_with_shipped_weights_stays_sell():
    # RSI pins at 100 on a strictly rising series; the trend BUY only wins when
    # moving_averages outweighs rsi by more than 1.5x and clears the weak tier
    equal = {"rsi": 0.5, "moving_averages": 0.5}
    preset = default_weights(RSI_MA)
    assert preset["rsi"] == pytest.approx(0.75)
    for index in range(20, len(RISING)):
        assert generate_signal(RISING, index, RSI_MA, equal).action == Action.SELL
        assert generate_signal(RISING, index, RSI_MA, preset).action == Action.SELL
    signal = generate_signal(RISING, 60, RSI_MA, equal)
    assert signal.confidence == pytest.approx(27.0)
    assert signal.reasoning[-1] == "Weak sell signal (limited confirmation)"
    assert generate_signal(RISING, 60, RSI_MA, preset).confidence == pytest.approx(40.5)
    assert generate_signal(RISING, 30, RSI_MA, equal).confidence == pytest.approx(60.0)


def test_only_past_bars_are_used():
    base = generate_signal(RISING, 60, RSI_MA, RSI_MA_WEIGHTS)
    altered = list(RISING[:61]) + [PricePoint("x", 1.0, 2.0, 0.5, 1.0, 1.0)] * 29
    assert generate_signal(altered, 60, RSI_MA, RSI_MA_WEIGHTS) == base


def test_signal_is_deterministic():
    history = generate_history("BTCUSDT", "2024-01-01", "2024-06-30")
    settings = IndicatorSettings()
    weights = default_weights(settings)
    first = generate_signal(history, 120, settings, weights)
    second = generate_signal(history, 120, settings, weights)
    assert first == second
    assert 0.0 <= first.confidence <= 95.0


def test_confidence_bounded_on_synthetic_history():
    history = generate_history("ETHUSDT", "2023-01-01", "2023-12-31")
    settings = IndicatorSettings()
    weights = default_weights(settings)
    strategy = WeightedSignalStrategy(settings)
    bars = PriceArrays.from_series(history)
    for index in range(0, len(bars), 7):
        signal = strategy.evaluate(bars, index, weights)
        assert 0.0 <= signal.confidence <= 95.0
        if signal.action == Action.HOLD:
            assert signal.confidence == 0.0


def test_disabled_indicators_do_not_emit():
    signal = generate_signal(RISING, 60, IndicatorSettings.only("moving_averages"), {"moving_averages": 1.0})
    assert [s.indicator for s in signal.sources] == ["moving_averages"]
    assert "rsi" not in signal.indicator_values


def test_feature_contributions_sum_to_one():
    signal = generate_signal(RISING, 60, RSI_MA, RSI_MA_WEIGHTS)
    buy = feature_contributions(signal.sources, RSI_MA_WEIGHTS, Action.BUY)
    assert buy == {"moving_averages": pytest.approx(1.0)}
    assert feature_contributions([], RSI_MA_WEIGHTS) == {}


def test_quality_multiplier_floor():
    assert quality_multiplier([]) == 1.0


def test_adx_confirms_the_dominant_side():
    settings = IndicatorSettings.only("rsi", "adx")
    rising = PriceArrays.from_series(RISING).upto(30)
    sources, snapshot = evaluate_rules(rising, settings)
    assert snapshot["adx"]["adx"] == pytest.approx(100.0)
    assert [(s.indicator, s.direction) for s in sources] == [("rsi", Action.SELL), ("adx", Action.SELL)]

    falling = PriceArrays.from_series(_bars([200.0 - i for i in range(40)]))
    sources, _ = evaluate_rules(falling, settings)
    assert [(s.indicator, s.direction) for s in sources] == [("rsi", Action.BUY), ("adx", Action.BUY)]

    # no directional votes, nothing to confirm
    sources, _ = evaluate_rules(rising, IndicatorSettings.only("adx"))
    assert sources == []
