"""
Indicator weight maps: normalization, presets and market-regime adjustment.
"""

from __future__ import annotations
from typing import Dict, Iterable, Optional

from signal_engine.core.types import IndicatorSettings, PriceArrays, WeightMap
from signal_engine.strategies import indicators as ind

WEIGHT_PRESETS: Dict[str, WeightMap] = {
    # Long-horizon value anchors first
    "academic": {
        "eq90": 0.15, "eq60": 0.12, "eq30": 0.10, "volume_analysis": 0.12, "macd": 0.11,
        "adx": 0.10, "rsi": 0.08, "bollinger_bands": 0.07, "stochastic_rsi": 0.05,
        "moving_averages": 0.04, "cci": 0.03, "obv": 0.02, "williams_r": 0.01,
    },
    "crypto": {
        "volume_analysis": 0.18, "eq30": 0.16, "eq60": 0.14, "macd": 0.12, "adx": 0.10,
        "stochastic_rsi": 0.09, "rsi": 0.07, "bollinger_bands": 0.06, "eq90": 0.05,
        "cci": 0.04, "moving_averages": 0.03, "obv": 0.02, "williams_r": 0.01,
    },
    "profit": {
        "eq90": 0.20, "eq60": 0.18, "volume_analysis": 0.15, "adx": 0.12, "eq30": 0.10,
        "macd": 0.08, "bollinger_bands": 0.06, "stochastic_rsi": 0.05, "rsi": 0.03,
        "cci": 0.02, "moving_averages": 0.01, "obv": 0.01, "williams_r": 0.01,
    },
    "balanced": {
        "eq90": 0.18, "eq60": 0.16, "volume_analysis": 0.14, "adx": 0.12, "macd": 0.10,
        "eq30": 0.09, "rsi": 0.07, "stochastic_rsi": 0.06, "bollinger_bands": 0.05,
        "cci": 0.03, "moving_averages": 0.02, "obv": 0.01, "williams_r": 0.01,
    },
}

DEFAULT_PRESET = "profit"


def normalize_weights(weights: WeightMap) -> WeightMap:
    """New map summing to 1. All-zero input is split equally; empty stays empty."""
    if not weights:
        return {}
    total = sum(weights.values())
    if total <= 0:
        equal = 1.0 / len(weights)
        return {k: equal for k in weights}
    return {k: w / total for k, w in weights.items()}


def equal_weights(names: Iterable[str]) -> WeightMap:
    names = list(names)
    if not names:
        return {}
    return {name: 1.0 / len(names) for name in names}


def filter_enabled(weights: WeightMap, settings: IndicatorSettings) -> WeightMap:
    """Keep enabled indicators only; equal weights when none of them overlap."""
    kept = {k: w for k, w in weights.items() if settings.is_enabled(k)}
    if not kept:
        return equal_weights(settings.enabled())
    return normalize_weights(kept)


def default_weights(settings: Optional[IndicatorSettings] = None, preset: str = DEFAULT_PRESET) -> WeightMap:
    if preset not in WEIGHT_PRESETS:
        raise ValueError(f"Unknown weight preset: {preset}")
    weights = dict(WEIGHT_PRESETS[preset])
    if settings is None:
        return normalize_weights(weights)
    return filter_enabled(weights, settings)


def _scale(weights: WeightMap, factors: Dict[str, float]) -> None:
    for name, factor in factors.items():
        if name in weights:
            weights[name] *= factor


def regime_weights(
    series: PriceArrays,
    index: int,
    settings: Optional[IndicatorSettings] = None,
    preset: str = DEFAULT_PRESET,
) -> WeightMap:
    """
    Preset weights tilted by the market regime of the 21 bars ending at `index`:
    high volatility favours volume / band indicators, a strong trend favours trend
    followers, a sideways market favours oscillators.
    """
    weights = default_weights(settings, preset)
    if len(series) < 20 or index < 20:
        return weights

    recent = series.close[index - 20:index + 1]
    vol = ind.volatility(recent)
    trend = ind.trend_strength(recent)

    if vol > 0.05:
        _scale(weights, {"volume_analysis": 1.3, "bollinger_bands": 1.4, "stochastic_rsi": 1.2, "adx": 0.9})
    if trend > 0.7:
        _scale(weights, {"macd": 1.3, "adx": 1.4, "moving_averages": 1.5, "rsi": 0.8, "stochastic_rsi": 0.8})
    if trend < 0.3:
        _scale(weights, {
            "rsi": 1.4, "stochastic_rsi": 1.3, "williams_r": 1.5, "cci": 1.2, "macd": 0.7, "adx": 0.6,
        })
    return normalize_weights(weights)
