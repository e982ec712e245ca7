"""
Weighted multi-indicator signal.

Each enabled indicator's rule emits a SignalSource (indicator, direction, strength 0..1);
the sources are weighted into buy / sell strength, scaled by a quality multiplier and
mapped onto strong / moderate / weak confidence tiers.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Tuple

from signal_engine.core.types import (
    Action,
    HIGH_RELIABILITY,
    IndicatorSettings,
    IndicatorSnapshot,
    PriceArrays,
    PriceSeries,
    Signal,
    SignalSource,
    WeightMap,
)
from signal_engine.strategies import indicators as ind
from signal_engine.strategies.base import BaseStrategy

MIN_WEIGHT = 0.01
STRONG_THRESHOLD = 65.0
MODERATE_THRESHOLD = 45.0
WEAK_THRESHOLD = 25.0

INSUFFICIENT_DATA = "Insufficient data for analysis"

# (indicator, days, deviation, strength, below text, above text)
EQUILIBRIUM_RULES = (
    ("eq30", 30, 0.05, 65,
     "Price significantly below 30-day equilibrium",
     "Price significantly above 30-day equilibrium"),
    ("eq60", 60, 0.08, 75,
     "Price strongly below 60-day equilibrium",
     "Price strongly above 60-day equilibrium"),
    ("eq90", 90, 0.10, 85,
     "Price very far below 90-day equilibrium (strong buy)",
     "Price very far above 90-day equilibrium (strong sell)"),
)


def warmup_index(length: int) -> int:
    """First bar a decision may be made on: min(20, 25% of the series)."""
    return min(20, int(length * 0.25))


CONFIRMATIONS = frozenset({"adx", "volume_analysis"})


def _dominant(sources: List[SignalSource]) -> Optional[Action]:
    """Side with more directional votes; confirmations do not vote."""
    votes = [s for s in sources if s.indicator not in CONFIRMATIONS]
    buys = sum(1 for s in votes if s.direction == Action.BUY)
    sells = sum(1 for s in votes if s.direction == Action.SELL)
    if buys > sells:
        return Action.BUY
    if sells > buys:
        return Action.SELL
    return None


def evaluate_rules(bars: PriceArrays, settings: IndicatorSettings) -> Tuple[List[SignalSource], IndicatorSnapshot]:
    """Apply every enabled indicator rule to the last bar of `bars`."""
    closes = bars.close
    price = float(closes[-1])
    sources: List[SignalSource] = []
    snapshot: IndicatorSnapshot = {}

    def emit(indicator: str, direction: Action, raw_strength: float, description: str) -> None:
        sources.append(SignalSource(indicator, direction, raw_strength / 100.0, description))

    sma20 = ind.sma(closes, 20)

    if settings.rsi:
        value = ind.rsi(closes)
        snapshot["rsi"] = value
        if value < 30:
            emit("rsi", Action.BUY, (30 - value) * 2, f"RSI oversold ({value:.1f})")
        elif value > 70:
            emit("rsi", Action.SELL, (value - 70) * 2, f"RSI overbought ({value:.1f})")

    if settings.macd:
        m = ind.macd(closes)
        snapshot["macd"] = m
        if m["histogram"] > 0 and m["macd"] > m["signal"]:
            emit("macd", Action.BUY, 50, "MACD bullish crossover")
        elif m["histogram"] < 0 and m["macd"] < m["signal"]:
            emit("macd", Action.SELL, 50, "MACD bearish crossover")

    if settings.bollinger_bands:
        bb = ind.bollinger_bands(closes)
        snapshot["bollinger_bands"] = bb
        if price < bb["lower"]:
            emit("bollinger_bands", Action.BUY, 60, "Price below lower Bollinger Band")
        elif price > bb["upper"]:
            emit("bollinger_bands", Action.SELL, 60, "Price above upper Bollinger Band")

    if settings.moving_averages:
        sma50 = ind.sma(closes, 50)
        snapshot["sma20"] = sma20
        snapshot["sma50"] = sma50
        if sma20 > sma50 and price > sma20:
            emit("moving_averages", Action.BUY, 40, "Price above rising 20 SMA")
        elif sma20 < sma50 and price < sma20:
            emit("moving_averages", Action.SELL, 40, "Price below falling 20 SMA")

    if settings.stochastic_rsi:
        value = ind.stochastic_rsi(closes)
        snapshot["stochastic_rsi"] = value
        if value < 20:
            emit("stochastic_rsi", Action.BUY, 45, f"Stochastic RSI oversold ({value:.1f})")
        elif value > 80:
            emit("stochastic_rsi", Action.SELL, 45, f"Stochastic RSI overbought ({value:.1f})")

    if settings.williams_r:
        value = ind.williams_r(bars.high, bars.low, closes)
        snapshot["williams_r"] = value
        if value < -80:
            emit("williams_r", Action.BUY, 35, f"Williams %R oversold ({value:.1f})")
        elif value > -20:
            emit("williams_r", Action.SELL, 35, f"Williams %R overbought ({value:.1f})")

    if settings.cci:
        value = ind.cci(bars.high, bars.low, closes)
        snapshot["cci"] = value
        if value < -100:
            emit("cci", Action.BUY, 50, f"CCI oversold ({value:.1f})")
        elif value > 100:
            emit("cci", Action.SELL, 50, f"CCI overbought ({value:.1f})")

    # ADX and volume only confirm whichever side already has more votes.
    if settings.adx:
        a = ind.adx(bars.high, bars.low, closes)
        snapshot["adx"] = a
        side = _dominant(sources)
        if a["adx"] > 25 and side is not None:
            emit("adx", side, 30, f"ADX confirms strong trend ({a['adx']:.1f})")

    if settings.obv:
        trend = ind.obv_trend(closes, bars.volume)
        snapshot["obv"] = {"value": ind.obv(closes, bars.volume), "trend": trend}
        if trend == "UP" and price > sma20:
            emit("obv", Action.BUY, 25, "OBV trending up with price")
        elif trend == "DOWN" and price < sma20:
            emit("obv", Action.SELL, 25, "OBV trending down with price")

    if settings.volume_analysis:
        vol = ind.volume_ratio(bars.volume)
        snapshot["volume"] = vol
        side = _dominant(sources)
        if vol["ratio"] > 1.5 and side is not None:
            text = "buy" if side == Action.BUY else "sell"
            emit("volume_analysis", side, 20, f"High volume confirms {text} signal")

    levels: Dict[str, Optional[float]] = {}
    for name, days, deviation, strength, below, above in EQUILIBRIUM_RULES:
        if not settings.is_enabled(name):
            continue
        level = ind.equilibrium(bars.open, closes, days)
        levels[name] = level
        if level is None:
            continue
        if price < level * (1 - deviation):
            emit(name, Action.BUY, strength, below)
        elif price > level * (1 + deviation):
            emit(name, Action.SELL, strength, above)
    if levels:
        snapshot["equilibrium"] = levels

    return sources, snapshot


def adjusted_strength(source: SignalSource) -> float:
    """Strength after the high-reliability bonus and clarity scaling."""
    value = source.strength
    if source.indicator in HIGH_RELIABILITY:
        value *= 1.2
    if source.strength > 0.8:
        value *= 1.1
    elif source.strength < 0.4:
        value *= 0.8
    return value


def quality_multiplier(sources: List[SignalSource]) -> float:
    """Rewards diverse, high-reliability agreement; penalises conflicting votes. Floor 0.5."""
    multiplier = 1.0
    unique = len({s.indicator for s in sources})
    if unique >= 4:
        multiplier += 0.3
    elif unique >= 3:
        multiplier += 0.2
    elif unique >= 2:
        multiplier += 0.1
    if any(s.indicator in HIGH_RELIABILITY for s in sources):
        multiplier += 0.2
    buys = sum(1 for s in sources if s.direction == Action.BUY)
    sells = sum(1 for s in sources if s.direction == Action.SELL)
    if min(buys, sells) / max(buys, sells, 1) > 0.3:
        multiplier -= 0.2
    return max(0.5, multiplier)


def score_sources(sources: List[SignalSource], weights: WeightMap) -> Tuple[Action, float, str]:
    """Combine sources into (action, confidence, tier annotation)."""
    buy = sell = total_weight = 0.0
    for source in sources:
        weight = weights.get(source.indicator) or MIN_WEIGHT
        total_weight += weight
        if source.direction == Action.BUY:
            buy += adjusted_strength(source) * weight
        elif source.direction == Action.SELL:
            sell += adjusted_strength(source) * weight

    norm_buy = buy / total_weight * 100 if total_weight > 0 else 0.0
    norm_sell = sell / total_weight * 100 if total_weight > 0 else 0.0
    multiplier = quality_multiplier(sources)
    count = len(sources)

    if norm_buy > norm_sell:
        side, raw = Action.BUY, norm_buy * multiplier
    elif norm_sell > norm_buy:
        side, raw = Action.SELL, norm_sell * multiplier
    else:
        side, raw = None, 0.0

    if side is not None:
        word = "buy" if side == Action.BUY else "sell"
        if raw >= STRONG_THRESHOLD:
            return side, min(95.0, raw), f"Strong {word} signal ({count} indicators aligned)"
        if raw >= MODERATE_THRESHOLD:
            return side, min(75.0, raw), f"Moderate {word} signal ({count} indicators)"
        if raw >= WEAK_THRESHOLD:
            return side, min(55.0, raw), f"Weak {word} signal (limited confirmation)"

    if not sources:
        return Action.HOLD, 0.0, "No clear signals - market indecision"
    return Action.HOLD, 0.0, "Conflicting or weak signals - holding position"


def generate_signal(
    series: PriceSeries,
    index: int,
    settings: IndicatorSettings,
    weights: WeightMap,
) -> Signal:
    """
    Decision at bar `index` of `series` from bars [0, index] only.
    Deterministic for identical (series, index, settings, weights).
    """
    bars = PriceArrays.from_series(series)
    if len(bars) == 0 or index < warmup_index(len(bars)) or index >= len(bars):
        return Signal(Action.HOLD, 0.0, [INSUFFICIENT_DATA])

    sources, snapshot = evaluate_rules(bars.upto(index), settings)
    action, confidence, annotation = score_sources(sources, weights)
    reasoning = [s.description for s in sources] + [annotation]
    return Signal(action, confidence, reasoning, snapshot, sources)


def feature_contributions(sources: List[SignalSource], weights: WeightMap, direction: Action = Action.BUY) -> WeightMap:
    """Each indicator's share of the weighted strength on one side; shares sum to 1."""
    raw: Dict[str, float] = {}
    for source in sources:
        if source.direction != direction:
            continue
        weight = weights.get(source.indicator) or MIN_WEIGHT
        raw[source.indicator] = raw.get(source.indicator, 0.0) + adjusted_strength(source) * weight
    total = sum(raw.values())
    if total <= 0:
        return {}
    return {k: v / total for k, v in raw.items()}


class WeightedSignalStrategy(BaseStrategy):
    """Weighted indicator vote over the enabled indicators in `settings`."""

    def __init__(self, settings: Optional[IndicatorSettings] = None):
        self.settings = settings or IndicatorSettings()

    def evaluate(self, series: PriceArrays, index: int, weights: WeightMap) -> Signal:
        return generate_signal(series, index, self.settings, weights)
