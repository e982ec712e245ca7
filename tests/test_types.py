"""Unit tests for core.types."""

import pandas as pd
import pytest
from signal_engine.core.types import IndicatorSettings, PriceArrays, PricePoint, as_frame


def _points():
    return [PricePoint(f"2024-01-0{i + 1}", 1.0 + i, 2.0 + i, 0.5 + i, 1.5 + i, 10.0) for i in range(3)]


def test_price_arrays_from_points_and_frame():
    bars = PriceArrays.from_series(_points())
    assert len(bars) == 3
    assert bars.dates == ["2024-01-01", "2024-01-02", "2024-01-03"]
    frame = as_frame(_points())
    frame["date"] = pd.to_datetime(frame["date"])
    assert PriceArrays.from_series(frame).dates == bars.dates
    assert PriceArrays.from_series(bars) is bars


def test_price_arrays_missing_columns():
    with pytest.raises(ValueError):
        PriceArrays.from_series(pd.DataFrame({"date": ["2024-01-01"], "close": [1.0]}))


def test_as_frame_accepts_mappings_rejects_other_records():
    records = [p.to_dict() for p in _points()]
    assert PriceArrays.from_series(records).dates == PriceArrays.from_series(_points()).dates
    with pytest.raises(TypeError):
        as_frame([None, None])
    with pytest.raises(TypeError):
        PriceArrays.from_series([_points()[0], ("2024-01-02", 1, 2, 0, 1, 5)])


def test_upto_and_with_last_close():
    bars = PriceArrays.from_series(_points())
    head = bars.upto(1)
    assert len(head) == 2
    changed = head.with_last_close(9.0)
    assert changed.close[-1] == 9.0
    assert head.close[-1] == 2.5
    assert bars.close[1] == 2.5


def test_indicator_settings():
    assert len(IndicatorSettings().enabled()) == 13
    only = IndicatorSettings.only("rsi", "eq30")
    assert only.enabled() == ["rsi", "eq30"]
    assert only.is_enabled("eq30")
    assert not only.is_enabled("unknown")
    with pytest.raises(ValueError):
        IndicatorSettings.only("rsi", "vwap")
    settings = IndicatorSettings.from_mapping({"cci": 0, "vwap": True})
    assert not settings.cci
    assert settings.rsi
