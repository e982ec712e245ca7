"""Abstract price-history source."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import List, Optional

import pandas as pd

from signal_engine.core.types import PricePoint, as_frame


class PriceSource(ABC):
    """Daily OHLCV history for a symbol, oldest first."""

    @abstractmethod
    def get_series(
        self,
        symbol: str,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> List[PricePoint]:
        """Return bars with start <= date <= end (ISO dates, inclusive)."""
        pass

    def get_frame(self, symbol: str, start: Optional[str] = None, end: Optional[str] = None) -> pd.DataFrame:
        return as_frame(self.get_series(symbol, start, end))


def points_from_frame(df: pd.DataFrame) -> List[PricePoint]:
    """Convert an OHLCV DataFrame (date column or DatetimeIndex) to PricePoints."""
    if "date" not in df.columns:
        df = df.reset_index().rename(columns={df.index.name or "index": "date"})
    dates = pd.to_datetime(df["date"]).dt.strftime("%Y-%m-%d")
    return [
        PricePoint(
            date=d,
            open=float(o),
            high=float(h),
            low=float(l),
            close=float(c),
            volume=float(v),
        )
        for d, o, h, l, c, v in zip(dates, df["open"], df["high"], df["low"], df["close"], df["volume"])
    ]
