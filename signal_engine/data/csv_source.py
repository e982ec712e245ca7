"""OHLCV history from a CSV file (date, open, high, low, close, volume)."""

from __future__ import annotations
import logging
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd

from signal_engine.core.types import OHLCV_COLUMNS, PricePoint
from signal_engine.data.base import PriceSource, points_from_frame

logger = logging.getLogger("signal_engine.data.csv")


class CsvPriceSource(PriceSource):
    """
    Reads one CSV per source. An optional `symbol` column restricts rows to the
    requested symbol; files without it are treated as single-symbol history.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def get_series(self, symbol: str, start: Optional[str] = None, end: Optional[str] = None) -> List[PricePoint]:
        df = pd.read_csv(self.path)
        df.columns = [str(c).strip().lower() for c in df.columns]
        missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError("%s is missing columns: %s" % (self.path, ", ".join(missing)))
        if "symbol" in df.columns:
            df = df[df["symbol"].astype(str).str.upper() == symbol.upper()]
        df = df.assign(date=pd.to_datetime(df["date"]).dt.strftime("%Y-%m-%d"))
        if start:
            df = df[df["date"] >= start[:10]]
        if end:
            df = df[df["date"] <= end[:10]]
        df = df.sort_values("date")
        logger.debug("Loaded %d rows for %s from %s", len(df), symbol, self.path)
        return points_from_frame(df)
