"""
Binance spot daily klines via python-binance. Rate-limited fetches (HTTP 418/429) are
retried with exponential backoff within the source's attempt budget.
"""

from __future__ import annotations
import functools
import logging
import time
from typing import List, Optional

import pandas as pd

from binance.client import Client
from binance.exceptions import BinanceAPIException

from signal_engine.core.types import PricePoint
from signal_engine.data.base import PriceSource

logger = logging.getLogger("signal_engine.data.binance")

KLINE_LIMIT = 1000
RATE_LIMIT_STATUS = (418, 429)
KLINE_ATTEMPTS = 5
KLINE_BACKOFF = 0.5
KLINE_MAX_DELAY = 30.0


def kline_retry(fetch):
    """Retry a source's kline fetch on rate limits, using its max_attempts and backoff."""
    @functools.wraps(fetch)
    def wrapped(source: "BinanceKlineSource", symbol: str, *args):
        attempt = 1
        while True:
            try:
                return fetch(source, symbol, *args)
            except BinanceAPIException as e:
                if e.status_code not in RATE_LIMIT_STATUS or attempt >= source.max_attempts:
                    raise
                delay = min(source.backoff * 2 ** (attempt - 1), KLINE_MAX_DELAY)
                logger.warning(
                    "Kline fetch for %s rate limited (HTTP %d), attempt %d/%d, retrying in %.1fs",
                    symbol, e.status_code, attempt, source.max_attempts, delay,
                )
                time.sleep(delay)
                attempt += 1
    return wrapped


def _to_ms(date: str) -> int:
    return int(pd.Timestamp(date, tz="UTC").value // 1_000_000)


def parse_klines(raw: list) -> List[PricePoint]:
    """Map raw kline rows [open_time, o, h, l, c, v, ...] to PricePoints."""
    points = []
    for row in raw:
        points.append(PricePoint(
            date=pd.to_datetime(int(row[0]), unit="ms").strftime("%Y-%m-%d"),
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
        ))
    return points


class BinanceKlineSource(PriceSource):
    """Public spot klines. Keys are optional; the client is created on first use."""

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        client: Optional[Client] = None,
        interval: str = "1d",
        max_attempts: int = KLINE_ATTEMPTS,
        backoff: float = KLINE_BACKOFF,
    ):
        self._api_key = api_key
        self._api_secret = api_secret
        self._client = client
        self.interval = interval
        self.max_attempts = max(1, max_attempts)
        self.backoff = backoff

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(self._api_key or None, self._api_secret or None)
            logger.info("Binance client created (%s)", "authenticated" if self._api_key else "public")
        return self._client

    @kline_retry
    def _fetch(self, symbol: str, start: Optional[str], end: Optional[str]) -> list:
        if start is None:
            return self.client.get_klines(symbol=symbol, interval=self.interval, limit=KLINE_LIMIT)
        end_ms = _to_ms(end) + 86_400_000 - 1 if end else None
        return self.client.get_historical_klines(
            symbol, self.interval, _to_ms(start), end_ms, limit=KLINE_LIMIT
        )

    def get_series(self, symbol: str, start: Optional[str] = None, end: Optional[str] = None) -> List[PricePoint]:
        raw = self._fetch(symbol.upper(), start, end)
        if not isinstance(raw, list):
            raise ValueError("Invalid kline payload from Binance: %r" % type(raw).__name__)
        points = parse_klines(raw)
        if end:
            points = [p for p in points if p.date <= end[:10]]
        logger.info("Fetched %d %s bars for %s", len(points), self.interval, symbol.upper())
        return points
