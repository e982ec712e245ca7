"""Data: price-history sources (Binance klines, CSV files, synthetic generator)."""

from signal_engine.data.base import PriceSource, points_from_frame
from signal_engine.data.binance import BinanceKlineSource, kline_retry, parse_klines
from signal_engine.data.csv_source import CsvPriceSource
from signal_engine.data.synthetic import SyntheticPriceSource, generate_history

__all__ = [
    "PriceSource",
    "points_from_frame",
    "BinanceKlineSource",
    "parse_klines",
    "kline_retry",
    "CsvPriceSource",
    "SyntheticPriceSource",
    "generate_history",
]
