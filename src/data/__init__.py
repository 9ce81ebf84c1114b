"""Data layer -- candle providers and local CSV loading.

Quick usage::

    from data import get_provider, load_ohlcv_csv

    df = get_provider("binance").fetch_ohlcv("BTCUSDT", "15m", limit=100)
    df = load_ohlcv_csv("candles.csv")
"""

from data.csv_loader import load_ohlcv_csv
from data.providers import get_provider

__all__ = [
    "get_provider",
    "load_ohlcv_csv",
]
