"""Tests for the Binance candle provider.

The network is replaced with :class:`httpx.MockTransport`, so every test
runs offline against canned kline payloads.
"""

from __future__ import annotations

import time
from typing import Callable

import httpx
import pandas as pd
import pytest

from data.providers import BinanceProvider, DataProvider, get_provider

_START_MS = 1_704_067_200_000  # 2024-01-01T00:00:00Z
_STEP_MS = 15 * 60 * 1000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _kline(open_ms: int, close: float) -> list:
    """One Binance kline row; prices arrive as strings."""
    return [
        open_ms,
        f"{close - 0.5:.2f}",
        f"{close + 1.0:.2f}",
        f"{close - 1.0:.2f}",
        f"{close:.2f}",
        "12.5",
        open_ms + _STEP_MS - 1,
        "1000.0",
        42,
        "6.0",
        "480.0",
        "0",
    ]


def _klines_handler(total: int, calls: list[httpx.Request]) -> Callable[[httpx.Request], httpx.Response]:
    """Serve the last *limit* of *total* candles at or before ``endTime``."""
    candles = [_kline(_START_MS + i * _STEP_MS, 100.0 + i) for i in range(total)]

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        limit = int(request.url.params["limit"])
        end_time = request.url.params.get("endTime")
        eligible = [c for c in candles if end_time is None or c[0] <= int(end_time)]
        return httpx.Response(200, json=eligible[-limit:])

    return handler


@pytest.fixture()
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Skip rate-limit and retry back-off sleeps, recording their durations."""
    sleeps: list[float] = []
    monkeypatch.setattr(time, "sleep", sleeps.append)
    return sleeps


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class TestRegistry:
    def test_get_provider(self) -> None:
        provider = get_provider("binance", base_url="https://example.test", timeout=5.0)
        assert isinstance(provider, BinanceProvider)
        assert isinstance(provider, DataProvider)
        assert provider.provider_name() == "binance"

    def test_unknown_provider(self) -> None:
        with pytest.raises(ValueError, match="Unknown provider 'kraken'"):
            get_provider("kraken")


# ---------------------------------------------------------------------------
# Fetching
# ---------------------------------------------------------------------------

class TestBinanceProvider:
    def test_fetch_ohlcv(self, no_sleep: list[float]) -> None:
        calls: list[httpx.Request] = []
        provider = BinanceProvider(transport=httpx.MockTransport(_klines_handler(5, calls)))

        df = provider.fetch_ohlcv("BTCUSDT", "15m", limit=3)

        assert list(df.columns) == DataProvider.COLUMNS
        assert len(df) == 3
        assert df["close"].tolist() == [102.0, 103.0, 104.0]
        assert df["high"].dtype == "float64"
        assert df["timestamp"].iloc[0] == pd.Timestamp(_START_MS + 2 * _STEP_MS, unit="ms", tz="UTC")
        assert df["timestamp"].is_monotonic_increasing

        assert len(calls) == 1
        params = calls[0].url.params
        assert calls[0].url.path == "/api/v3/klines"
        assert params["symbol"] == "BTCUSDT"
        assert params["interval"] == "15m"
        assert params["limit"] == "3"
        assert "endTime" not in params

    def test_symbol_mapping(self, no_sleep: list[float]) -> None:
        calls: list[httpx.Request] = []
        provider = BinanceProvider(transport=httpx.MockTransport(_klines_handler(2, calls)))
        provider.fetch_ohlcv("btc-usd", "1h", limit=2)
        provider.fetch_ohlcv("eth/btc", "1h", limit=2)
        assert calls[0].url.params["symbol"] == "BTCUSDT"
        assert calls[1].url.params["symbol"] == "ETHBTC"

    def test_pagination(self, no_sleep: list[float]) -> None:
        """More than 1000 candles are fetched in pages walking backwards."""
        calls: list[httpx.Request] = []
        provider = BinanceProvider(transport=httpx.MockTransport(_klines_handler(1600, calls)))

        df = provider.fetch_ohlcv("BTCUSDT", "15m", limit=1500)

        assert len(calls) == 2
        assert calls[0].url.params["limit"] == "1000"
        assert calls[1].url.params["limit"] == "500"
        oldest_first_page = _START_MS + 600 * _STEP_MS
        assert calls[1].url.params["endTime"] == str(oldest_first_page - 1)

        assert len(df) == 1500
        assert df["timestamp"].is_monotonic_increasing
        assert df["timestamp"].is_unique
        assert df["close"].iloc[-1] == pytest.approx(100.0 + 1599)
        assert df["close"].iloc[0] == pytest.approx(100.0 + 100)

    def test_short_history_stops(self, no_sleep: list[float]) -> None:
        calls: list[httpx.Request] = []
        provider = BinanceProvider(transport=httpx.MockTransport(_klines_handler(30, calls)))
        df = provider.fetch_ohlcv("BTCUSDT", "15m", limit=1200)
        assert len(df) == 30
        assert len(calls) == 1

    def test_empty_response(self, no_sleep: list[float]) -> None:
        calls: list[httpx.Request] = []
        provider = BinanceProvider(transport=httpx.MockTransport(_klines_handler(0, calls)))
        df = provider.fetch_ohlcv("BTCUSDT", "15m", limit=10)
        assert df.empty
        assert list(df.columns) == DataProvider.COLUMNS

    def test_unsupported_timeframe(self) -> None:
        with pytest.raises(ValueError, match="not supported by binance"):
            BinanceProvider().fetch_ohlcv("BTCUSDT", "7m")

    @pytest.mark.parametrize("limit", [0, -5, True])
    def test_invalid_limit(self, limit: int) -> None:
        with pytest.raises(ValueError, match="limit"):
            BinanceProvider().fetch_ohlcv("BTCUSDT", "15m", limit=limit)

    def test_client_error_not_retried(self, no_sleep: list[float]) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"code": -1121, "msg": "Invalid symbol."})

        provider = BinanceProvider(transport=httpx.MockTransport(handler))
        with pytest.raises(httpx.HTTPStatusError):
            provider.fetch_ohlcv("NOPE", "15m")
        assert len(calls) == 1

    def test_server_error_retried(self, no_sleep: list[float]) -> None:
        calls: list[httpx.Request] = []
        ok = _klines_handler(3, [])

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503, text="busy")
            return ok(request)

        provider = BinanceProvider(transport=httpx.MockTransport(handler))
        df = provider.fetch_ohlcv("BTCUSDT", "15m", limit=3)
        assert len(df) == 3
        assert len(calls) == 3

    def test_unexpected_payload(self, no_sleep: list[float]) -> None:
        provider = BinanceProvider(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"oops": 1}))
        )
        with pytest.raises(ValueError, match="Unexpected klines payload"):
            provider.fetch_ohlcv("BTCUSDT", "15m")
