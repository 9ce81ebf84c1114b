"""Binance public REST API provider for spot kline (candle) data."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

import httpx
import pandas as pd
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.logging import get_logger
from data.providers.base import DataProvider

logger = get_logger(__name__)

# Binance kline intervals are used as-is for timeframes.
_TIMEFRAMES: tuple[str, ...] = (
    "1m", "3m", "5m", "15m", "30m",
    "1h", "2h", "4h", "6h", "8h", "12h",
    "1d", "3d", "1w", "1M",
)

# Unified "BASE-QUOTE" quotes that Binance lists under a stablecoin.
_QUOTE_MAP: dict[str, str] = {"USD": "USDT"}

DEFAULT_BASE_URL = "https://api.binance.com"
_KLINES_PATH = "/api/v3/klines"
_MAX_CANDLES_PER_REQUEST = 1000
_RATE_LIMIT_SECONDS = 0.2


def _is_retryable(exc: BaseException) -> bool:
    """Retry transport failures, rate limiting and server errors only."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return status == 429 or status >= 500
    return False


class BinanceProvider(DataProvider):
    """Fetch spot candles from Binance's public ``/api/v3/klines`` endpoint.

    No authentication is required.  Requests for more than 1000 candles are
    paged backwards from the most recent candle.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._last_request_time: float = 0.0

    # ------------------------------------------------------------------
    # DataProvider interface
    # ------------------------------------------------------------------

    def provider_name(self) -> str:
        return "binance"

    def supported_timeframes(self) -> list[str]:
        return list(_TIMEFRAMES)

    def fetch_ohlcv(self, symbol: str, timeframe: str, limit: int = 100) -> pd.DataFrame:
        self._validate_timeframe(timeframe)
        self._validate_limit(limit)

        pair = self._resolve_symbol(symbol)
        logger.info("Binance: fetching %d %s candles for %s", limit, timeframe, pair)

        batches: list[list[list[Any]]] = []
        remaining = limit
        end_time: int | None = None

        while remaining > 0:
            batch_size = min(remaining, _MAX_CANDLES_PER_REQUEST)
            data = self._request_klines(pair, timeframe, batch_size, end_time)
            if not data:
                logger.debug("Binance: no more data before endTime=%s", end_time)
                break

            batches.append(data)
            remaining -= len(data)
            if len(data) < batch_size:
                break

            # Page backwards from just before the oldest candle received.
            end_time = int(data[0][0]) - 1

        rows: list[list] = []
        for data in reversed(batches):
            for candle in data:
                rows.append(
                    [
                        datetime.fromtimestamp(int(candle[0]) / 1000, tz=timezone.utc),
                        candle[1],  # open
                        candle[2],  # high
                        candle[3],  # low
                        candle[4],  # close
                        candle[5],  # volume (base asset)
                    ]
                )

        logger.info("Binance: total %d candles for %s %s", len(rows), pair, timeframe)
        return self._make_dataframe(rows)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve_symbol(self, symbol: str) -> str:
        """Map ``BTC-USD`` / ``btc/usdt`` style names to Binance's ``BTCUSDT``."""
        cleaned = symbol.strip().upper()
        for sep in ("-", "/"):
            if sep in cleaned:
                base, quote = cleaned.split(sep, 1)
                mapped = _QUOTE_MAP.get(quote, quote)
                if mapped != quote:
                    logger.warning(
                        "Binance: no %s market for '%s', using '%s%s'",
                        quote,
                        symbol,
                        base,
                        mapped,
                    )
                return f"{base}{mapped}"
        if not cleaned:
            raise ValueError("symbol must not be empty")
        return cleaned

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=1, min=1, max=30),
        reraise=True,
    )
    def _request_klines(
        self,
        pair: str,
        interval: str,
        limit: int,
        end_time: int | None = None,
    ) -> list[list[Any]]:
        """Execute a single klines request with rate limiting and retries.

        Args:
            pair: Binance symbol (e.g. ``"BTCUSDT"``).
            interval: Kline interval (e.g. ``"15m"``).
            limit: Candles to request, at most 1000.
            end_time: Optional inclusive upper bound on open time, in ms.

        Returns:
            Kline arrays, oldest first.

        Raises:
            httpx.HTTPStatusError: On a non-retryable error response (e.g.
                an unknown symbol) or once retries are exhausted.
        """
        self._rate_limit()

        params: dict[str, Any] = {
            "symbol": pair,
            "interval": interval,
            "limit": limit,
        }
        if end_time is not None:
            params["endTime"] = end_time

        with httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        ) as client:
            resp = client.get(_KLINES_PATH, params=params)
            if resp.is_error:
                logger.error("Binance API error %s: %s", resp.status_code, resp.text)
            resp.raise_for_status()

        body = resp.json()
        if not isinstance(body, list):
            raise ValueError(f"Unexpected klines payload: {body!r}")
        return body

    def _rate_limit(self) -> None:
        """Block until at least ``_RATE_LIMIT_SECONDS`` since the last request."""
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < _RATE_LIMIT_SECONDS:
            time.sleep(_RATE_LIMIT_SECONDS - elapsed)
        self._last_request_time = time.monotonic()
