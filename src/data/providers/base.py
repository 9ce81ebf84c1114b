"""Common interface for sources of recent OHLCV candles."""

from __future__ import annotations

import abc

import pandas as pd


class DataProvider(abc.ABC):
    """A source that returns the last N candles of a market.

    Indicators only ever look back from the newest bar, so providers are
    asked for a count rather than a date range.  Every implementation
    returns a frame laid out as :attr:`COLUMNS`, one row per candle, ordered
    from the oldest candle to the newest; ``timestamp`` is the candle open
    time in UTC and the price and volume columns are float64 (NaN where the
    source sent something unparseable).
    """

    COLUMNS: list[str] = ["timestamp", "open", "high", "low", "close", "volume"]

    @abc.abstractmethod
    def fetch_ohlcv(self, symbol: str, timeframe: str, limit: int = 100) -> pd.DataFrame:
        """Return up to *limit* of the newest candles for *symbol*.

        Fewer rows come back when the market has a shorter history.

        Args:
            symbol: Market name, either native (``"BTCUSDT"``) or dashed
                (``"BTC-USD"``); providers translate as needed.
            timeframe: Candle interval, one of :meth:`supported_timeframes`.
            limit: Positive number of candles wanted.

        Raises:
            ValueError: For an unknown timeframe or a non-positive limit.
        """

    @abc.abstractmethod
    def supported_timeframes(self) -> list[str]:
        """Interval codes accepted by :meth:`fetch_ohlcv`."""

    @abc.abstractmethod
    def provider_name(self) -> str:
        """Registry key of this provider, as passed to ``get_provider``."""

    def _validate_timeframe(self, timeframe: str) -> None:
        allowed = self.supported_timeframes()
        if timeframe not in allowed:
            raise ValueError(
                f"Timeframe '{timeframe}' is not supported by {self.provider_name()}. "
                f"Choose one of: {', '.join(allowed)}"
            )

    @staticmethod
    def _validate_limit(limit: int) -> None:
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValueError(f"limit must be a positive integer, got {limit!r}")

    @classmethod
    def _make_dataframe(cls, rows: list[list]) -> pd.DataFrame:
        """Turn raw ``[open_time, open, high, low, close, volume]`` rows into a candle frame.

        Open times may be datetimes or anything :func:`pandas.to_datetime`
        accepts; prices may arrive as strings.  Repeated open times keep the
        last row seen.
        """
        if not rows:
            empty = pd.DataFrame({col: pd.Series(dtype="float64") for col in cls.COLUMNS[1:]})
            empty.insert(0, "timestamp", pd.Series(dtype="datetime64[ns, UTC]"))
            return empty

        df = pd.DataFrame(rows, columns=cls.COLUMNS)
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
        for col in cls.COLUMNS[1:]:
            df[col] = pd.to_numeric(df[col], errors="coerce").astype("float64")

        return (
            df.drop_duplicates(subset="timestamp", keep="last")
            .sort_values("timestamp")
            .reset_index(drop=True)
        )
