"""Load OHLCV candles from a local CSV file.

Headers are matched case-insensitively.  Only ``close`` is mandatory;
``open``/``high``/``low``/``volume`` are kept when present.  A time column
named ``timestamp``, ``time``, ``date``, ``datetime`` or ``open_time`` is
parsed to UTC and used to order the rows oldest-first.  Numeric time values
are read as Unix seconds, or milliseconds when they are too large to be
seconds.
"""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from app.logging import get_logger

logger = get_logger(__name__)

_TIME_COLUMNS: tuple[str, ...] = ("timestamp", "time", "date", "datetime", "open_time")
_PRICE_COLUMNS: tuple[str, ...] = ("open", "high", "low", "close", "volume")

# Epoch values above this are milliseconds (1e11 s is in the year 5138).
_MS_THRESHOLD = 1e11


def _parse_time(values: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(values):
        unit = "ms" if values.abs().max() > _MS_THRESHOLD else "s"
        return pd.to_datetime(values, unit=unit, utc=True)
    return pd.to_datetime(values, utc=True)


def load_ohlcv_csv(path: str | Path) -> pd.DataFrame:
    """Read a candle CSV into a canonical OHLCV DataFrame.

    Args:
        path: CSV file location.

    Returns:
        DataFrame with a ``timestamp`` column (when the file has one) and
        whichever of ``open``, ``high``, ``low``, ``close``, ``volume`` the
        file provides, as float64.  Non-numeric cells become NaN.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ValueError: If the file has no ``close`` column.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    raw = pd.read_csv(path)
    raw.columns = [str(col).strip().lower() for col in raw.columns]

    if "close" not in raw.columns:
        raise ValueError(
            f"{path.name}: no 'close' column. Found: {', '.join(raw.columns)}"
        )

    df = pd.DataFrame(index=raw.index)
    time_col = next((col for col in _TIME_COLUMNS if col in raw.columns), None)
    if time_col is not None:
        df["timestamp"] = _parse_time(raw[time_col])

    for col in _PRICE_COLUMNS:
        if col in raw.columns:
            df[col] = pd.to_numeric(raw[col], errors="coerce").astype("float64")

    if time_col is not None:
        df = df.sort_values("timestamp", kind="stable").reset_index(drop=True)
    else:
        logger.debug("%s: no time column, keeping file order", path.name)

    missing = int(df["close"].isna().sum())
    if missing:
        logger.warning("%s: %d missing close values", path.name, missing)

    logger.info("Loaded %d candles from %s", len(df), path)
    return df
