"""Shared test fixtures for ta-parity.

Provides reusable OHLC DataFrames, a candle CSV on disk, and isolates every
test from the developer's config file and ``TA_*`` environment variables.
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

import app.config as config_module

_TA_ENV_VARS = (
    "TA_CONFIG_PATH",
    "TA_LOG_LEVEL",
    "TA_PROVIDER",
    "TA_SYMBOL",
    "TA_INTERVAL",
    "TA_LIMIT",
    "TA_BINANCE_BASE_URL",
    "TA_BINANCE_TIMEOUT",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the config loader at an empty location and drop TA_* overrides.

    Tests that need settings write YAML to the returned path.
    """
    for var in _TA_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    path = tmp_path / "config.yaml"
    monkeypatch.setenv("TA_CONFIG_PATH", str(path))
    monkeypatch.setattr(config_module, "_instance", None)
    return path


@pytest.fixture()
def sample_ohlcv_df() -> pd.DataFrame:
    """A 100-row OHLCV DataFrame with realistic 15-minute crypto candles.

    The series starts at $30 000 and follows a random walk with moderate
    volatility.
    """
    rng = np.random.default_rng(42)
    n = 100

    # Build a realistic close series via cumulative log-returns.
    log_returns = rng.normal(loc=0.0002, scale=0.004, size=n)
    close = 30_000.0 * np.exp(np.cumsum(log_returns))

    # Derive OHLC from close with small intrabar ranges.
    high = close * (1.0 + rng.uniform(0.0005, 0.005, size=n))
    low = close * (1.0 - rng.uniform(0.0005, 0.005, size=n))
    open_ = low + rng.uniform(0.3, 0.7, size=n) * (high - low)
    volume = rng.uniform(5.0, 50.0, size=n)

    timestamps = pd.date_range("2024-01-01", periods=n, freq="15min", tz="UTC")

    return pd.DataFrame(
        {
            "timestamp": timestamps,
            "open": open_,
            "high": high,
            "low": low,
            "close": close,
            "volume": volume,
        }
    )


@pytest.fixture()
def small_ohlcv_df() -> pd.DataFrame:
    """A 10-row OHLCV DataFrame with hand-checkable values.

    Closes rise 1..10; every bar spans close - 1 to close + 1.
    """
    close = np.arange(1.0, 11.0)
    return pd.DataFrame(
        {
            "timestamp": pd.date_range("2024-06-01", periods=10, freq="D", tz="UTC"),
            "open": close - 0.5,
            "high": close + 1.0,
            "low": close - 1.0,
            "close": close,
            "volume": np.full(10, 100.0),
        }
    )


@pytest.fixture()
def candles_csv(tmp_path: Path, small_ohlcv_df: pd.DataFrame) -> Path:
    """Write :func:`small_ohlcv_df` to a CSV file and return its path."""
    path = tmp_path / "candles.csv"
    small_ohlcv_df.to_csv(path, index=False)
    return path
