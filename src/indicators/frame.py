"""Evaluate a configured set of indicators over an OHLCV DataFrame.

:func:`compute_indicators` computes each SMA window once and hands it to
every indicator that needs it (RMA, STDEV, Bollinger Bands), instead of
letting each call rebuild the same mean.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, fields
from typing import Any

import pandas as pd

from indicators.core import atr, bb, ema, rma, rsi, sma, stdev, true_range
from indicators.validation import check_length, check_multiplier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IndicatorSettings:
    """Which indicators to compute and with which parameters.

    Empty tuples switch an indicator family off.  Defaults reproduce the
    classic console readout (EMA 9, SMA 9, RMA 15) plus the usual RSI 14,
    BB 20/2 and ATR 14.
    """

    sma: tuple[int, ...] = (9,)
    ema: tuple[int, ...] = (9,)
    rma: tuple[int, ...] = (15,)
    rsi: tuple[int, ...] = (14,)
    stdev: tuple[int, ...] = ()
    bb_length: int | None = 20
    bb_mult: float = 2.0
    atr: tuple[int, ...] = (14,)
    include_tr: bool = False

    def __post_init__(self) -> None:
        for name in ("sma", "ema", "rma", "rsi", "stdev", "atr"):
            for length in getattr(self, name):
                check_length(length)
        if self.bb_length is not None:
            check_length(self.bb_length)
            check_multiplier(self.bb_mult)

    @classmethod
    def from_config(cls, section: dict[str, Any] | None) -> "IndicatorSettings":
        """Build settings from the ``indicators`` config section.

        Integer values are accepted wherever a list of lengths is expected.
        Unknown keys are ignored with a warning.
        """
        if not section:
            return cls()

        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in section.items():
            if key not in known:
                logger.warning("Ignoring unknown indicator setting '%s'", key)
                continue
            if key in ("sma", "ema", "rma", "rsi", "stdev", "atr"):
                if value is None:
                    value = ()
                elif isinstance(value, int):
                    value = (value,)
                kwargs[key] = tuple(value)
            else:
                kwargs[key] = value
        return cls(**kwargs)


def compute_indicators(
    df: pd.DataFrame,
    settings: IndicatorSettings | None = None,
) -> pd.DataFrame:
    """Compute every indicator in *settings* over *df*.

    Args:
        df: OHLCV DataFrame.  Only ``close`` is required; ``high`` and
            ``low`` are needed for TR / ATR, which are skipped otherwise.
        settings: Indicator selection and parameters; defaults when omitted.

    Returns:
        A DataFrame on ``df``'s index with one column per indicator output
        (``sma_9``, ``rsi_14``, ``bb_upper_20`` ...).

    Raises:
        KeyError: If *df* has no ``close`` column.
    """
    if settings is None:
        settings = IndicatorSettings()

    if "close" not in df.columns:
        raise KeyError("OHLCV frame has no 'close' column")

    close = df["close"]
    out = pd.DataFrame(index=df.index)
    means: dict[int, pd.Series] = {}

    def mean_for(length: int) -> pd.Series:
        if length not in means:
            means[length] = sma(close, length)
        return means[length]

    for length in settings.sma:
        out[f"sma_{length}"] = mean_for(length)

    for length in settings.ema:
        out[f"ema_{length}"] = ema(close, length)

    for length in settings.rma:
        out[f"rma_{length}"] = rma(close, length, sma_values=mean_for(length))

    for length in settings.rsi:
        out[f"rsi_{length}"] = rsi(close, length)

    for length in settings.stdev:
        out[f"stdev_{length}"] = stdev(close, length, mean=mean_for(length))

    if settings.bb_length is not None:
        length = settings.bb_length
        bands = bb(close, length, settings.bb_mult, middle=mean_for(length))
        out[f"bb_middle_{length}"] = bands.middle
        out[f"bb_upper_{length}"] = bands.upper
        out[f"bb_lower_{length}"] = bands.lower

    if settings.atr or settings.include_tr:
        if {"high", "low"}.issubset(df.columns):
            if settings.include_tr:
                out["tr"] = true_range(df["high"], df["low"], close)
            for length in settings.atr:
                out[f"atr_{length}"] = atr(df["high"], df["low"], close, length)
        else:
            logger.warning("No high/low columns; skipping TR/ATR")

    logger.debug("Computed %d indicator columns over %d rows", len(out.columns), len(out))
    return out


def latest_values(frame: pd.DataFrame) -> dict[str, float | None]:
    """Return the last row of an indicator frame, NaN mapped to ``None``."""
    if frame.empty:
        return {col: None for col in frame.columns}
    row = frame.iloc[-1]
    return {
        col: (None if value is None or math.isnan(value) else float(value))
        for col, value in row.items()
    }
