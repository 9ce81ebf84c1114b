"""Technical indicators matching TradingView's ``ta.*`` built-ins.

Every function is pure: it accepts one or more price series (a pandas
Series, numpy array or plain list of floats), never mutates them, and
returns a new ``float64`` Series aligned 1:1 with the primary input.  When
the input is a Series its index is carried over.

NaN is the missing-data marker.  How it propagates differs per indicator
and mirrors the platform exactly:

* ``sma`` averages whatever samples are present in the window.
* ``ema`` restarts from the next present sample after a gap.
* ``rma`` holds its last value across a gap.

Arguments are validated before anything is computed; see
:mod:`indicators.validation`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterator

import numpy as np
import pandas as pd

from indicators.errors import InvalidArgumentError
from indicators.validation import (
    PriceInput,
    as_price_array,
    check_aligned,
    check_length,
    check_multiplier,
    result_index,
)

# Deviations and denominators smaller than this are treated as zero.
_EPSILON = 1e-10


def _series(values: np.ndarray, source: object, name: str) -> pd.Series:
    return pd.Series(values, index=result_index(source, len(values)), name=name, dtype="float64")


def _precomputed(values: PriceInput | None, size: int, name: str) -> np.ndarray | None:
    """Coerce an optional precomputed intermediate and check its alignment."""
    if values is None:
        return None
    arr = as_price_array(values, name)
    if arr.size != size:
        raise InvalidArgumentError(
            f"'{name}' must have the same length as the source ({arr.size} != {size})"
        )
    return arr


# ---------------------------------------------------------------------------
# Moving Averages
# ---------------------------------------------------------------------------


def _sma_array(arr: np.ndarray, length: int) -> np.ndarray:
    # min_periods=1 keeps the mean over the present samples only; the
    # warm-up positions are blanked afterwards.
    rolled = pd.Series(arr).rolling(window=length, min_periods=1).mean()
    means = rolled.to_numpy(dtype="float64", copy=True)
    means[: length - 1] = np.nan
    return means


def sma(source: PriceInput, length: int) -> pd.Series:
    """Simple Moving Average (``ta.sma``).

    Missing samples inside the window are skipped rather than poisoning the
    whole window: the value at ``i`` is the mean of the present samples among
    the last *length* positions.

    Args:
        source: Price or value series.
        length: Window length, a positive integer.

    Returns:
        A Series of the window means.  The first ``length - 1`` values, and
        any position whose window holds no present sample, are NaN.

    Raises:
        InvalidArgumentError: If *source* is ``None`` or *length* is not a
            positive integer.
    """
    length = check_length(length)
    arr = as_price_array(source)
    return _series(_sma_array(arr, length), source, f"SMA_{length}")


def _ema_array(arr: np.ndarray, length: int) -> np.ndarray:
    alpha = 2.0 / (length + 1)
    out = np.full(arr.size, np.nan)
    acc = math.nan
    for i, x in enumerate(arr.tolist()):
        if math.isnan(x):
            acc = math.nan
            continue
        acc = x if math.isnan(acc) else alpha * x + (1.0 - alpha) * acc
        out[i] = acc
    return out


def ema(source: PriceInput, length: int) -> pd.Series:
    """Exponential Moving Average (``ta.ema``).

    Uses ``alpha = 2 / (length + 1)`` and is seeded with the first present
    sample, so output starts at that index rather than after ``length``
    bars.  A missing sample yields NaN and drops the running average; the
    next present sample starts a fresh one.

    Args:
        source: Price or value series.
        length: Smoothing period, a positive integer.

    Returns:
        EMA Series.  An all-NaN input gives an all-NaN output.
    """
    length = check_length(length)
    arr = as_price_array(source)
    return _series(_ema_array(arr, length), source, f"EMA_{length}")


def _rma_array(arr: np.ndarray, length: int, means: np.ndarray) -> np.ndarray:
    alpha = 1.0 / length
    out = np.full(arr.size, np.nan)

    defined = np.flatnonzero(~np.isnan(means))
    if defined.size == 0:
        return out

    seed = int(defined[0])
    acc = float(means[seed])
    out[seed] = acc

    values = arr.tolist()
    for i in range(seed + 1, arr.size):
        x = values[i]
        if math.isnan(x):
            # Hold the previous value across gaps.
            out[i] = acc
            continue
        acc = float(means[i]) if math.isnan(acc) else alpha * x + (1.0 - alpha) * acc
        out[i] = acc
    return out


def rma(
    source: PriceInput,
    length: int,
    *,
    sma_values: PriceInput | None = None,
) -> pd.Series:
    """Wilder's Moving Average (``ta.rma``), the smoothing behind RSI and ATR.

    Seeded with the first defined ``sma(source, length)`` value, then
    smoothed with ``alpha = 1 / length``.  Where *source* is missing the
    previous value is repeated instead of emitting NaN.

    Args:
        source: Price or value series.
        length: Smoothing period, a positive integer.
        sma_values: Optional precomputed ``sma(source, length)`` to avoid
            recomputing it when several indicators share the same input.

    Returns:
        RMA Series, NaN before the seed index.
    """
    length = check_length(length)
    arr = as_price_array(source)
    means = _precomputed(sma_values, arr.size, "sma_values")
    if means is None:
        means = _sma_array(arr, length)
    return _series(_rma_array(arr, length, means), source, f"RMA_{length}")


# ---------------------------------------------------------------------------
# Volatility
# ---------------------------------------------------------------------------


def _stdev_array(arr: np.ndarray, length: int, means: np.ndarray, biased: bool) -> np.ndarray:
    n = arr.size
    sum_sq = np.zeros(n)
    count = np.zeros(n)

    # Walk the window one lag at a time: O(n * length) time, O(n) memory.
    for lag in range(min(length, n)):
        lagged = np.full(n, np.nan)
        lagged[lag:] = arr[: n - lag]
        present = ~np.isnan(lagged)

        with np.errstate(invalid="ignore"):
            dev = lagged - means
            dev[np.abs(dev) <= _EPSILON] = 0.0
        sum_sq += np.where(present, dev * dev, 0.0)
        count += present

    divisor = count if biased else count - 1.0
    valid = ~np.isnan(means) & (divisor > 0)
    valid[: length - 1] = False

    out = np.full(n, np.nan)
    out[valid] = np.sqrt(sum_sq[valid] / divisor[valid])
    return out


def stdev(
    source: PriceInput,
    length: int,
    biased: bool = True,
    *,
    mean: PriceInput | None = None,
) -> pd.Series:
    """Standard deviation over a trailing window (``ta.stdev``).

    Deviations are taken from ``sma(source, length)`` at the current bar,
    over the present samples in the window.  Deviations within ``1e-10`` of
    zero are snapped to zero so flat stretches give an exact 0.

    Args:
        source: Price or value series.
        length: Window length, a positive integer.
        biased: ``True`` divides by the sample count (population estimate),
            ``False`` by count minus one (sample estimate).
        mean: Optional precomputed ``sma(source, length)``.

    Returns:
        Standard deviation Series.  NaN during warm-up, where the mean is
        undefined, or where the divisor is not positive.
    """
    length = check_length(length)
    arr = as_price_array(source)
    means = _precomputed(mean, arr.size, "mean")
    if means is None:
        means = _sma_array(arr, length)
    return _series(_stdev_array(arr, length, means, bool(biased)), source, f"STDEV_{length}")


@dataclass(frozen=True)
class BandTriple:
    """Bollinger Bands result: three Series sharing the source's index."""

    middle: pd.Series
    upper: pd.Series
    lower: pd.Series

    def __iter__(self) -> Iterator[pd.Series]:
        return iter((self.middle, self.upper, self.lower))

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"middle": self.middle, "upper": self.upper, "lower": self.lower})


def bb(
    source: PriceInput,
    length: int,
    mult: float,
    *,
    middle: PriceInput | None = None,
) -> BandTriple:
    """Bollinger Bands (``ta.bb``).

    Args:
        source: Price series (typically close prices).
        length: SMA / standard deviation window.
        mult: Standard deviation multiplier, must be positive.
        middle: Optional precomputed ``sma(source, length)``.

    Returns:
        A :class:`BandTriple`.  Where either the SMA or the (biased)
        standard deviation is missing, all three bands are NaN.
    """
    length = check_length(length)
    mult = check_multiplier(mult)
    arr = as_price_array(source)

    means = _precomputed(middle, arr.size, "middle")
    if means is None:
        means = _sma_array(arr, length)
    deviation = _stdev_array(arr, length, means, biased=True)

    missing = np.isnan(means) | np.isnan(deviation)
    mid = np.where(missing, np.nan, means)
    upper = np.where(missing, np.nan, means + mult * deviation)
    lower = np.where(missing, np.nan, means - mult * deviation)

    return BandTriple(
        middle=_series(mid, source, f"BB_MIDDLE_{length}"),
        upper=_series(upper, source, f"BB_UPPER_{length}"),
        lower=_series(lower, source, f"BB_LOWER_{length}"),
    )


bollinger_bands = bb


# ---------------------------------------------------------------------------
# Momentum
# ---------------------------------------------------------------------------


def rsi(source: PriceInput, length: int) -> pd.Series:
    """Relative Strength Index (``ta.rsi``).

    Bar-to-bar gains and losses are each smoothed with :func:`rma`.  A step
    touching a missing sample is itself missing.  When the smoothed loss is
    below ``1e-10`` the RSI is exactly 100.

    Args:
        source: Price series (typically close prices).
        length: Smoothing period, a positive integer.

    Returns:
        RSI Series in ``[0, 100]``; index 0 is always NaN.
    """
    length = check_length(length)
    arr = as_price_array(source)
    n = arr.size
    if n == 0:
        return _series(arr, source, f"RSI_{length}")

    change = np.full(n, np.nan)
    change[1:] = arr[1:] - arr[:-1]
    up = np.maximum(change, 0.0)
    down = np.maximum(-change, 0.0)

    up_rma = _rma_array(up, length, _sma_array(up, length))
    down_rma = _rma_array(down, length, _sma_array(down, length))

    out = np.full(n, np.nan)
    defined = ~np.isnan(up_rma) & ~np.isnan(down_rma)
    with np.errstate(invalid="ignore"):
        flat = defined & (np.abs(down_rma) < _EPSILON)
    moving = defined & ~flat

    out[flat] = 100.0
    with np.errstate(invalid="ignore", divide="ignore"):
        rs = up_rma[moving] / down_rma[moving]
    out[moving] = 100.0 - 100.0 / (1.0 + rs)
    return _series(out, source, f"RSI_{length}")


# ---------------------------------------------------------------------------
# Range
# ---------------------------------------------------------------------------


def _ohlc_arrays(
    high: PriceInput, low: PriceInput, close: PriceInput
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    hi = as_price_array(high, "high")
    lo = as_price_array(low, "low")
    cl = as_price_array(close, "close")
    check_aligned(high=hi, low=lo, close=cl)
    return hi, lo, cl


def _true_range_array(hi: np.ndarray, lo: np.ndarray, cl: np.ndarray) -> np.ndarray:
    n = hi.size
    prev_close = np.full(n, np.nan)
    prev_close[1:] = cl[:-1]

    hl = hi - lo
    with np.errstate(invalid="ignore"):
        gap = np.maximum(np.abs(hi - prev_close), np.abs(lo - prev_close))
        out = np.where(np.isnan(prev_close), hl, np.maximum(hl, gap))
    out[np.isnan(hi) | np.isnan(lo) | np.isnan(cl)] = np.nan
    return out


def true_range(high: PriceInput, low: PriceInput, close: PriceInput) -> pd.Series:
    """True Range (``ta.tr``).

    TR = max(high - low, |high - prev_close|, |low - prev_close|)

    On the first bar, or when the previous close is missing, TR falls back
    to ``high - low``.

    Raises:
        InvalidArgumentError: If any input is ``None`` or the three series
            differ in length.
    """
    hi, lo, cl = _ohlc_arrays(high, low, close)
    return _series(_true_range_array(hi, lo, cl), high, "TR")


tr = true_range


def atr(high: PriceInput, low: PriceInput, close: PriceInput, length: int) -> pd.Series:
    """Average True Range (``ta.atr``): :func:`rma` of :func:`true_range`.

    Args:
        high:   High price series.
        low:    Low price series.
        close:  Close price series.
        length: Smoothing period, a positive integer.

    Returns:
        ATR Series, NaN before the first full window of true ranges.
    """
    hi, lo, cl = _ohlc_arrays(high, low, close)
    length = check_length(length)
    ranges = _true_range_array(hi, lo, cl)
    means = _sma_array(ranges, length)
    return _series(_rma_array(ranges, length, means), high, f"ATR_{length}")
