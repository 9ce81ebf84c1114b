"""Argument checks and array coercion shared by every indicator."""

from __future__ import annotations

import math
import numbers
from typing import Any, Sequence, Union

import numpy as np
import pandas as pd

from indicators.errors import InvalidArgumentError

PriceInput = Union[pd.Series, np.ndarray, Sequence[float]]


def as_price_array(values: PriceInput | None, name: str = "source") -> np.ndarray:
    """Return *values* as a fresh 1-D ``float64`` array.

    The copy keeps callers' buffers untouched no matter what the indicator
    does with the result.

    Raises:
        InvalidArgumentError: If *values* is ``None``, not numeric, or not
            one-dimensional.
    """
    if values is None:
        raise InvalidArgumentError(f"'{name}' must not be None")

    if isinstance(values, pd.Series):
        raw: Any = values.to_numpy(dtype="float64", na_value=np.nan)
    else:
        raw = values

    try:
        arr = np.array(raw, dtype="float64", copy=True)
    except (TypeError, ValueError) as exc:
        raise InvalidArgumentError(f"'{name}' must contain numeric values: {exc}") from exc

    if arr.ndim != 1:
        raise InvalidArgumentError(
            f"'{name}' must be one-dimensional, got shape {arr.shape}"
        )
    return arr


def check_length(length: Any) -> int:
    """Validate a window/period argument and return it as ``int``."""
    if isinstance(length, bool) or not isinstance(length, numbers.Integral):
        raise InvalidArgumentError(
            f"'length' must be a positive integer, got {length!r}"
        )
    if length <= 0:
        raise InvalidArgumentError(f"'length' must be positive, got {length}")
    return int(length)


def check_multiplier(mult: Any) -> float:
    """Validate a band multiplier and return it as ``float``."""
    if isinstance(mult, bool) or not isinstance(mult, numbers.Real):
        raise InvalidArgumentError(f"'mult' must be a positive number, got {mult!r}")
    if not math.isfinite(mult):
        raise InvalidArgumentError(f"'mult' must be finite, got {mult}")
    if not mult > 0:
        raise InvalidArgumentError(f"'mult' must be positive, got {mult}")
    return float(mult)


def check_aligned(**arrays: np.ndarray) -> int:
    """Ensure every keyword array has the same length and return it."""
    lengths = {name: len(arr) for name, arr in arrays.items()}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
        raise InvalidArgumentError(f"Input series must have equal length ({detail})")
    return next(iter(lengths.values()), 0)


def result_index(source: Any, size: int) -> pd.Index:
    """Index for an output series aligned 1:1 with *source*."""
    if isinstance(source, pd.Series):
        return source.index
    return pd.RangeIndex(size)
