"""Exceptions raised by the indicator engine."""

from __future__ import annotations


class IndicatorError(Exception):
    """Base class for all indicator errors."""


class InvalidArgumentError(IndicatorError, ValueError):
    """An indicator was called with an argument it cannot compute on.

    Raised for a non-positive ``length`` or ``mult``, a missing (``None``)
    input series, or OHLC / precomputed series whose lengths disagree.
    Subclasses :class:`ValueError` so callers catching the builtin keep
    working.
    """
