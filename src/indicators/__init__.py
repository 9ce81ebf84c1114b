"""Technical indicators module.

Pure-function implementations of TradingView's ``ta.*`` indicators built on
numpy and pandas.  Import individual functions or use the module-level
``__all__`` for a convenient wildcard import.
"""

from indicators.core import (
    BandTriple,
    atr,
    bb,
    bollinger_bands,
    ema,
    rma,
    rsi,
    sma,
    stdev,
    tr,
    true_range,
)
from indicators.errors import IndicatorError, InvalidArgumentError

__all__ = [
    "BandTriple",
    "IndicatorError",
    "InvalidArgumentError",
    "atr",
    "bb",
    "bollinger_bands",
    "ema",
    "rma",
    "rsi",
    "sma",
    "stdev",
    "tr",
    "true_range",
]
