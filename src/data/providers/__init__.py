"""Candle providers for OHLCV market data.

Use :func:`get_provider` to obtain a provider instance by name::

    from data.providers import get_provider

    provider = get_provider("binance")
    df = provider.fetch_ohlcv("BTCUSDT", "15m", limit=100)
"""

from __future__ import annotations

from typing import Any

from data.providers.base import DataProvider
from data.providers.binance import BinanceProvider

# Registry mapping provider name -> class.
_PROVIDER_REGISTRY: dict[str, type[DataProvider]] = {
    "binance": BinanceProvider,
}


def get_provider(name: str, **options: Any) -> DataProvider:
    """Instantiate and return a data provider by name.

    Args:
        name: Provider identifier (e.g. ``"binance"``).
        **options: Keyword arguments for the provider's constructor,
            typically the matching ``providers.<name>`` config section.

    Returns:
        An instance of the requested :class:`DataProvider`.

    Raises:
        ValueError: If no provider is registered under *name*.
    """
    cls = _PROVIDER_REGISTRY.get(name)
    if cls is None:
        available = ", ".join(sorted(_PROVIDER_REGISTRY.keys()))
        raise ValueError(
            f"Unknown provider '{name}'. Available providers: {available}"
        )
    return cls(**options)


__all__ = [
    "BinanceProvider",
    "DataProvider",
    "get_provider",
]
