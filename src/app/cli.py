"""Click CLI for ta-parity.

Entry point: ``ta-parity`` (installed via pyproject.toml) or ``python -m app.cli``.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Optional

import click
import pandas as pd
from rich.console import Console
from rich.table import Table

from app.config import get_config
from app.logging import get_logger, setup_logging
from indicators.errors import InvalidArgumentError

logger = get_logger(__name__)
console = Console()

_INDICATORS = ("sma", "ema", "rma", "rsi", "stdev", "bb", "tr", "atr")
_NEEDS_HL = ("tr", "atr")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _error(message: str) -> None:
    """Print a styled error message and exit."""
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise SystemExit(1)


def _fmt(value: Optional[float]) -> str:
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return "[dim]n/a[/dim]"
    return f"{value:,.3f}"


def _market_defaults() -> dict:
    return get_config().get("market") or {}


def _load_candles(
    csv_path: Optional[str],
    provider_name: str,
    symbol: str,
    interval: str,
    limit: int,
) -> pd.DataFrame:
    """Read candles from *csv_path*, or fetch them from the provider."""
    if csv_path:
        from data.csv_loader import load_ohlcv_csv  # lazy import

        return load_ohlcv_csv(csv_path)

    from data.providers import get_provider  # lazy import

    options = (get_config().get("providers") or {}).get(provider_name) or {}
    provider = get_provider(provider_name, **options)
    with console.status(f"[bold green]Fetching {symbol} {interval} candles..."):
        return provider.fetch_ohlcv(symbol, interval, limit=limit)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
@click.version_option(package_name="ta-parity")
@click.option("--log-level", default=None, help="Log level (default: from config or INFO).")
def cli(log_level: Optional[str]) -> None:
    """ta-parity -- TradingView-compatible technical indicators."""
    if log_level:
        setup_logging(log_level, force=True)


# ---------------------------------------------------------------------------
# latest
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--symbol", default=None, help="Symbol (default: from config, e.g. BTCUSDT).")
@click.option("--interval", "--tf", "interval", default=None, help="Candle interval (e.g. 15m).")
@click.option("--limit", default=None, type=int, help="Number of candles to fetch.")
@click.option("--provider", default=None, help="Data provider name (default: from config).")
@click.option(
    "--csv",
    "csv_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="Read candles from a local CSV instead of the provider.",
)
def latest(
    symbol: Optional[str],
    interval: Optional[str],
    limit: Optional[int],
    provider: Optional[str],
    csv_path: Optional[str],
) -> None:
    """Show the latest value of every configured indicator."""
    from indicators.frame import IndicatorSettings, compute_indicators, latest_values

    market = _market_defaults()
    symbol = symbol or market.get("symbol", "BTCUSDT")
    interval = interval or market.get("interval", "15m")
    limit = limit if limit is not None else int(market.get("limit", 100))
    provider = provider or market.get("provider", "binance")

    logger.info("latest: %s %s limit=%s provider=%s csv=%s", symbol, interval, limit, provider, csv_path)

    try:
        settings = IndicatorSettings.from_config(get_config().get("indicators"))
        candles = _load_candles(csv_path, provider, symbol, interval, limit)
        if candles.empty:
            _error("No candles returned.")
        values = latest_values(compute_indicators(candles, settings))
    except (InvalidArgumentError, ValueError, KeyError) as exc:
        _error(str(exc))
    except Exception as exc:
        logger.exception("latest failed")
        _error(str(exc))

    source = Path(csv_path).name if csv_path else f"{symbol} {interval}"
    last_close = candles["close"].iloc[-1]

    console.print(f"[bold]{source}[/bold] -- {len(candles)} candles")
    table = Table()
    table.add_column("Indicator", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("close", _fmt(float(last_close)))
    for name, value in values.items():
        table.add_row(name, _fmt(value))
    console.print(table)


# ---------------------------------------------------------------------------
# compute
# ---------------------------------------------------------------------------

@cli.command()
@click.option(
    "--csv",
    "csv_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, resolve_path=True),
    help="CSV file with at least a 'close' column.",
)
@click.option(
    "--indicator",
    required=True,
    type=click.Choice(_INDICATORS, case_sensitive=False),
    help="Indicator to compute.",
)
@click.option("--length", default=14, show_default=True, type=int, help="Window / period length.")
@click.option("--mult", default=2.0, show_default=True, type=float, help="Bollinger multiplier.")
@click.option("--unbiased", is_flag=True, default=False, help="Sample (n-1) stdev divisor.")
@click.option("--tail", default=10, show_default=True, type=int, help="Rows to print.")
@click.option(
    "--output",
    default=None,
    type=click.Path(dir_okay=False, writable=True, resolve_path=True),
    help="Write the full result to this CSV instead of printing.",
)
def compute(
    csv_path: str,
    indicator: str,
    length: int,
    mult: float,
    unbiased: bool,
    tail: int,
    output: Optional[str],
) -> None:
    """Compute a single indicator over a CSV of candles."""
    from data.csv_loader import load_ohlcv_csv
    from indicators import core

    indicator = indicator.lower()
    logger.info("compute: %s length=%s mult=%s csv=%s", indicator, length, mult, csv_path)

    try:
        candles = load_ohlcv_csv(csv_path)
        close = candles["close"]

        if indicator in _NEEDS_HL and not {"high", "low"}.issubset(candles.columns):
            _error(f"'{indicator}' needs 'high' and 'low' columns.")

        if indicator == "bb":
            result = core.bb(close, length, mult).to_frame()
        elif indicator == "stdev":
            result = core.stdev(close, length, biased=not unbiased).to_frame(indicator)
        elif indicator == "tr":
            result = core.true_range(candles["high"], candles["low"], close).to_frame(indicator)
        elif indicator == "atr":
            result = core.atr(candles["high"], candles["low"], close, length).to_frame(indicator)
        else:
            result = getattr(core, indicator)(close, length).to_frame(indicator)
    except (InvalidArgumentError, ValueError) as exc:
        _error(str(exc))
    except Exception as exc:
        logger.exception("compute failed")
        _error(str(exc))

    if "timestamp" in candles.columns:
        result.insert(0, "timestamp", candles["timestamp"])
    result.insert(1 if "timestamp" in result.columns else 0, "close", close)

    if output:
        result.to_csv(output, index=False)
        console.print(f"[green]Done.[/green] Wrote {len(result)} rows to {output}.")
        return

    console.print(f"[bold]{indicator.upper()}({length})[/bold] -- last {min(tail, len(result))} rows")
    table = Table()
    for col in result.columns:
        table.add_column(str(col), justify="left" if col == "timestamp" else "right")
    for _, row in result.tail(tail).iterrows():
        table.add_row(
            *(
                str(value) if col == "timestamp" else _fmt(float(value))
                for col, value in row.items()
            )
        )
    console.print(table)


if __name__ == "__main__":
    cli()
