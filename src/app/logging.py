"""Logging setup with a Rich console handler."""

from __future__ import annotations

import logging
import os
from typing import Final

from rich.logging import RichHandler

_DEFAULT_LEVEL: Final[str] = "INFO"
_LEVEL_ENV: Final[str] = "TA_LOG_LEVEL"
_FORMAT: Final[str] = "%(message)s"
_DATE_FORMAT: Final[str] = "[%X]"

# Third-party loggers that log every request at INFO.
_NOISY_LOGGERS: Final[tuple[str, ...]] = ("httpx", "httpcore")

_handler: RichHandler | None = None


def _resolve_level(level: str | None) -> int:
    """Pick the level: explicit arg, then env var, then config, then INFO."""
    if level is None:
        level = os.environ.get(_LEVEL_ENV)
    if level is None:
        # Deferred import to avoid circular dependency with config module.
        from app.config import load_config

        level = str(load_config().get("log_level", _DEFAULT_LEVEL))
    return getattr(logging, level.upper(), logging.INFO)


def setup_logging(level: str | None = None, *, force: bool = False) -> None:
    """Attach a Rich console handler to the root logger.

    Only the first call installs the handler; later calls are no-ops unless
    *force* is set, in which case the handler is replaced and the level
    re-resolved (the CLI does this for ``--log-level``).

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Falls back to the TA_LOG_LEVEL env var, then the config's
               ``log_level``, then INFO.
        force: Reinstall the handler even if logging is already set up.
    """
    global _handler
    root = logging.getLogger()

    if _handler is not None:
        if not force:
            return
        root.removeHandler(_handler)

    resolved_level = _resolve_level(level)

    handler = RichHandler(
        level=resolved_level,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=False,
    )
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT))

    root.setLevel(resolved_level)
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.WARNING))

    _handler = handler


def get_logger(name: str) -> logging.Logger:
    """Return a named logger, ensuring logging is configured.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        A configured :class:`logging.Logger` instance.
    """
    setup_logging()
    return logging.getLogger(name)
