"""YAML configuration with ``TA_*`` environment variable overrides.

Lookup order for the YAML file:

1. ``$TA_CONFIG_PATH`` when set (a missing file there means "no config"),
2. ``config/config.yaml`` in the project root,
3. ``config/config.example.yaml`` shipped with the repository.

Environment overrides are applied on top of whichever file was read.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

_ROOT = Path(__file__).resolve().parents[2]
_CONFIG_DIR = _ROOT / "config"

_PATH_ENV = "TA_CONFIG_PATH"

# ENV_VAR -> (dotted key, converter)
_ENV_OVERRIDES: dict[str, tuple[str, type]] = {
    "TA_LOG_LEVEL": ("log_level", str),
    "TA_PROVIDER": ("market.provider", str),
    "TA_SYMBOL": ("market.symbol", str),
    "TA_INTERVAL": ("market.interval", str),
    "TA_LIMIT": ("market.limit", int),
    "TA_BINANCE_BASE_URL": ("providers.binance.base_url", str),
    "TA_BINANCE_TIMEOUT": ("providers.binance.timeout", float),
}

_instance: dict[str, Any] | None = None


def config_path() -> Path:
    """Return the YAML file the loader will read."""
    override = os.environ.get(_PATH_ENV)
    if override:
        return Path(override)
    local = _CONFIG_DIR / "config.yaml"
    return local if local.exists() else _CONFIG_DIR / "config.example.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _override(cfg: dict[str, Any], dotted_key: str, value: Any) -> None:
    *parents, leaf = dotted_key.split(".")
    node = cfg
    for key in parents:
        child = node.get(key)
        if not isinstance(child, dict):
            child = node[key] = {}
        node = child
    node[leaf] = value


def load_config(*, reload: bool = False) -> dict[str, Any]:
    """Return the merged configuration, loading it on first use.

    Args:
        reload: Re-read the YAML file and environment instead of returning
            the cached dictionary.

    Raises:
        ValueError: If the YAML file is not a mapping, or an override such
            as ``TA_LIMIT`` cannot be converted.
    """
    global _instance
    if _instance is None or reload:
        cfg = _read_yaml(config_path())
        for env_var, (dotted_key, convert) in _ENV_OVERRIDES.items():
            raw = os.environ.get(env_var)
            if raw is None:
                continue
            try:
                _override(cfg, dotted_key, convert(raw))
            except ValueError as exc:
                raise ValueError(f"{env_var}={raw!r} is not a valid {convert.__name__}") from exc
        _instance = cfg
    return _instance


def get_config(section: str | None = None) -> dict[str, Any]:
    """Return the whole config, or one top-level *section* of it.

    Raises:
        KeyError: If *section* is not present.
    """
    cfg = load_config()
    if section is None:
        return cfg
    if section not in cfg:
        raise KeyError(f"Config section '{section}' not found")
    return cfg[section]
