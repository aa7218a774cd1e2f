"""
Rent ledger configuration (``rental_config``).

System defaults (supported currencies, default payment method, landlord
setting defaults) live in ``defaults.yaml`` beside this file.  Services
receive a ``SystemConfig`` by injection and fall back to
``get_system_config()``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from rental_config.loader import load_system_config
from rental_config.schema import SystemConfig

_logger = logging.getLogger("rental_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"

_cache: dict[Path, SystemConfig] = {}


def get_system_config(path: Path | None = None) -> SystemConfig:
    """
    Load (once per path) and return the system configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the default currency is not supported.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    config = _cache.get(config_path)
    if config is None:
        config = load_system_config(config_path)
        _cache[config_path] = config
        _logger.info(
            "system_config_loaded",
            extra={"source": config.source, "checksum": config.checksum},
        )
    return config


def clear_config_cache() -> None:
    _cache.clear()


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SystemConfig",
    "clear_config_cache",
    "get_system_config",
]
