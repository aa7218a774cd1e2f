"""
Configuration Loader (``rental_config.loader``).

Responsibility
--------------
Loads the YAML defaults file and parses it into a frozen ``SystemConfig``.
The runtime entry point is ``rental_config.get_system_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Default currency outside the supported set -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from rental_config.schema import SystemConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_system_config(data: dict[str, Any], source: str = "") -> SystemConfig:
    currency = data["currency"]
    supported = frozenset(str(code).upper() for code in currency["supported"])
    default_currency = str(currency["default"]).upper()
    if default_currency not in supported:
        raise ValueError(
            f"Default currency {default_currency!r} is not in supported "
            f"currencies {sorted(supported)}"
        )

    return SystemConfig(
        supported_currencies=supported,
        default_currency=default_currency,
        default_payment_method=data.get("payments", {}).get("default_method", "cash"),
        landlord_defaults=data.get("landlord_settings") or {},
        checksum=compute_checksum(data),
        source=source,
    )


def load_system_config(path: Path) -> SystemConfig:
    return parse_system_config(load_yaml_file(path), source=str(path))
