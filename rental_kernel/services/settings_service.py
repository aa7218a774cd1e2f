"""
LandlordSettingsService -- per-landlord settings over YAML defaults.

Responsibility:
    Reads and writes the landlord settings document.  Stored values are
    deep-merged over ``landlord_settings`` from rental_config/defaults.yaml,
    so a landlord who never saved settings still gets a complete document.
    Keys are addressed with dotted paths (``auto_invoice.day_of_month``).

Architecture position:
    Kernel > Services.  Used by the invoice generator (due days), invoice
    numbering (prefix) and the auto-invoice scheduler (schedule and
    last_run_* bookkeeping).

Invariants enforced:
    - The stored JSON document is replaced, never mutated in place, so the
      ORM always detects the change.
    - ``get_auto_invoice_config`` never raises on malformed stored values:
      each bad value falls back to its safe default with a warning log.

Failure modes:
    - LandlordNotFoundError from ``set_setting`` for an unknown landlord.
    - InvalidSettingError from ``set_setting`` for an out-of-range schedule
      or due-days value.
"""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from rental_config import SystemConfig, get_system_config
from rental_kernel.domain.types import LandlordAutoInvoiceConfig
from rental_kernel.exceptions import InvalidSettingError, LandlordNotFoundError
from rental_kernel.logging_config import get_logger
from rental_kernel.models.landlord import Landlord, LandlordSettings

logger = get_logger("services.settings")

_MISSING = object()

DEFAULT_DAY_OF_MONTH = 1
DEFAULT_DUE_DAYS = 30


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict: ``override`` merged into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def get_path(document: dict[str, Any], key: str, default: Any = None) -> Any:
    node: Any = document
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def set_path(document: dict[str, Any], key: str, value: Any) -> dict[str, Any]:
    """Return a copy of ``document`` with ``key`` set to ``value``."""
    updated = copy.deepcopy(document)
    parts = key.split(".")
    node = updated
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value
    return updated


def _validate(key: str, value: Any) -> None:
    if key == "auto_invoice.enabled" and not isinstance(value, bool):
        raise InvalidSettingError(key, "must be true or false")
    if key == "auto_invoice.day_of_month":
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 31:
            raise InvalidSettingError(key, "must be an integer between 1 and 31")
    if key == "payment_terms.default_due_days":
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise InvalidSettingError(key, "must be a non-negative integer")


class LandlordSettingsService:
    """
    Landlord settings reads and writes.

    Writes flush only; the caller commits.
    """

    def __init__(self, session: Session, config: SystemConfig | None = None):
        self._session = session
        self._config = config or get_system_config()

    def _row(self, landlord_id: UUID) -> LandlordSettings | None:
        return self._session.execute(
            select(LandlordSettings).where(LandlordSettings.landlord_id == landlord_id)
        ).scalar_one_or_none()

    def get_settings(self, landlord_id: UUID) -> dict[str, Any]:
        """Full settings document: stored values over system defaults."""
        row = self._row(landlord_id)
        stored = row.values if row is not None and isinstance(row.values, dict) else {}
        return deep_merge(self._config.landlord_defaults, stored)

    def get_setting(self, landlord_id: UUID, key: str, default: Any = None) -> Any:
        value = get_path(self.get_settings(landlord_id), key, _MISSING)
        return default if value is _MISSING or value is None else value

    def set_setting(self, landlord_id: UUID, key: str, value: Any) -> None:
        """
        Store one dotted key.

        Raises:
            LandlordNotFoundError: If the landlord does not exist.
            InvalidSettingError: If a validated key gets a bad value.
        """
        self.set_settings(landlord_id, {key: value})

    def set_settings(self, landlord_id: UUID, values: dict[str, Any]) -> None:
        """Store several dotted keys in one write."""
        for key, value in values.items():
            _validate(key, value)

        row = self._row(landlord_id)
        if row is None:
            if self._session.get(Landlord, landlord_id) is None:
                raise LandlordNotFoundError(str(landlord_id))
            row = LandlordSettings(landlord_id=landlord_id, values={})
            self._session.add(row)

        document = row.values if isinstance(row.values, dict) else {}
        for key, value in values.items():
            document = set_path(document, key, value)
        row.values = document
        self._session.flush()

        logger.info(
            "landlord_settings_updated",
            extra={"landlord_id": str(landlord_id), "keys": sorted(values)},
        )

    def get_auto_invoice_config(self, landlord_id: UUID) -> LandlordAutoInvoiceConfig:
        """
        Parsed auto-invoice schedule for a landlord.

        Only a literal boolean true enables generation.  A day_of_month
        outside 1..31 falls back to 1; a negative or non-integer due-days
        value falls back to 30.
        """
        settings = self.get_settings(landlord_id)
        auto = settings.get("auto_invoice")
        if not isinstance(auto, dict):
            auto = {}
        warnings: list[str] = []

        enabled = auto.get("enabled", False)
        if not isinstance(enabled, bool):
            warnings.append(f"auto_invoice.enabled={enabled!r}")
            enabled = False

        day = auto.get("day_of_month", DEFAULT_DAY_OF_MONTH)
        day = _coerce_int(day)
        if day is None or not 1 <= day <= 31:
            warnings.append(f"auto_invoice.day_of_month={auto.get('day_of_month')!r}")
            day = DEFAULT_DAY_OF_MONTH

        due_days = _coerce_int(get_path(settings, "payment_terms.default_due_days", DEFAULT_DUE_DAYS))
        if due_days is None or due_days < 0:
            warnings.append(
                f"payment_terms.default_due_days="
                f"{get_path(settings, 'payment_terms.default_due_days')!r}"
            )
            due_days = DEFAULT_DUE_DAYS

        if warnings:
            logger.warning(
                "auto_invoice_settings_malformed",
                extra={"landlord_id": str(landlord_id), "invalid_values": warnings},
            )

        return LandlordAutoInvoiceConfig(
            landlord_id=landlord_id,
            enabled=enabled,
            day_of_month=day,
            default_due_days=due_days,
            last_run_at=_parse_datetime(auto.get("last_run_at")),
            last_run_status=auto.get("last_run_status"),
            last_run_message=auto.get("last_run_message"),
            warnings=tuple(warnings),
        )


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None
