"""
Typed view of the system defaults file.

Frozen dataclasses only; parsing lives in ``rental_config.loader``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SystemConfig:
    """
    Parsed ``defaults.yaml``.

    ``landlord_defaults`` is the settings document stored landlord settings
    are merged over.  Use ``landlord_defaults_copy()`` before mutating it.
    """

    supported_currencies: frozenset[str]
    default_currency: str
    default_payment_method: str
    landlord_defaults: dict[str, Any] = field(default_factory=dict, compare=False)
    checksum: str = ""
    source: str = ""

    def landlord_defaults_copy(self) -> dict[str, Any]:
        return copy.deepcopy(self.landlord_defaults)
