"""Settings-management operations.

Each operation takes the current :class:`~finance_tracker.models.Settings`,
validates the requested change, and returns a
:class:`~finance_tracker.models.SettingsChange` carrying an updated copy. The
input is never mutated and nothing is persisted here; callers save the new
settings through their store.

Exports
-------
- ``add_category`` / ``remove_category``: maintain the known-category list.
  Names follow :func:`~finance_tracker.validators.validate_category`; the six
  default categories cannot be removed.
- ``set_budget_cap`` / ``clear_budget_cap``: monthly spending ceiling.
- ``set_conversion_rates`` / ``set_base_currency``: static currency data.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from typing import Any

from .models import DEFAULT_CATEGORIES, Settings, SettingsChange
from .validators import validate_category

_CURRENCY_RE = re.compile(r"[A-Za-z]{3}")


def _positive_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number


def add_category(settings: Settings, name: Any) -> SettingsChange:
    v = validate_category(name)
    if not v.valid:
        return SettingsChange(False, settings, v.error)
    if v.value in settings.categories:
        return SettingsChange(False, settings, "Category already exists")
    updated = settings.model_copy(update={"categories": [*settings.categories, v.value]})
    return SettingsChange(True, updated)


def remove_category(settings: Settings, name: str) -> SettingsChange:
    if name in DEFAULT_CATEGORIES:
        return SettingsChange(False, settings, "Default categories cannot be deleted")
    if name not in settings.categories:
        return SettingsChange(False, settings, f"Unknown category: {name}")
    remaining = [c for c in settings.categories if c != name]
    return SettingsChange(True, settings.model_copy(update={"categories": remaining}))


def set_budget_cap(settings: Settings, value: Any) -> SettingsChange:
    cap = _positive_number(value)
    if cap is None:
        return SettingsChange(False, settings, "Please enter a valid positive number")
    return SettingsChange(True, settings.model_copy(update={"budget_cap": cap}))


def clear_budget_cap(settings: Settings) -> SettingsChange:
    return SettingsChange(True, settings.model_copy(update={"budget_cap": 0.0}))


def set_conversion_rates(settings: Settings, rates: Mapping[str, Any]) -> SettingsChange:
    """Merge ``rates`` (currency code -> rate) into the existing map.

    All rates must be positive numbers; a single bad rate rejects the change.
    """

    parsed: dict[str, float] = {}
    for code, raw in rates.items():
        rate = _positive_number(raw)
        if rate is None or not _CURRENCY_RE.fullmatch(str(code)):
            return SettingsChange(False, settings, "Invalid conversion rates")
        parsed[str(code).upper()] = rate
    merged = {**settings.conversion_rates, **parsed}
    return SettingsChange(True, settings.model_copy(update={"conversion_rates": merged}))


def set_base_currency(settings: Settings, code: str) -> SettingsChange:
    s = (code or "").strip()
    if not _CURRENCY_RE.fullmatch(s):
        return SettingsChange(False, settings, "Currency must be a three-letter code")
    return SettingsChange(True, settings.model_copy(update={"base_currency": s.upper()}))


__all__ = [
    "add_category",
    "remove_category",
    "set_budget_cap",
    "clear_budget_cap",
    "set_conversion_rates",
    "set_base_currency",
]
