"""Field validation for transaction forms.

Every validator takes a raw value (usually the string typed by the user) and
returns a :class:`~finance_tracker.models.FieldValidation`. Validators never
raise: ``None`` is treated as an empty string and other non-string values are
rendered with ``str()`` before the rules run.

Rules
-----
- description: non-empty after trimming; no internal double spaces or line
  breaks; no immediately repeated word (case-insensitive,
  words are ASCII letter, digit and underscore runs).
- amount: ``0`` or a number without leading zeros, up to two decimals, and
  strictly greater than zero.
- date: ``YYYY-MM-DD``, a real calendar date, not after ``today``.
- category: letter runs separated by single spaces or hyphens.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from .models import FieldValidation, FormValidation

_NO_EDGE_SPACE_RE = re.compile(r"\S(?:.*\S)?")
_DUPLICATE_WORD_RE = re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE | re.ASCII)
_AMOUNT_RE = re.compile(r"(0|[1-9][0-9]*)(\.[0-9]{1,2})?")
_DATE_RE = re.compile(r"([0-9]{4})-(0[1-9]|1[0-2])-(0[1-9]|[12][0-9]|3[01])")
_CATEGORY_RE = re.compile(r"[A-Za-z]+(?:[ -][A-Za-z]+)*")

FIELD_ORDER: tuple[str, ...] = ("description", "amount", "category", "date")


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def validate_description(value: Any) -> FieldValidation:
    trimmed = _as_text(value).strip()
    if not trimmed:
        return FieldValidation.fail("Description is required")
    if not _NO_EDGE_SPACE_RE.fullmatch(trimmed):
        return FieldValidation.fail("No leading/trailing spaces or double spaces allowed")
    if "  " in trimmed:
        return FieldValidation.fail("Double spaces are not allowed")
    if _DUPLICATE_WORD_RE.search(trimmed):
        return FieldValidation.fail("Duplicate consecutive words detected")
    return FieldValidation.ok(trimmed)


def validate_amount(value: Any) -> FieldValidation:
    trimmed = _as_text(value).strip()
    if not trimmed:
        return FieldValidation.fail("Amount is required")
    if not _AMOUNT_RE.fullmatch(trimmed):
        return FieldValidation.fail("Enter a valid positive number with up to 2 decimal places")
    amount = float(trimmed)
    if amount == 0:
        return FieldValidation.fail("Amount must be greater than zero")
    return FieldValidation.ok(amount)


def parse_calendar_date(value: str) -> date | None:
    """Return the calendar date for a ``YYYY-MM-DD`` string, or ``None``.

    The pattern admits day 31 for every month, so the components are
    cross-checked by constructing the actual date (rejects ``2024-02-30``).
    """

    m = _DATE_RE.fullmatch(value)
    if m is None:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def validate_date(value: Any, *, today: date | None = None) -> FieldValidation:
    """Validate a ``YYYY-MM-DD`` date that is not later than ``today``.

    ``today`` defaults to the local calendar date; tests pass a fixed date.
    The normalized value is the trimmed input string, not a reformatted one.
    """

    trimmed = _as_text(value).strip()
    if not trimmed:
        return FieldValidation.fail("Date is required")
    if not _DATE_RE.fullmatch(trimmed):
        return FieldValidation.fail("Date must be in YYYY-MM-DD format")
    parsed = parse_calendar_date(trimmed)
    if parsed is None:
        return FieldValidation.fail("Invalid date (check day/month combination)")
    if parsed > (today or date.today()):
        return FieldValidation.fail("Date cannot be in the future")
    return FieldValidation.ok(trimmed)


def validate_category(value: Any) -> FieldValidation:
    trimmed = _as_text(value).strip()
    if not trimmed:
        return FieldValidation.fail("Category is required")
    if not _CATEGORY_RE.fullmatch(trimmed):
        return FieldValidation.fail("Category can only contain letters, spaces, and hyphens")
    return FieldValidation.ok(trimmed)


def validate_known_category(value: Any, categories: Iterable[str]) -> FieldValidation:
    """Form-layer rule: the category must also exist in the settings list."""

    result = validate_category(value)
    if not result.valid:
        return result
    if result.value not in set(categories):
        return FieldValidation.fail(f"Unknown category: {result.value}")
    return result


def validate_all_fields(
    form: Mapping[str, Any],
    *,
    today: date | None = None,
    categories: Iterable[str] | None = None,
) -> FormValidation:
    """Validate every field independently and collect all errors.

    ``values`` (ready for the repository) is populated only when all fields
    pass. When ``categories`` is given the category must be a known one.
    """

    results = {
        "description": validate_description(form.get("description")),
        "amount": validate_amount(form.get("amount")),
        "category": (
            validate_known_category(form.get("category"), categories)
            if categories is not None
            else validate_category(form.get("category"))
        ),
        "date": validate_date(form.get("date"), today=today),
    }

    errors = {name: r.error or "" for name, r in results.items() if not r.valid}
    if errors:
        return FormValidation(valid=False, errors=errors, values=None)
    return FormValidation(
        valid=True,
        errors={},
        values={name: results[name].value for name in FIELD_ORDER},
    )


__all__ = [
    "FIELD_ORDER",
    "parse_calendar_date",
    "validate_description",
    "validate_amount",
    "validate_date",
    "validate_category",
    "validate_known_category",
    "validate_all_fields",
]
