"""Data models and result types for ``finance_tracker``.

Persisted documents (records, settings, export files) are pydantic models so
that loading from disk, a database row, or an imported file goes through one
validation path. Python attribute names are snake_case; the JSON keys keep the
camelCase shape of the storage format (``createdAt``, ``baseCurrency``...).

Operation results are small frozen dataclasses. Core components return these
instead of raising, so callers always branch on an explicit ``ok``/``valid``
flag.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Food",
    "Books",
    "Transport",
    "Entertainment",
    "Fees",
    "Other",
)

DEFAULT_BASE_CURRENCY = "USD"

DEFAULT_CONVERSION_RATES: dict[str, float] = {"EUR": 1.09, "GBP": 1.27}

EXPORT_VERSION = "1.0"


# ---------------------------------------------------------------------------
# Persisted documents
# ---------------------------------------------------------------------------


class TransactionRecord(BaseModel):
    """A single transaction plus repository-managed metadata.

    Instances are frozen: the repository replaces records wholesale on update,
    so snapshots handed to callers can never alias mutable internal state.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    description: str
    amount: float
    category: str
    date: str
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    def to_json(self) -> dict[str, Any]:
        """Return the persisted (camelCase, JSON-safe) representation."""

        return self.model_dump(mode="json", by_alias=True)


class Settings(BaseModel):
    """User settings: base currency, static conversion rates, categories, cap."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    base_currency: str = Field(default=DEFAULT_BASE_CURRENCY, alias="baseCurrency")
    conversion_rates: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CONVERSION_RATES), alias="conversionRates"
    )
    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    budget_cap: float = Field(default=0.0, alias="budgetCap")

    @field_validator("categories")
    @classmethod
    def _unique_with_defaults(cls, v: list[str]) -> list[str]:
        seen: dict[str, None] = {}
        for name in v:
            s = name.strip()
            if s:
                seen.setdefault(s, None)
        for name in DEFAULT_CATEGORIES:
            seen.setdefault(name, None)
        return list(seen)

    @field_validator("budget_cap", mode="before")
    @classmethod
    def _cap_absent_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @field_validator("budget_cap")
    @classmethod
    def _cap_finite_non_negative(cls, v: float) -> float:
        if not math.isfinite(v) or v < 0:
            raise ValueError("budgetCap must be a finite number >= 0")
        return v

    @property
    def budget_enabled(self) -> bool:
        return self.budget_cap > 0

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ExportDocument(BaseModel):
    """Versioned backup document written by ``export`` and read by ``import``."""

    model_config = ConfigDict(populate_by_name=True)

    records: list[TransactionRecord]
    settings: Settings
    export_date: str = Field(alias="exportDate")
    version: str = EXPORT_VERSION

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Operation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldValidation:
    """Outcome of validating one raw field value.

    ``value`` holds the normalized value when ``valid``; ``error`` holds a
    user-facing message otherwise.
    """

    valid: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, value: Any) -> FieldValidation:
        return cls(True, value, None)

    @classmethod
    def fail(cls, error: str) -> FieldValidation:
        return cls(False, None, error)


@dataclass(frozen=True, slots=True)
class FormValidation:
    """Combined validation of a record form; ``values`` only when fully valid."""

    valid: bool
    errors: dict[str, str] = field(default_factory=dict)
    values: dict[str, Any] | None = None


@dataclass(frozen=True, slots=True)
class WriteResult:
    """Outcome of a repository mutation.

    ``ok`` says whether the change was applied in memory. ``persisted`` says
    whether the write-through save succeeded; a failed save is not rolled
    back, the caller decides how to react.
    """

    ok: bool
    record: TransactionRecord | None = None
    persisted: bool = False
    error: str | None = None

    def __bool__(self) -> bool:
        return self.ok


@dataclass(frozen=True, slots=True)
class ImportResult:
    success: bool
    count: int = 0
    error: str | None = None


@dataclass(frozen=True, slots=True)
class SettingsChange:
    """Outcome of a settings edit; ``settings`` is the updated copy when ``ok``."""

    ok: bool
    settings: Settings
    error: str | None = None


class CategoryTotal(NamedTuple):
    category: str
    amount: float


type BudgetState = Literal["disabled", "ok", "warning", "exceeded"]


@dataclass(frozen=True, slots=True)
class BudgetStatus:
    """Budget-cap classification for the current month.

    ``remaining`` is negative once the cap is exceeded. For a disabled cap the
    numeric fields are zero except ``month_total``.
    """

    state: BudgetState
    cap: float
    month_total: float
    remaining: float = 0.0
    percentage: float = 0.0


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    record_count: int
    total_amount: float
    top_category: str
    last_7_days_total: float
    category_totals: list[CategoryTotal]
    recent_records: list[TransactionRecord]
    budget: BudgetStatus


__all__ = [
    "DEFAULT_CATEGORIES",
    "DEFAULT_BASE_CURRENCY",
    "DEFAULT_CONVERSION_RATES",
    "EXPORT_VERSION",
    "TransactionRecord",
    "Settings",
    "ExportDocument",
    "FieldValidation",
    "FormValidation",
    "WriteResult",
    "ImportResult",
    "SettingsChange",
    "CategoryTotal",
    "BudgetState",
    "BudgetStatus",
    "DashboardSummary",
]
