"""Dashboard figures derived from the record collection.

All functions are read-only over the sequence they are given and take the
reference date (``today``) explicitly, defaulting to the local calendar date.
Date windows use calendar-day granularity. Records whose date string does not
parse as a calendar date are left out of date windows.

Tie-breaks
----------
Category totals accumulate into an insertion-ordered mapping, so categories
with equal totals keep first-seen order (both in :func:`category_totals` and
:func:`top_category`). :func:`recent_records` keeps collection order for
records sharing a date.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, timedelta

from .models import (
    BudgetStatus,
    CategoryTotal,
    DashboardSummary,
    Settings,
    TransactionRecord,
)
from .validators import parse_calendar_date

NONE_CATEGORY = "None"

BUDGET_WARNING_PERCENT = 80.0

LAST_DAYS_WINDOW = 7


def _sum(records: Iterable[TransactionRecord]) -> float:
    return sum((r.amount for r in records), 0.0)


def total_amount(records: Iterable[TransactionRecord]) -> float:
    return _sum(records)


def _accumulate(records: Iterable[TransactionRecord]) -> dict[str, float]:
    totals: dict[str, float] = {}
    for r in records:
        totals[r.category] = totals.get(r.category, 0.0) + r.amount
    return totals


def category_totals(records: Iterable[TransactionRecord]) -> list[CategoryTotal]:
    """Per-category sums, largest first; ties keep first-seen order."""

    totals = _accumulate(records)
    ordered = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    return [CategoryTotal(category, amount) for category, amount in ordered]


def top_category(records: Iterable[TransactionRecord]) -> str:
    """Category with the largest positive total, or :data:`NONE_CATEGORY`."""

    best = NONE_CATEGORY
    best_amount = 0.0
    for category, amount in _accumulate(records).items():
        if amount > best_amount:
            best, best_amount = category, amount
    return best


def last_days_total(
    records: Iterable[TransactionRecord],
    *,
    today: date | None = None,
    days: int = LAST_DAYS_WINDOW,
) -> float:
    """Sum of records dated on or after ``today - days`` (inclusive)."""

    start = (today or date.today()) - timedelta(days=days)
    return _sum(r for r in records if (d := parse_calendar_date(r.date)) is not None and d >= start)


def last_7_days_total(records: Iterable[TransactionRecord], *, today: date | None = None) -> float:
    return last_days_total(records, today=today, days=LAST_DAYS_WINDOW)


def current_month_total(
    records: Iterable[TransactionRecord], *, today: date | None = None
) -> float:
    ref = today or date.today()
    return _sum(
        r
        for r in records
        if (d := parse_calendar_date(r.date)) is not None
        and d.year == ref.year
        and d.month == ref.month
    )


def recent_records(
    records: Sequence[TransactionRecord], limit: int = 5
) -> list[TransactionRecord]:
    """Most recent ``limit`` records by date, newest first."""

    if limit <= 0:
        return []
    ordered = sorted(
        records, key=lambda r: parse_calendar_date(r.date) or date.min, reverse=True
    )
    return ordered[:limit]


def budget_status(
    records: Iterable[TransactionRecord],
    cap: float | None,
    *,
    today: date | None = None,
) -> BudgetStatus:
    """Classify this month's spending against ``cap``.

    ``cap`` <= 0 (or ``None``) disables the check. Otherwise the state is
    ``exceeded`` when the month total is above the cap, ``warning`` from 80%
    of the cap, and ``ok`` below that.
    """

    month_total = current_month_total(records, today=today)
    if cap is None or cap <= 0:
        return BudgetStatus(state="disabled", cap=0.0, month_total=month_total)

    remaining = cap - month_total
    percentage = month_total / cap * 100
    if month_total > cap:
        state = "exceeded"
    elif percentage >= BUDGET_WARNING_PERCENT:
        state = "warning"
    else:
        state = "ok"
    return BudgetStatus(
        state=state,
        cap=cap,
        month_total=month_total,
        remaining=remaining,
        percentage=percentage,
    )


def dashboard_summary(
    records: Sequence[TransactionRecord],
    settings: Settings,
    *,
    today: date | None = None,
    recent_limit: int = 5,
) -> DashboardSummary:
    ref = today or date.today()
    return DashboardSummary(
        record_count=len(records),
        total_amount=total_amount(records),
        top_category=top_category(records),
        last_7_days_total=last_7_days_total(records, today=ref),
        category_totals=category_totals(records),
        recent_records=recent_records(records, recent_limit),
        budget=budget_status(records, settings.budget_cap, today=ref),
    )


__all__ = [
    "NONE_CATEGORY",
    "BUDGET_WARNING_PERCENT",
    "total_amount",
    "category_totals",
    "top_category",
    "last_days_total",
    "last_7_days_total",
    "current_month_total",
    "recent_records",
    "budget_status",
    "dashboard_summary",
]
