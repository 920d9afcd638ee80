from __future__ import annotations

from datetime import date

import pytest
from helpers.stores import make_record

from finance_tracker.models import Settings
from finance_tracker.reporting import (
    NONE_CATEGORY,
    budget_status,
    category_totals,
    current_month_total,
    dashboard_summary,
    last_7_days_total,
    recent_records,
    top_category,
    total_amount,
)

TODAY = date(2025, 9, 20)


@pytest.fixture
def records():
    return [
        make_record("a", "Coffee", 4.5, "Food", "2025-09-19"),
        make_record("b", "Book", 40.0, "Books", "2025-09-13"),  # exactly 7 days back
        make_record("c", "Train", 12.0, "Transport", "2025-09-12"),  # 8 days back
        make_record("d", "Lunch", 15.5, "Food", "2025-08-31"),
        make_record("e", "Cinema", 20.0, "Entertainment", "2024-09-15"),
    ]


def test_total_amount(records):
    assert total_amount(records) == pytest.approx(92.0)
    assert total_amount([]) == 0.0


def test_category_totals_sorted_desc(records):
    totals = category_totals(records)
    assert [t.category for t in totals] == ["Books", "Food", "Entertainment", "Transport"]
    assert totals[1].amount == pytest.approx(20.0)


def test_category_totals_ties_keep_first_seen_order():
    rs = [
        make_record("1", category="Fees", amount=10.0),
        make_record("2", category="Books", amount=10.0),
        make_record("3", category="Other", amount=10.0),
    ]
    assert [t.category for t in category_totals(rs)] == ["Fees", "Books", "Other"]
    assert top_category(rs) == "Fees"


def test_top_category(records):
    assert top_category(records) == "Books"


def test_top_category_empty_is_none_label():
    assert top_category([]) == NONE_CATEGORY == "None"


def test_last_7_days_is_inclusive(records):
    # a (1 day back) and b (exactly 7 days back); c at 8 days is excluded
    assert last_7_days_total(records, today=TODAY) == pytest.approx(44.5)


def test_last_7_days_skips_unparseable_dates():
    rs = [make_record("x", amount=5.0, date="not-a-date"), make_record("y", amount=1.0, date="2025-09-20")]
    assert last_7_days_total(rs, today=TODAY) == pytest.approx(1.0)


def test_current_month_total_matches_year_and_month(records):
    # 2024-09-15 shares the month number but not the year
    assert current_month_total(records, today=TODAY) == pytest.approx(56.5)


def test_recent_records_newest_first(records):
    assert [r.id for r in recent_records(records, 3)] == ["a", "b", "c"]
    assert recent_records(records, 0) == []
    assert len(recent_records(records)) == 5


def test_recent_records_same_date_keeps_collection_order():
    rs = [make_record("1", date="2025-09-01"), make_record("2", date="2025-09-01")]
    assert [r.id for r in recent_records(rs)] == ["1", "2"]


# ---- budget ----------------------------------------------------------------


@pytest.mark.parametrize("cap", [0, 0.0, None, -5])
def test_budget_disabled(records, cap):
    status = budget_status(records, cap, today=TODAY)
    assert status.state == "disabled"
    assert status.month_total == pytest.approx(56.5)


@pytest.mark.parametrize(
    ("cap", "state"),
    [
        (100.0, "ok"),  # 56.5%
        (70.0, "warning"),  # ~80.7%
        (56.5, "warning"),  # exactly 100% is not exceeded
        (50.0, "exceeded"),
    ],
)
def test_budget_thresholds(records, cap, state):
    status = budget_status(records, cap, today=TODAY)
    assert status.state == state
    assert status.remaining == pytest.approx(cap - 56.5)
    assert status.percentage == pytest.approx(56.5 / cap * 100)


def test_budget_warning_starts_at_80_percent():
    rs = [make_record("x", amount=80.0, date="2025-09-01")]
    assert budget_status(rs, 100.0, today=TODAY).state == "warning"
    assert budget_status(rs, 100.01, today=TODAY).state == "ok"


def test_budget_exceeded_remaining_is_negative():
    rs = [make_record("x", amount=120.0, date="2025-09-01")]
    status = budget_status(rs, 100.0, today=TODAY)
    assert status.state == "exceeded"
    assert status.remaining == pytest.approx(-20.0)


# ---- summary ---------------------------------------------------------------


def test_dashboard_summary(records):
    s = dashboard_summary(records, Settings(budgetCap=60), today=TODAY, recent_limit=2)
    assert s.record_count == 5
    assert s.total_amount == pytest.approx(92.0)
    assert s.top_category == "Books"
    assert s.last_7_days_total == pytest.approx(44.5)
    assert [r.id for r in s.recent_records] == ["a", "b"]
    assert s.budget.state == "warning"


def test_dashboard_summary_empty():
    s = dashboard_summary([], Settings(), today=TODAY)
    assert s.record_count == 0
    assert s.top_category == "None"
    assert s.category_totals == []
    assert s.budget.state == "disabled"


def test_top_category_tie_prefers_first_seen():
    rs = [
        make_record("1", category="Food", amount=30.0),
        make_record("2", category="Books", amount=30.0),
    ]
    assert top_category(rs) == "Food"
