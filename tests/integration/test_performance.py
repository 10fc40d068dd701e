"""Timing checks for month-sized aggregations"""

import time
from datetime import date, timedelta

import pytest

from paycycle.domain.day_totals import build_day_totals
from paycycle.domain.models import LedgerEntry, RecurringProjection
from paycycle.domain.schedule_view import build_schedule_view


@pytest.fixture
def busy_month():
    start = date(2025, 8, 1)
    entries = [
        LedgerEntry(
            f"t{i}", start - timedelta(days=i % 40), 100 + i, "card-visa", start + timedelta(days=i % 31), "card"
        )
        for i in range(1500)
    ]
    projections = [
        RecurringProjection(f"s{i}", start + timedelta(days=i % 31), 50, "dd-utilities", "bank")
        for i in range(500)
    ]
    return entries, projections


def test_day_totals_for_2000_items(busy_month):
    entries, projections = busy_month

    started = time.perf_counter()
    totals = build_day_totals(entries, projections)
    elapsed = time.perf_counter() - started

    assert len(totals) == 31
    assert sum(t.transaction_count + t.schedule_count for t in totals.values()) == 2000
    assert elapsed < 0.1


def test_schedule_view_for_2000_items(busy_month, instruments, accounts):
    entries, projections = busy_month

    started = time.perf_counter()
    view = build_schedule_view(entries, projections, instruments, accounts, 2025, 8)
    elapsed = time.perf_counter() - started

    assert sum(count for row in view.rows for count in row.account_counts.values()) == 2000
    assert elapsed < 0.1
