"""Unit tests for the monthly schedule view"""

import logging
from dataclasses import FrozenInstanceError, replace
from datetime import date

import pytest

from paycycle.config import settings
from paycycle.domain.exceptions import UnresolvedInstrumentReference
from paycycle.domain.models import Account, LedgerEntry
from paycycle.domain.schedule_view import (
    DIRECT_DEBIT_LABEL,
    ScheduleFilters,
    build_schedule_view,
    filter_schedule_view,
    weekday_name,
)


def test_rows_for_august(august_entries, august_projections, instruments, accounts):
    view = build_schedule_view(august_entries, august_projections, instruments, accounts, 2025, 8)

    assert [(r.date, r.label) for r in view.rows] == [
        (date(2025, 8, 4), DIRECT_DEBIT_LABEL),
        (date(2025, 8, 10), "Visa Gold"),
        (date(2025, 8, 27), DIRECT_DEBIT_LABEL),
        (date(2025, 8, 27), "Master"),
    ]
    visa_row = view.rows[1]
    assert visa_row.account_amounts == {"Alpha Bank": 3000}
    assert visa_row.account_counts == {"Alpha Bank": 2}
    assert [i.item_id for i in visa_row.items] == ["e1", "e2"]
    assert visa_row.weekday == "日"
    assert visa_row.closing_label == "15日締"
    assert visa_row.payment_label == "翌月10日"


def test_totals(august_entries, august_projections, instruments, accounts):
    view = build_schedule_view(august_entries, august_projections, instruments, accounts, 2025, 8)

    assert view.account_totals == {"Alpha Bank": 3000, "Beta Bank": 4200}
    assert view.month_total == 7200
    assert view.month_total == sum(view.account_totals.values())
    assert view.unique_accounts == ("Alpha Bank", "Beta Bank")


def test_next_month_entries_are_excluded(august_entries, instruments, accounts):
    """e5 is debited in September and must not appear in August"""
    view = build_schedule_view(august_entries, [], instruments, accounts, 2025, 8)
    assert "e5" not in [i.item_id for r in view.rows for i in r.items]

    september = build_schedule_view(august_entries, [], instruments, accounts, 2025, 9)
    assert september.month_total == 9000


def test_view_is_independent_of_input_order(august_entries, august_projections, instruments, accounts):
    forward = build_schedule_view(august_entries, august_projections, instruments, accounts, 2025, 8)
    backward = build_schedule_view(
        list(reversed(august_entries)),
        august_projections,
        list(reversed(list(instruments.values()))),
        list(reversed(accounts)),
        2025,
        8,
    )
    assert forward == backward


def test_entries_without_stored_date_are_projected(instruments, accounts):
    """An entry with no stored date lands on its derived debit date"""
    entry = LedgerEntry("fresh", date(2025, 7, 3), 1500, "card-visa")
    view = build_schedule_view([entry], [], instruments, accounts, 2025, 8)

    assert len(view.rows) == 1
    assert view.rows[0].date == date(2025, 8, 10)


def test_empty_month(instruments, accounts):
    view = build_schedule_view([], [], instruments, accounts, 2025, 2)

    assert view.rows == ()
    assert view.month_total == 0
    assert view.unique_accounts == ()


def test_missing_instrument_raises(august_entries, instruments, accounts):
    orphan = replace(august_entries[0], instrument_id="card-deleted")
    with pytest.raises(UnresolvedInstrumentReference) as exc_info:
        build_schedule_view([orphan], [], instruments, accounts, 2025, 8)
    assert exc_info.value.item_id == "e1"


def test_missing_account_raises(august_entries, instruments):
    with pytest.raises(UnresolvedInstrumentReference) as exc_info:
        build_schedule_view(august_entries, [], instruments, [Account("acc-beta", "Beta Bank")], 2025, 8)
    assert exc_info.value.account_id == "acc-alpha"


def test_filter_by_payment_type(august_entries, august_projections, instruments, accounts):
    view = build_schedule_view(august_entries, august_projections, instruments, accounts, 2025, 8)
    filtered = filter_schedule_view(view, ScheduleFilters(payment_types=("bank",)))

    assert all(r.label == DIRECT_DEBIT_LABEL for r in filtered.rows)
    assert filtered.month_total == 1200


def test_filter_recomputes_row_amounts(august_entries, august_projections, instruments, accounts):
    view = build_schedule_view(august_entries, august_projections, instruments, accounts, 2025, 8)
    filtered = filter_schedule_view(view, ScheduleFilters(min_amount=1500, search_text="books"))

    assert len(filtered.rows) == 1
    assert filtered.rows[0].account_amounts == {"Alpha Bank": 2000}
    assert filtered.account_totals == {"Alpha Bank": 2000}


def test_filter_by_date_and_account(august_entries, august_projections, instruments, accounts):
    view = build_schedule_view(august_entries, august_projections, instruments, accounts, 2025, 8)
    filtered = filter_schedule_view(
        view,
        ScheduleFilters(account_names=("Beta Bank",), date_from=date(2025, 8, 20), date_to=date(2025, 8, 31)),
    )

    assert [r.label for r in filtered.rows] == [DIRECT_DEBIT_LABEL, "Master"]
    assert filtered.month_total == 3700


def test_inactive_filter_returns_view_unchanged(august_entries, instruments, accounts):
    view = build_schedule_view(august_entries, [], instruments, accounts, 2025, 8)
    assert not ScheduleFilters().is_active
    assert filter_schedule_view(view, ScheduleFilters()) is view


def test_weekday_name():
    assert weekday_name(date(2025, 9, 1)) == "月"
    assert weekday_name(date(2025, 8, 31)) == "日"


def test_view_is_read_only(august_entries, august_projections, instruments, accounts):
    view = build_schedule_view(august_entries, august_projections, instruments, accounts, 2025, 8)

    with pytest.raises(TypeError):
        view.rows[0].account_amounts["Alpha Bank"] = 0
    with pytest.raises(TypeError):
        view.account_totals["Beta Bank"] = 0
    with pytest.raises(FrozenInstanceError):
        view.month_total = 0
    assert view.month_total == 7200


def test_slow_build_is_logged(august_entries, instruments, accounts, monkeypatch, caplog):
    monkeypatch.setattr(settings, "aggregation_warn_ms", -1.0)
    with caplog.at_level(logging.WARNING, logger="paycycle"):
        build_schedule_view(august_entries, [], instruments, accounts, 2025, 8)

    slow = [r for r in caplog.records if r.getMessage() == "Slow aggregation"]
    assert len(slow) == 1
    assert slow[0].view == "schedule_view"
    assert slow[0].item_count == len(august_entries)
