"""Integration tests for the configuration fix workflow"""

import pytest
from dataclasses import replace
from datetime import date
from typing import Dict, Mapping

from paycycle.domain.config_analyzer import analyze, apply_fixes, preview_fixes, propose_fixes
from paycycle.domain.exceptions import FixApplicationError, InvalidFixPatch
from paycycle.domain.models import BillingConfig, Card, LedgerEntry
from paycycle.domain.recalculation import find_stale_entries, reconcile
from paycycle.domain.schedule_view import build_schedule_view


class InMemoryStore:
    """Applies saved configs and dates to in-memory records"""

    def __init__(self, instruments, entries, fail_on_dates: bool = False):
        self.instruments = {i.id: i for i in instruments}
        self.entries = {e.id: e for e in entries}
        self.fail_on_dates = fail_on_dates
        self.calls = []

    def save_billing_configs(self, configs: Mapping[str, BillingConfig]) -> None:
        self.calls.append("configs")
        for card_id, billing in configs.items():
            self.instruments[card_id] = replace(self.instruments[card_id], billing=billing)

    def save_scheduled_dates(self, dates: Mapping[str, date]) -> None:
        self.calls.append("dates")
        if self.fail_on_dates:
            raise ConnectionError("database went away")
        for entry_id, new_date in dates.items():
            self.entries[entry_id] = replace(self.entries[entry_id], scheduled_pay_date=new_date)


@pytest.fixture
def risky(month_end_adjusting) -> Card:
    return Card(id="card-risky", name="Risky", account_id="acc-alpha", billing=month_end_adjusting)


@pytest.fixture
def risky_entries():
    return [
        LedgerEntry("r1", date(2025, 7, 10), 1000, "card-risky", date(2025, 9, 1), "card"),
        LedgerEntry("r2", date(2025, 7, 20), 2000, "card-risky", date(2025, 9, 30), "card"),
    ]


def test_analyze_preview_apply(risky, visa, accounts, risky_entries):
    """The month-end debit moves back into August once the fix is applied"""
    instruments = [risky, visa]
    assert analyze(instruments, risky_entries).problematic_instruments == [risky]

    patches = propose_fixes(instruments)
    preview = preview_fixes(patches, instruments, risky_entries)
    assert [c.entry_id for c in preview.entry_changes] == ["r1"]

    before = build_schedule_view(risky_entries, [], instruments, accounts, 2025, 8)
    assert before.month_total == 0

    store = InMemoryStore(instruments, risky_entries)
    result = apply_fixes(patches, instruments, risky_entries, store)

    assert result.completed
    assert store.calls == ["configs", "dates"]
    assert result.updated_dates == {"r1": date(2025, 8, 31), "r2": date(2025, 9, 30)}
    assert store.instruments["card-risky"].billing.adjust_weekend is False

    after = build_schedule_view(store.entries.values(), [], store.instruments, accounts, 2025, 8)
    assert after.month_total == 1000
    assert after.rows[0].date == date(2025, 8, 31)
    assert analyze(store.instruments.values()).problematic_instruments == []


def test_invalid_fixes_save_nothing(risky, risky_entries):
    store = InMemoryStore([risky], risky_entries)
    with pytest.raises(InvalidFixPatch):
        apply_fixes({}, [risky], risky_entries, store)
    assert store.calls == []


def test_interrupted_application_is_reconciled(risky, risky_entries):
    """Configs saved but dates not: reconciliation repairs the stale entries"""
    store = InMemoryStore([risky], risky_entries, fail_on_dates=True)
    patches = propose_fixes([risky])

    with pytest.raises(FixApplicationError) as exc_info:
        apply_fixes(patches, [risky], risky_entries, store)

    error = exc_info.value
    assert error.phase == "configs_saved"
    assert not error.result.completed
    assert isinstance(error.__cause__, ConnectionError)
    assert store.instruments["card-risky"].billing.adjust_weekend is False

    stale = find_stale_entries(store.entries.values(), store.instruments)
    assert [s.entry_id for s in stale] == ["r1"]

    repairs: Dict[str, date] = reconcile(store.entries.values(), store.instruments)
    store.fail_on_dates = False
    store.save_scheduled_dates(repairs)

    assert store.entries["r1"].scheduled_pay_date == date(2025, 8, 31)
    assert find_stale_entries(store.entries.values(), store.instruments) == []
