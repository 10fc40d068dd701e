"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Dict, List

from paycycle.domain.models import (
    Account,
    BillingConfig,
    Card,
    DirectDebit,
    Instrument,
    LedgerEntry,
    RecurringProjection,
)
from paycycle.domain.payment_cycle import make_billing_config


@pytest.fixture
def accounts() -> List[Account]:
    return [Account(id="acc-alpha", name="Alpha Bank"), Account(id="acc-beta", name="Beta Bank")]


@pytest.fixture
def visa() -> Card:
    """Closes on the 15th, pays the 10th of the following month"""
    return Card(
        id="card-visa",
        name="Visa Gold",
        account_id="acc-alpha",
        billing=make_billing_config("15", "10", payment_month_shift=1, adjust_weekend=False),
        created_at=1,
    )


@pytest.fixture
def master() -> Card:
    """Closes at month-end, pays the 27th of the following month"""
    return Card(
        id="card-master",
        name="Master",
        account_id="acc-beta",
        billing=make_billing_config("月末", "27", payment_month_shift=1, adjust_weekend=False),
        created_at=2,
    )


@pytest.fixture
def utilities() -> DirectDebit:
    return DirectDebit(id="dd-utilities", name="Utilities", account_id="acc-beta", adjust_weekend=True)


@pytest.fixture
def instruments(visa: Card, master: Card, utilities: DirectDebit) -> Dict[str, Instrument]:
    return {i.id: i for i in (visa, master, utilities)}


@pytest.fixture
def august_entries() -> List[LedgerEntry]:
    """Entries whose stored debit dates fall in August 2025, plus one in September"""
    return [
        LedgerEntry("e1", date(2025, 7, 1), 1000, "card-visa", date(2025, 8, 10), "card", "Cafe", "coffee"),
        LedgerEntry("e2", date(2025, 7, 5), 2000, "card-visa", date(2025, 8, 10), "card", "Books"),
        LedgerEntry("e3", date(2025, 7, 20), 3000, "card-master", date(2025, 8, 27), "card", "Grocer"),
        LedgerEntry("e4", date(2025, 8, 4), 500, "dd-utilities", date(2025, 8, 4), "bank", "Water"),
        LedgerEntry("e5", date(2025, 7, 20), 9000, "card-visa", date(2025, 9, 10), "card", "Airline"),
    ]


@pytest.fixture
def august_projections() -> List[RecurringProjection]:
    return [RecurringProjection("p1", date(2025, 8, 27), 700, "dd-utilities", "bank", "Internet")]


@pytest.fixture
def month_end_adjusting() -> BillingConfig:
    """The risky combination: month-end payment with weekend adjustment"""
    return make_billing_config("15", "月末", payment_month_shift=1, adjust_weekend=True)
