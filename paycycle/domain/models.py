"""Domain models - pure Python dataclasses representing ledger entities"""

from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class DayOfMonth:
    """Billing-day token naming a literal day number (1..31)"""

    day: int

    def __str__(self) -> str:
        return str(self.day)


@dataclass(frozen=True)
class MonthEnd:
    """Billing-day token meaning the last calendar day of the month"""

    def __str__(self) -> str:
        return "月末"


DayToken = Union[DayOfMonth, MonthEnd]

MONTH_END = MonthEnd()


@dataclass(frozen=True)
class BillingConfig:
    """Statement-cycle rules attached to a card"""

    closing_day: DayToken
    payment_day: DayToken
    payment_month_shift: int = 1  # 0=same month, 1=next month, 2=month after next
    adjust_weekend: bool = False


@dataclass(frozen=True)
class Account:
    """Bank account that payments are debited from"""

    id: str
    name: str


@dataclass(frozen=True)
class Card:
    """Credit card settled from its owning account on a statement cycle"""

    id: str
    name: str
    account_id: str
    billing: BillingConfig
    created_at: int = 0

    kind = "card"

    @property
    def adjust_weekend(self) -> bool:
        return self.billing.adjust_weekend


@dataclass(frozen=True)
class DirectDebit:
    """Direct debit from an account: no statement cycle, optional business-day shift"""

    id: str
    name: str
    account_id: str
    adjust_weekend: bool = True
    created_at: int = 0

    kind = "bank"


Instrument = Union[Card, DirectDebit]


@dataclass(frozen=True)
class LedgerEntry:
    """Recorded purchase or obligation"""

    id: str
    occurred_on: date
    amount: float
    instrument_id: str
    scheduled_pay_date: Optional[date] = None
    payment_type: Optional[str] = None  # "card" or "bank"
    store_name: Optional[str] = None
    usage: Optional[str] = None
    memo: Optional[str] = None

    kind = "transaction"


@dataclass(frozen=True)
class RecurringProjection:
    """Forward-looking obligation that has not been recorded yet"""

    id: str
    due_on: date
    amount: float
    instrument_id: str
    payment_type: Optional[str] = None
    store_name: Optional[str] = None
    usage: Optional[str] = None

    kind = "schedule"


@dataclass(frozen=True)
class PaymentCycleResult:
    """Outcome of projecting one occurrence date onto a debit date"""

    scheduled_pay_date: date
    closing_date: date
    original_payment_date: date
    is_adjusted: bool


@dataclass
class DayTotal:
    """Amounts falling on one calendar date"""

    date: str  # ISO date string (YYYY-MM-DD)
    total_amount: float = 0
    transaction_total: float = 0
    card_transaction_total: float = 0
    bank_transaction_total: float = 0
    schedule_total: float = 0
    transaction_count: int = 0
    card_transaction_count: int = 0
    bank_transaction_count: int = 0
    schedule_count: int = 0
    transaction_ids: Tuple[str, ...] = ()
    schedule_ids: Tuple[str, ...] = ()

    @property
    def has_transactions(self) -> bool:
        return self.transaction_count > 0

    @property
    def has_card_transactions(self) -> bool:
        return self.card_transaction_count > 0

    @property
    def has_bank_transactions(self) -> bool:
        return self.bank_transaction_count > 0

    @property
    def has_schedule(self) -> bool:
        return self.schedule_count > 0

    @property
    def has_data(self) -> bool:
        return self.has_transactions or self.has_schedule


@dataclass(frozen=True)
class ScheduleItem:
    """One debit line inside a schedule row"""

    item_id: str
    kind: str  # "transaction" or "schedule"
    payment_type: str  # "card" or "bank"
    amount: float
    account_name: str
    occurred_on: date
    store_name: Optional[str] = None
    usage: Optional[str] = None


@dataclass(frozen=True)
class ScheduleRow:
    """Cross-table row: one (date, instrument) grouping split by account"""

    date: date
    label: str
    weekday: str
    payment_type: str
    account_amounts: Mapping[str, float] = field(default_factory=dict)
    account_counts: Mapping[str, int] = field(default_factory=dict)
    items: Tuple[ScheduleItem, ...] = ()
    closing_label: Optional[str] = None
    payment_label: Optional[str] = None

    @property
    def total(self) -> float:
        return sum(self.account_amounts.values())


@dataclass(frozen=True)
class ScheduleView:
    """
    Month of scheduled debits as a date x account cross-table.

    Views are read-only (mappings are proxies) so a cached view can be shared.
    """

    year: int
    month: int
    rows: Tuple[ScheduleRow, ...]
    account_totals: Mapping[str, float]
    month_total: float
    unique_accounts: Tuple[str, ...]
