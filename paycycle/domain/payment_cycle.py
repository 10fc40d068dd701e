"""Payment cycle calculation - projects occurrence dates onto debit dates"""

from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence, Union

from paycycle.domain.business_days import HolidayCalendar, adjust_forward
from paycycle.domain.day_tokens import parse_day_token, resolve_day
from paycycle.domain.exceptions import InvalidDayToken, UnresolvedInstrumentReference
from paycycle.domain.models import (
    BillingConfig,
    Card,
    DayOfMonth,
    DirectDebit,
    Instrument,
    LedgerEntry,
    MonthEnd,
    PaymentCycleResult,
)
from paycycle.infrastructure.observability.metrics import record_cycle
from paycycle.utils.date_utils import generate_date_range, month_range, shift_month

MONTH_SHIFT_LABELS = {0: "当月", 1: "翌月", 2: "翌々月"}
PAYMENT_PATTERNS = {0: "当月払い", 1: "翌月払い", 2: "翌々月払い"}


def compute_card_cycle(
    occurred_on: date,
    billing: BillingConfig,
    holidays: Optional[HolidayCalendar] = None,
) -> PaymentCycleResult:
    """
    Calculate the scheduled debit date for a card purchase.

    Steps:
    1. Resolve the closing day against the occurrence month
    2. Purchases after the closing day fall into the next month's cycle
    3. Shift the closing month by payment_month_shift
    4. Resolve the payment day against the payment month (clamped, never wrapped)
    5. Optionally move a weekend/holiday debit forward to the next business day

    Example:
        closing "10", payment month-end, shift 1, occurrence 2025-07-01
        → cycle closes 2025-07-10 → debit 2025-08-31
    """
    if billing.payment_month_shift < 0:
        raise ValueError(f"payment_month_shift must be >= 0, got {billing.payment_month_shift}")

    closing_day = resolve_day(billing.closing_day, occurred_on.year, occurred_on.month, "closing day")

    closing_year, closing_month = occurred_on.year, occurred_on.month
    if occurred_on.day > closing_day:
        closing_year, closing_month = shift_month(closing_year, closing_month, 1)
        # The cycle closes in a different month; "31" may clamp differently there
        closing_day = resolve_day(billing.closing_day, closing_year, closing_month, "closing day")

    payment_year, payment_month = shift_month(closing_year, closing_month, billing.payment_month_shift)
    payment_day = resolve_day(billing.payment_day, payment_year, payment_month, "payment day")
    original_payment_date = date(payment_year, payment_month, payment_day)

    scheduled = original_payment_date
    if billing.adjust_weekend:
        scheduled = adjust_forward(original_payment_date, holidays)

    result = PaymentCycleResult(
        scheduled_pay_date=scheduled,
        closing_date=date(closing_year, closing_month, closing_day),
        original_payment_date=original_payment_date,
        is_adjusted=scheduled != original_payment_date,
    )
    record_cycle("card", result.is_adjusted)
    return result


def compute_direct_debit_cycle(
    occurred_on: date,
    adjust_weekend: bool = True,
    holidays: Optional[HolidayCalendar] = None,
) -> PaymentCycleResult:
    """Direct debits have no statement cycle: the debit is the occurrence date, optionally shifted"""
    scheduled = adjust_forward(occurred_on, holidays) if adjust_weekend else occurred_on
    result = PaymentCycleResult(
        scheduled_pay_date=scheduled,
        closing_date=occurred_on,
        original_payment_date=occurred_on,
        is_adjusted=scheduled != occurred_on,
    )
    record_cycle("bank", result.is_adjusted)
    return result


def compute_instrument_cycle(
    occurred_on: date,
    instrument: Instrument,
    holidays: Optional[HolidayCalendar] = None,
) -> PaymentCycleResult:
    if isinstance(instrument, Card):
        return compute_card_cycle(occurred_on, instrument.billing, holidays)
    return compute_direct_debit_cycle(occurred_on, instrument.adjust_weekend, holidays)


def compute_entry_cycle(
    entry: LedgerEntry,
    instruments: Mapping[str, Instrument],
    holidays: Optional[HolidayCalendar] = None,
) -> PaymentCycleResult:
    """
    Project a ledger entry through its own instrument.

    Raises:
        UnresolvedInstrumentReference: the entry's instrument is not in `instruments`
    """
    instrument = instruments.get(entry.instrument_id)
    if instrument is None:
        raise UnresolvedInstrumentReference(entry.id, instrument_id=entry.instrument_id)
    return compute_instrument_cycle(entry.occurred_on, instrument, holidays)


def calculate_multiple_payment_dates(
    billing: BillingConfig,
    dates: Iterable[date],
    holidays: Optional[HolidayCalendar] = None,
) -> List[PaymentCycleResult]:
    """Project several occurrence dates through one card configuration"""
    return [compute_card_cycle(d, billing, holidays) for d in dates]


def make_billing_config(
    closing_day: Union[str, int],
    payment_day: Union[str, int],
    payment_month_shift: int = 1,
    adjust_weekend: bool = False,
) -> BillingConfig:
    """Build a BillingConfig from raw stored token values"""
    return BillingConfig(
        closing_day=parse_day_token(closing_day, "closing day"),
        payment_day=parse_day_token(payment_day, "payment day"),
        payment_month_shift=payment_month_shift,
        adjust_weekend=adjust_weekend,
    )


@dataclass
class BillingValidation:
    """Sanity check of a card configuration"""

    is_valid: bool
    warnings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)


def validate_payment_schedule(closing_day: object, payment_day: object) -> List[str]:
    """Return format errors for a raw closing/payment token pair"""
    errors = []
    for raw, name in ((closing_day, "closing day"), (payment_day, "payment day")):
        try:
            parse_day_token(raw, name)  # type: ignore[arg-type]
        except InvalidDayToken as e:
            errors.append(str(e))
    return errors


def validate_billing_config(billing: BillingConfig) -> BillingValidation:
    """
    Flag unusual but computable card configurations.

    - Shift > 2 months is unusual
    - Same-month payment (shift 0) is unusual for credit cards
    - Disabled weekend adjustment gets a suggestion, not a warning
    """
    warnings: List[str] = []
    suggestions: List[str] = []

    if billing.payment_month_shift > 2:
        warnings.append("Payment shift greater than 2 months is unusual")
    if billing.payment_month_shift == 0:
        warnings.append("Same-month payment is unusual for credit cards")

    warnings.extend(validate_payment_schedule(billing.closing_day, billing.payment_day))

    if not billing.adjust_weekend:
        suggestions.append("Consider enabling weekend adjustment for more accurate payment dates")

    return BillingValidation(is_valid=not warnings, warnings=warnings, suggestions=suggestions)


@dataclass(frozen=True)
class PaymentTiming:
    """Delay statistics between purchase and debit over one month of purchases"""

    average_delay: int
    min_delay: int
    max_delay: int
    payment_pattern: str


def describe_payment_pattern(payment_month_shift: int) -> str:
    return PAYMENT_PATTERNS.get(payment_month_shift, f"{payment_month_shift}ヶ月後払い")


def analyze_payment_timing(
    billing: BillingConfig,
    year: int,
    month: int,
    holidays: Optional[HolidayCalendar] = None,
) -> PaymentTiming:
    """Simulate a purchase on every day of the month and summarize the delays"""
    first, last = month_range(year, month)
    days: Sequence[date] = generate_date_range(first, last)
    results = calculate_multiple_payment_dates(billing, days, holidays)
    delays = [(r.scheduled_pay_date - d).days for d, r in zip(days, results)]

    return PaymentTiming(
        average_delay=round(sum(delays) / len(delays)),
        min_delay=min(delays),
        max_delay=max(delays),
        payment_pattern=describe_payment_pattern(billing.payment_month_shift),
    )


def describe_closing_day(billing: BillingConfig) -> str:
    """Row label for the closing rule, e.g. "10日締" or "月末締" """
    if isinstance(billing.closing_day, MonthEnd):
        return "月末締"
    return f"{billing.closing_day.day}日締"


def describe_payment_day(billing: BillingConfig) -> str:
    """Row label for the payment rule, e.g. "翌月27日" or "翌々月月末" """
    shift = MONTH_SHIFT_LABELS.get(billing.payment_month_shift, f"{billing.payment_month_shift}ヶ月後")
    if isinstance(billing.payment_day, DayOfMonth):
        return f"{shift}{billing.payment_day.day}日"
    return f"{shift}月末"


def payment_priority(payment_month_shift: int) -> int:
    """Display priority: same month first, then month after next, next month last"""
    return {0: 1, 2: 2, 1: 3}.get(payment_month_shift, 4)


def sort_cards_by_payment_schedule(cards: Iterable[Card]) -> List[Card]:
    """Order cards by payment priority, then name, then creation time"""
    return sorted(
        cards,
        key=lambda c: (payment_priority(c.billing.payment_month_shift), c.name, c.created_at),
    )


def is_next_month_payment_card(card: Card) -> bool:
    return card.billing.payment_month_shift == 1


def describe_instrument_payment(instrument: Instrument) -> str:
    if isinstance(instrument, DirectDebit):
        return "当日（営業日調整）" if instrument.adjust_weekend else "当日"
    return describe_payment_day(instrument.billing)
