"""Monthly schedule view: scheduled debits as a date x account cross-table"""

import time
from dataclasses import dataclass, replace
from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from paycycle.config import settings
from paycycle.domain.business_days import HolidayCalendar
from paycycle.domain.exceptions import UnresolvedInstrumentReference
from paycycle.domain.models import (
    Account,
    Card,
    Instrument,
    LedgerEntry,
    RecurringProjection,
    ScheduleItem,
    ScheduleRow,
    ScheduleView,
)
from paycycle.domain.payment_cycle import (
    compute_entry_cycle,
    describe_closing_day,
    describe_instrument_payment,
)
from paycycle.infrastructure.observability.logging import log_slow_aggregation
from paycycle.infrastructure.observability.metrics import aggregation_duration_histogram
from paycycle.utils.date_utils import month_range

WEEKDAY_NAMES = ("月", "火", "水", "木", "金", "土", "日")
DIRECT_DEBIT_LABEL = "銀行引落"

Item = Union[LedgerEntry, RecurringProjection]


def weekday_name(day: date) -> str:
    return WEEKDAY_NAMES[day.weekday()]


def _index(records: Union[Mapping[str, object], Iterable[object]]) -> Dict[str, object]:
    if isinstance(records, Mapping):
        return dict(records)
    return {r.id: r for r in records}  # type: ignore[attr-defined]


def _pay_date(item: Item, instruments: Mapping[str, Instrument], holidays: Optional[HolidayCalendar]) -> date:
    if isinstance(item, RecurringProjection):
        return item.due_on
    if item.scheduled_pay_date is not None:
        return item.scheduled_pay_date
    return compute_entry_cycle(item, instruments, holidays).scheduled_pay_date


def _resolve(
    item: Item,
    instruments: Mapping[str, Instrument],
    accounts: Mapping[str, Account],
) -> Tuple[Instrument, Account]:
    """Owning instrument and account of an item; missing links are integrity errors"""
    instrument = instruments.get(item.instrument_id)
    if instrument is None:
        raise UnresolvedInstrumentReference(item.id, instrument_id=item.instrument_id)
    account = accounts.get(instrument.account_id)
    if account is None:
        raise UnresolvedInstrumentReference(
            item.id, instrument_id=item.instrument_id, account_id=instrument.account_id
        )
    return instrument, account


def _row_label(instrument: Instrument) -> str:
    return instrument.name if isinstance(instrument, Card) else DIRECT_DEBIT_LABEL


def build_schedule_view(
    entries: Iterable[LedgerEntry],
    projections: Iterable[RecurringProjection],
    instruments: Union[Mapping[str, Instrument], Iterable[Instrument]],
    accounts: Union[Mapping[str, Account], Iterable[Account]],
    year: int,
    month: int,
    holidays: Optional[HolidayCalendar] = None,
) -> ScheduleView:
    """
    Build the cross-table for every debit scheduled in the month.

    Steps:
    1. Keep items whose scheduled date is within [first, last] of the month
       (entries without a stored date are projected through their instrument)
    2. Resolve each item's account through its instrument
    3. Group by (scheduled date, instrument label) and sum per account
    4. Derive account totals, month total and the sorted account list

    Items are pre-sorted by (date, kind, id), so identical inputs give
    identical rows regardless of the order they were supplied in.

    Raises:
        UnresolvedInstrumentReference: an item's instrument or account is missing
    """
    start = time.perf_counter()
    instrument_map: Mapping[str, Instrument] = _index(instruments)  # type: ignore[assignment]
    account_map: Mapping[str, Account] = _index(accounts)  # type: ignore[assignment]
    first, last = month_range(year, month)

    items: List[Item] = list(entries) + list(projections)
    in_month: List[Tuple[date, str, str, Item]] = []
    for item in items:
        pay_date = _pay_date(item, instrument_map, holidays)
        if first <= pay_date <= last:
            in_month.append((pay_date, item.kind, item.id, item))
    in_month.sort(key=lambda t: t[:3])

    rows: Dict[Tuple[date, str], ScheduleRow] = {}
    row_items: Dict[Tuple[date, str], List[ScheduleItem]] = {}
    for pay_date, _, _, item in in_month:
        instrument, account = _resolve(item, instrument_map, account_map)
        label = _row_label(instrument)
        key = (pay_date, label)

        if key not in rows:
            rows[key] = ScheduleRow(
                date=pay_date,
                label=label,
                weekday=weekday_name(pay_date),
                payment_type=instrument.kind,
                closing_label=describe_closing_day(instrument.billing) if isinstance(instrument, Card) else None,
                payment_label=describe_instrument_payment(instrument),
            )
            row_items[key] = []

        row_items[key].append(
            ScheduleItem(
                item_id=item.id,
                kind=item.kind,
                payment_type=instrument.kind,
                amount=item.amount,
                account_name=account.name,
                occurred_on=item.occurred_on if isinstance(item, LedgerEntry) else item.due_on,
                store_name=item.store_name,
                usage=item.usage,
            )
        )

    # Insertion order is already date-ascending, first appearance second
    ordered = [_with_items(row, row_items[key]) for key, row in rows.items()]
    view = summarize_rows(year, month, ordered)

    duration = time.perf_counter() - start
    aggregation_duration_histogram.labels(view="schedule_view").observe(duration)
    if duration * 1000 > settings.aggregation_warn_ms:
        log_slow_aggregation("schedule_view", len(items), duration * 1000)
    return view


def _with_items(row: ScheduleRow, items: Sequence[ScheduleItem]) -> ScheduleRow:
    """Copy of row holding items, with per-account amounts and counts derived from them"""
    amounts: Dict[str, float] = {}
    counts: Dict[str, int] = {}
    for item in items:
        amounts[item.account_name] = amounts.get(item.account_name, 0) + item.amount
        counts[item.account_name] = counts.get(item.account_name, 0) + 1
    return replace(
        row,
        items=tuple(items),
        account_amounts=MappingProxyType(amounts),
        account_counts=MappingProxyType(counts),
    )


def summarize_rows(year: int, month: int, rows: Sequence[ScheduleRow]) -> ScheduleView:
    """Derive account totals, month total and account columns from rows"""
    account_totals: Dict[str, float] = {}
    for row in rows:
        for name, amount in row.account_amounts.items():
            account_totals[name] = account_totals.get(name, 0) + amount

    return ScheduleView(
        year=year,
        month=month,
        rows=tuple(rows),
        account_totals=MappingProxyType(dict(sorted(account_totals.items()))),
        month_total=sum(row.total for row in rows),
        unique_accounts=tuple(sorted(account_totals)),
    )


@dataclass(frozen=True)
class ScheduleFilters:
    """Row filters for a schedule view; unset fields do not filter"""

    account_names: Optional[Tuple[str, ...]] = None
    payment_types: Optional[Tuple[str, ...]] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    search_text: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return any(v is not None for v in self.__dict__.values())


def _item_matches(item: ScheduleItem, row: ScheduleRow, filters: ScheduleFilters) -> bool:
    if filters.account_names is not None and item.account_name not in filters.account_names:
        return False
    if filters.min_amount is not None and item.amount < filters.min_amount:
        return False
    if filters.max_amount is not None and item.amount > filters.max_amount:
        return False
    if filters.search_text:
        needle = filters.search_text.lower()
        haystack = " ".join(filter(None, (row.label, item.store_name, item.usage))).lower()
        if needle not in haystack:
            return False
    return True


def filter_schedule_view(view: ScheduleView, filters: ScheduleFilters) -> ScheduleView:
    """New view keeping only matching items; totals are recomputed from what remains"""
    if not filters.is_active:
        return view

    kept_rows: List[ScheduleRow] = []
    for row in view.rows:
        if filters.payment_types is not None and row.payment_type not in filters.payment_types:
            continue
        if filters.date_from is not None and row.date < filters.date_from:
            continue
        if filters.date_to is not None and row.date > filters.date_to:
            continue

        items = tuple(i for i in row.items if _item_matches(i, row, filters))
        if not items:
            continue

        kept_rows.append(_with_items(row, items))

    return summarize_rows(view.year, view.month, kept_rows)
