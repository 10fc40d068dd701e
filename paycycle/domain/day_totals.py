"""Per-day calendar totals over transactions and recurring projections"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from paycycle.config import settings
from paycycle.domain.models import (
    DayTotal,
    Instrument,
    LedgerEntry,
    RecurringProjection,
)
from paycycle.infrastructure.observability.logging import log_skipped_items, log_slow_aggregation
from paycycle.infrastructure.observability.metrics import (
    aggregation_duration_histogram,
    skipped_items_counter,
)
from paycycle.schemas import DayItem

TRANSACTION_DATE_KEYS = ("scheduled_pay_date", "occurred_on", "date")
PROJECTION_DATE_KEYS = ("due_on", "date")


@dataclass
class DayTotalsResult:
    """Day totals plus how many input items were dropped as malformed"""

    totals: Dict[str, DayTotal]
    skipped: int = 0

    def month_total(self) -> float:
        return month_total(self.totals)


@dataclass
class _Bucket:
    amount: float = 0
    card_amount: float = 0
    bank_amount: float = 0
    card_count: int = 0
    bank_count: int = 0
    ids: List[str] = field(default_factory=list)


def _first_present(raw: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _to_day_item(item: Any, is_transaction: bool) -> Optional[DayItem]:
    """Normalize one input into a DayItem, or None when it is malformed"""
    if isinstance(item, LedgerEntry):
        raw: Dict[str, Any] = {
            "id": item.id,
            "date": item.scheduled_pay_date or item.occurred_on,
            "amount": item.amount,
            "payment_type": item.payment_type,
            "instrument_id": item.instrument_id,
        }
    elif isinstance(item, RecurringProjection):
        raw = {
            "id": item.id,
            "date": item.due_on,
            "amount": item.amount,
            "payment_type": item.payment_type,
            "instrument_id": item.instrument_id,
        }
    elif isinstance(item, Mapping):
        raw = {
            "id": str(item.get("id") or ""),
            "date": _first_present(item, TRANSACTION_DATE_KEYS if is_transaction else PROJECTION_DATE_KEYS),
            "amount": item.get("amount"),
            "payment_type": item.get("payment_type"),
            "instrument_id": item.get("instrument_id"),
        }
    else:
        return None

    try:
        return DayItem.model_validate(raw)
    except ValidationError:
        return None


def _payment_type(item: DayItem, instruments: Optional[Mapping[str, Instrument]]) -> Optional[str]:
    if item.payment_type is not None:
        return item.payment_type
    if instruments is not None and item.instrument_id is not None:
        instrument = instruments.get(item.instrument_id)
        if instrument is not None:
            return instrument.kind
    return None


def _collect(
    items: Iterable[Any],
    is_transaction: bool,
    instruments: Optional[Mapping[str, Instrument]],
) -> Tuple[Dict[str, _Bucket], int, int]:
    """Single pass over one item kind; returns (buckets, seen, skipped)"""
    buckets: Dict[str, _Bucket] = {}
    seen = skipped = 0
    for raw in items or ():
        seen += 1
        item = _to_day_item(raw, is_transaction)
        if item is None:
            skipped += 1
            continue

        bucket = buckets.setdefault(item.date.isoformat(), _Bucket())
        bucket.amount += item.amount
        bucket.ids.append(item.id)

        if is_transaction:
            kind = _payment_type(item, instruments)
            if kind == "card":
                bucket.card_amount += item.amount
                bucket.card_count += 1
            elif kind == "bank":
                bucket.bank_amount += item.amount
                bucket.bank_count += 1

    return buckets, seen, skipped


def _transaction_totals(buckets: Dict[str, _Bucket]) -> Dict[str, DayTotal]:
    return {
        key: DayTotal(
            date=key,
            total_amount=b.amount,
            transaction_total=b.amount,
            card_transaction_total=b.card_amount,
            bank_transaction_total=b.bank_amount,
            transaction_count=len(b.ids),
            card_transaction_count=b.card_count,
            bank_transaction_count=b.bank_count,
            transaction_ids=tuple(sorted(b.ids)),
        )
        for key, b in buckets.items()
    }


def _schedule_totals(buckets: Dict[str, _Bucket]) -> Dict[str, DayTotal]:
    return {
        key: DayTotal(
            date=key,
            total_amount=b.amount,
            schedule_total=b.amount,
            schedule_count=len(b.ids),
            schedule_ids=tuple(sorted(b.ids)),
        )
        for key, b in buckets.items()
    }


def add_day_totals(first: DayTotal, second: DayTotal) -> DayTotal:
    """Field-wise sum of two totals for the same date"""
    if first.date != second.date:
        raise ValueError(f"Cannot add totals for {first.date} and {second.date}")
    return DayTotal(
        date=first.date,
        total_amount=first.total_amount + second.total_amount,
        transaction_total=first.transaction_total + second.transaction_total,
        card_transaction_total=first.card_transaction_total + second.card_transaction_total,
        bank_transaction_total=first.bank_transaction_total + second.bank_transaction_total,
        schedule_total=first.schedule_total + second.schedule_total,
        transaction_count=first.transaction_count + second.transaction_count,
        card_transaction_count=first.card_transaction_count + second.card_transaction_count,
        bank_transaction_count=first.bank_transaction_count + second.bank_transaction_count,
        schedule_count=first.schedule_count + second.schedule_count,
        transaction_ids=first.transaction_ids + second.transaction_ids,
        schedule_ids=first.schedule_ids + second.schedule_ids,
    )


def merge_day_totals(first: Mapping[str, DayTotal], second: Mapping[str, DayTotal]) -> Dict[str, DayTotal]:
    """Combine two partial aggregates into a new map sorted by date"""
    merged: Dict[str, DayTotal] = {}
    for key in sorted(set(first) | set(second)):
        if key in first and key in second:
            merged[key] = add_day_totals(first[key], second[key])
        else:
            merged[key] = first[key] if key in first else second[key]
    return merged


def aggregate_day_totals(
    entries: Iterable[Any],
    projections: Iterable[Any] = (),
    instruments: Optional[Mapping[str, Instrument]] = None,
) -> DayTotalsResult:
    """
    Group transactions and projections by calendar date.

    Transactions land on their scheduled pay date (occurrence date when none
    is stored yet), projections on their due date. Items without a usable
    date or with a missing, non-numeric, negative or non-finite amount are
    skipped and counted; this never raises on bad input.
    """
    start = time.perf_counter()

    tx_buckets, tx_seen, tx_skipped = _collect(entries, True, instruments)
    sc_buckets, sc_seen, sc_skipped = _collect(projections, False, instruments)
    totals = merge_day_totals(_transaction_totals(tx_buckets), _schedule_totals(sc_buckets))

    skipped = tx_skipped + sc_skipped
    if skipped:
        skipped_items_counter.inc(skipped)
        log_skipped_items("day_totals", skipped, tx_seen + sc_seen)

    duration = time.perf_counter() - start
    aggregation_duration_histogram.labels(view="day_totals").observe(duration)
    if duration * 1000 > settings.aggregation_warn_ms:
        log_slow_aggregation("day_totals", tx_seen + sc_seen, duration * 1000)

    return DayTotalsResult(totals=totals, skipped=skipped)


def build_day_totals(
    entries: Iterable[Any],
    projections: Iterable[Any] = (),
    instruments: Optional[Mapping[str, Instrument]] = None,
) -> Dict[str, DayTotal]:
    """ISO date → DayTotal for the given items (malformed items are skipped)"""
    return aggregate_day_totals(entries, projections, instruments).totals


def month_total(totals: Mapping[str, DayTotal]) -> float:
    return sum(t.total_amount for t in totals.values())
