"""Batch re-projection of scheduled pay dates after billing rules change"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from paycycle.domain.business_days import HolidayCalendar
from paycycle.domain.models import BillingConfig, Instrument, LedgerEntry
from paycycle.domain.payment_cycle import compute_card_cycle, compute_entry_cycle
from paycycle.infrastructure.observability.logging import log_recalculation
from paycycle.infrastructure.observability.metrics import recalculated_entries_counter

logger = logging.getLogger(__name__)


def recalculate(
    entries: Iterable[LedgerEntry],
    billing: BillingConfig,
    holidays: Optional[HolidayCalendar] = None,
) -> Dict[str, date]:
    """
    Re-derive scheduled pay dates for entries under one card configuration.

    Dates are always derived from each entry's occurrence date, never from its
    previously stored scheduled date, so repeated runs are idempotent.

    Returns:
        Mapping of entry id to new scheduled pay date (callers persist it)
    """
    updates: Dict[str, date] = {}
    changed = 0
    for entry in entries:
        new_date = compute_card_cycle(entry.occurred_on, billing, holidays).scheduled_pay_date
        updates[entry.id] = new_date
        if entry.scheduled_pay_date != new_date:
            changed += 1

    recalculated_entries_counter.inc(len(updates))
    log_recalculation("billing_config", len(updates), changed)
    return updates


def recalculate_for_instruments(
    entries: Iterable[LedgerEntry],
    instruments: Mapping[str, Instrument],
    holidays: Optional[HolidayCalendar] = None,
) -> Dict[str, date]:
    """
    Re-derive scheduled pay dates, each entry under its own instrument.

    Raises:
        UnresolvedInstrumentReference: an entry's instrument is missing
    """
    updates = {
        entry.id: compute_entry_cycle(entry, instruments, holidays).scheduled_pay_date
        for entry in entries
    }
    recalculated_entries_counter.inc(len(updates))
    return updates


@dataclass(frozen=True)
class StaleEntry:
    """Entry whose stored scheduled date disagrees with a fresh derivation"""

    entry_id: str
    stored_date: Optional[date]
    expected_date: date


def find_stale_entries(
    entries: Iterable[LedgerEntry],
    instruments: Mapping[str, Instrument],
    holidays: Optional[HolidayCalendar] = None,
) -> List[StaleEntry]:
    """
    Reconciliation pass: list entries whose stored date is out of date.

    Entries with no stored date count as stale. An interrupted fix
    application leaves exactly these behind; persisting the expected dates
    repairs them.
    """
    stale = []
    for entry in entries:
        expected = compute_entry_cycle(entry, instruments, holidays).scheduled_pay_date
        if entry.scheduled_pay_date != expected:
            stale.append(StaleEntry(entry.id, entry.scheduled_pay_date, expected))

    if stale:
        logger.info(
            "Stale scheduled dates found",
            extra={"step": "reconcile", "stale_count": len(stale)},
        )
    return stale


def reconcile(
    entries: Iterable[LedgerEntry],
    instruments: Mapping[str, Instrument],
    holidays: Optional[HolidayCalendar] = None,
) -> Dict[str, date]:
    """Mapping of entry id to corrected date for every stale entry"""
    return {s.entry_id: s.expected_date for s in find_stale_entries(entries, instruments, holidays)}
