"""Configuration analyzer - detects risky card settings and plans data fixes"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from paycycle.domain.business_days import HolidayCalendar
from paycycle.domain.day_tokens import parse_day_token
from paycycle.domain.exceptions import FixApplicationError, InvalidDayToken, InvalidFixPatch
from paycycle.domain.models import BillingConfig, Card, DayToken, Instrument, LedgerEntry, MonthEnd
from paycycle.domain.recalculation import recalculate
from paycycle.infrastructure.observability.logging import log_fix_application
from paycycle.infrastructure.observability.metrics import fix_application_counter

FIX_REASON = "Month-end payments should keep the real last day; disable weekend adjustment"


@dataclass(frozen=True)
class ConfigPatch:
    """Partial billing update for one card; unset fields stay as they are"""

    adjust_weekend: Optional[bool] = None
    closing_day: Optional[str] = None
    payment_day: Optional[str] = None
    payment_month_shift: Optional[int] = None

    def is_empty(self) -> bool:
        return all(v is None for v in self.__dict__.values())

    def apply_to(self, billing: BillingConfig) -> BillingConfig:
        """Raises InvalidDayToken when a patched token does not parse"""
        return BillingConfig(
            closing_day=billing.closing_day if self.closing_day is None
            else parse_day_token(self.closing_day, "closing day"),
            payment_day=billing.payment_day if self.payment_day is None
            else parse_day_token(self.payment_day, "payment day"),
            payment_month_shift=billing.payment_month_shift if self.payment_month_shift is None
            else self.payment_month_shift,
            adjust_weekend=billing.adjust_weekend if self.adjust_weekend is None else self.adjust_weekend,
        )


@dataclass
class ConfigAnalysis:
    problematic_instruments: List[Card]
    summary: List[str]


@dataclass(frozen=True)
class InstrumentChange:
    instrument_id: str
    instrument_name: str
    current_payment_day: str
    current_adjust_weekend: bool
    recommended: ConfigPatch
    reason: str


@dataclass(frozen=True)
class EntryDateChange:
    entry_id: str
    instrument_id: str
    current_date: date
    new_date: date

    @property
    def difference(self) -> int:
        """Signed day delta; negative means the debit moves earlier"""
        return (self.new_date - self.current_date).days


@dataclass
class FixPreview:
    instrument_changes: List[InstrumentChange]
    entry_changes: List[EntryDateChange]


@dataclass
class FixValidation:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class FixImpact:
    total_entries: int
    earlier_payments: int
    later_payments: int
    unchanged_payments: int
    average_days_difference: float
    max_days_difference: int


class FixStore(Protocol):
    """Persistence hooks used by apply_fixes (owned by the caller)"""

    def save_billing_configs(self, configs: Mapping[str, BillingConfig]) -> None:
        ...

    def save_scheduled_dates(self, dates: Mapping[str, date]) -> None:
        ...


@dataclass
class FixApplication:
    """Outcome of apply_fixes; phase names the last step that completed"""

    phase: str  # "validated" | "configs_saved" | "dates_saved"
    updated_configs: Dict[str, BillingConfig]
    updated_dates: Dict[str, date]

    @property
    def completed(self) -> bool:
        return self.phase == "dates_saved"


def _cards(instruments: Iterable[Instrument]) -> List[Card]:
    return [i for i in instruments if isinstance(i, Card)]


def is_problematic(card: Card) -> bool:
    """Forward-shifting a literal month-end can push the debit into the next month"""
    return isinstance(card.billing.payment_day, MonthEnd) and card.billing.adjust_weekend


def analyze(instruments: Iterable[Instrument], entries: Iterable[LedgerEntry] = ()) -> ConfigAnalysis:
    """Flag cards that pay on month-end with weekend adjustment enabled"""
    instruments = list(instruments)
    cards = _cards(instruments)
    problematic = [c for c in cards if is_problematic(c)]
    problematic_ids = {c.id for c in problematic}
    affected = sum(1 for e in entries if e.instrument_id in problematic_ids)

    summary = [
        f"Total instruments: {len(instruments)}",
        f"Cards with weekend adjustment: {sum(1 for c in cards if c.billing.adjust_weekend)}",
        f"Cards paying at month-end: {sum(1 for c in cards if isinstance(c.billing.payment_day, MonthEnd))}",
        f"Problematic cards (month-end payment + weekend adjustment): {len(problematic)}",
        f"Entries on problematic cards: {affected}",
    ]
    return ConfigAnalysis(problematic_instruments=problematic, summary=summary)


def propose_fixes(instruments: Iterable[Instrument]) -> Dict[str, ConfigPatch]:
    """Minimal patch per flagged card: turn weekend adjustment off"""
    return {c.id: ConfigPatch(adjust_weekend=False) for c in _cards(instruments) if is_problematic(c)}


def _by_id(instruments: Iterable[Instrument]) -> Dict[str, Instrument]:
    return {i.id: i for i in instruments}


def patched_configs(patches: Mapping[str, ConfigPatch], instruments: Iterable[Instrument]) -> Dict[str, BillingConfig]:
    """New billing config per patched card (patches must already be valid)"""
    index = _by_id(instruments)
    return {card_id: patch.apply_to(index[card_id].billing) for card_id, patch in patches.items()}  # type: ignore[union-attr]


def preview_fixes(
    patches: Mapping[str, ConfigPatch],
    instruments: Iterable[Instrument],
    entries: Iterable[LedgerEntry],
    holidays: Optional[HolidayCalendar] = None,
) -> FixPreview:
    """
    Show what applying the patches would change.

    Each affected entry is re-projected under the current and the patched
    config; only entries whose date actually moves are reported.
    """
    instruments = list(instruments)
    if patches:
        ensure_valid_fixes(patches, instruments)
    index = _by_id(instruments)
    new_configs = patched_configs(patches, instruments)

    instrument_changes = []
    for card_id, patch in patches.items():
        card = index[card_id]
        instrument_changes.append(
            InstrumentChange(
                instrument_id=card.id,
                instrument_name=card.name,
                current_payment_day=str(card.billing.payment_day),  # type: ignore[union-attr]
                current_adjust_weekend=card.adjust_weekend,
                recommended=patch,
                reason=FIX_REASON,
            )
        )

    by_card: Dict[str, List[LedgerEntry]] = {}
    for entry in entries:
        if entry.instrument_id in patches:
            by_card.setdefault(entry.instrument_id, []).append(entry)

    entry_changes = []
    for card_id, card_entries in by_card.items():
        before = recalculate(card_entries, index[card_id].billing, holidays)  # type: ignore[union-attr]
        after = recalculate(card_entries, new_configs[card_id], holidays)
        for entry in card_entries:
            if before[entry.id] != after[entry.id]:
                entry_changes.append(EntryDateChange(entry.id, card_id, before[entry.id], after[entry.id]))

    entry_changes.sort(key=lambda c: (c.current_date, c.entry_id))
    return FixPreview(instrument_changes=instrument_changes, entry_changes=entry_changes)


def _parse_optional_token(value: Optional[str], name: str) -> Optional[DayToken]:
    if value is None:
        return None
    return parse_day_token(value, name)


def validate_fixes(patches: Mapping[str, ConfigPatch], instruments: Iterable[Instrument]) -> FixValidation:
    """
    Check a fix set before it is applied.

    Errors: unknown instrument ids, patches on direct debits, empty patches,
    unparseable tokens, negative month shifts.
    Warnings: disabling weekend adjustment on a card that does not pay at month-end.
    """
    result = FixValidation()
    index = _by_id(instruments)

    if not patches:
        result.errors.append("No fixes to apply")

    for card_id, patch in patches.items():
        instrument = index.get(card_id)
        if instrument is None:
            result.errors.append(f"Instrument ID {card_id} not found")
            continue
        if not isinstance(instrument, Card):
            result.errors.append(f"Instrument {instrument.name} is a direct debit and has no billing config")
            continue
        if patch.is_empty():
            result.errors.append(f"Card {instrument.name}: patch changes nothing")
            continue
        if patch.payment_month_shift is not None and patch.payment_month_shift < 0:
            result.errors.append(f"Card {instrument.name}: payment month shift must be >= 0")

        payment_day: DayToken = instrument.billing.payment_day
        for value, name in ((patch.closing_day, "closing day"), (patch.payment_day, "payment day")):
            try:
                token = _parse_optional_token(value, name)
            except InvalidDayToken as e:
                result.errors.append(f"Card {instrument.name}: {e}")
                continue
            if token is not None and name == "payment day":
                payment_day = token

        if patch.adjust_weekend is False and not isinstance(payment_day, MonthEnd):
            result.warnings.append(
                f"Card {instrument.name}: Disabling weekend adjustment for non-month-end payment ({payment_day})"
            )

    return result


def ensure_valid_fixes(patches: Mapping[str, ConfigPatch], instruments: Iterable[Instrument]) -> FixValidation:
    """validate_fixes, raising InvalidFixPatch on any error"""
    validation = validate_fixes(patches, instruments)
    if not validation.is_valid:
        raise InvalidFixPatch(validation.errors)
    return validation


def apply_fixes(
    patches: Mapping[str, ConfigPatch],
    instruments: Iterable[Instrument],
    entries: Iterable[LedgerEntry],
    store: FixStore,
    holidays: Optional[HolidayCalendar] = None,
) -> FixApplication:
    """
    Persist a validated fix set in two sequential steps.

    1. Save the patched billing configs
    2. Save re-projected dates for every entry on a patched card

    The steps are not atomic. If step 2 fails the configs are already saved
    and entries keep stale dates; recalculation.reconcile() re-derives them
    from the new configs on retry.

    Raises:
        InvalidFixPatch: the fix set failed validation (nothing was saved)
        FixApplicationError: a store call failed; carries the partial result
    """
    instruments = list(instruments)
    ensure_valid_fixes(patches, instruments)
    configs = patched_configs(patches, instruments)

    affected: Dict[str, List[LedgerEntry]] = {}
    for entry in entries:
        if entry.instrument_id in configs:
            affected.setdefault(entry.instrument_id, []).append(entry)

    result = FixApplication(phase="validated", updated_configs=configs, updated_dates={})
    try:
        store.save_billing_configs(configs)
        result.phase = "configs_saved"

        new_dates: Dict[str, date] = {}
        for card_id, card_entries in affected.items():
            new_dates.update(recalculate(card_entries, configs[card_id], holidays))
        store.save_scheduled_dates(new_dates)
        result.updated_dates = new_dates
        result.phase = "dates_saved"
    except Exception as e:
        fix_application_counter.labels(outcome="config_only" if result.phase == "configs_saved" else "failed").inc()
        log_fix_application(len(configs), 0, result.phase, error=str(e))
        raise FixApplicationError(result.phase, result) from e

    fix_application_counter.labels(outcome="applied").inc()
    log_fix_application(len(configs), len(result.updated_dates), result.phase)
    return result


def estimate_fix_impact(changes: Sequence[EntryDateChange]) -> FixImpact:
    """Summarize how far and in which direction debits move"""
    differences = [abs(c.difference) for c in changes]
    average = sum(differences) / len(differences) if differences else 0.0
    return FixImpact(
        total_entries=len(changes),
        earlier_payments=sum(1 for c in changes if c.difference < 0),
        later_payments=sum(1 for c in changes if c.difference > 0),
        unchanged_payments=sum(1 for c in changes if c.difference == 0),
        average_days_difference=round(average, 2),
        max_days_difference=max(differences) if differences else 0,
    )


def build_fix_report(
    instruments: Iterable[Instrument],
    entries: Iterable[LedgerEntry],
    holidays: Optional[HolidayCalendar] = None,
) -> str:
    """Human-readable analysis + preview + impact report for the proposed fixes"""
    instruments = list(instruments)
    entries = list(entries)
    analysis = analyze(instruments, entries)
    patches = propose_fixes(instruments)
    preview = preview_fixes(patches, instruments, entries, holidays)
    impact = estimate_fix_impact(preview.entry_changes)

    lines = ["Data fix report", "===============", "", "## Analysis", *analysis.summary, ""]
    lines += [
        "## Fix targets",
        f"- Cards to fix: {len(preview.instrument_changes)}",
        f"- Affected entries: {len(preview.entry_changes)}",
        "",
        "## Impact",
        f"- Debits moving earlier: {impact.earlier_payments}",
        f"- Debits moving later: {impact.later_payments}",
        f"- Average change (days): {impact.average_days_difference}",
        f"- Max change (days): {impact.max_days_difference}",
        "",
        "## Recommendations",
        f"Disable weekend adjustment on {len(preview.instrument_changes)} card(s)",
        f"Recalculate scheduled dates for {len(preview.entry_changes)} entries",
    ]
    return "\n".join(lines)

