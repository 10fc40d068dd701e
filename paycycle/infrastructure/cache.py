"""Caller-owned memoization of monthly schedule views"""

import hashlib
import threading
import time
from collections import OrderedDict
from typing import Callable, Iterable, Optional, Tuple, Union

from paycycle.config import settings
from paycycle.domain.business_days import HolidayCalendar
from paycycle.domain.models import Account, Instrument, LedgerEntry, RecurringProjection, ScheduleView
from paycycle.domain.schedule_view import build_schedule_view

CacheKey = Tuple[int, int, str]


def content_hash(*collections: Iterable[object]) -> str:
    """
    Order-independent digest of frozen domain records.

    Each collection is rendered as the sorted reprs of its members, so the
    same records in a different order hash identically.
    """
    digest = hashlib.sha256()
    for collection in collections:
        values = collection.values() if isinstance(collection, dict) else collection
        for text in sorted(repr(v) for v in values):
            digest.update(text.encode("utf-8"))
            digest.update(b"\x1f")
        digest.update(b"\x1e")
    return digest.hexdigest()


class ScheduleViewCache:
    """
    Bounded TTL cache keyed by (year, month, content hash of inputs).

    Owned and shared explicitly by the caller; nothing is cached at module
    level. Any change to entries, projections, instruments or accounts
    produces a new key, so stale views are never served.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = settings.view_cache_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._max_entries = max(1, settings.view_cache_max_entries if max_entries is None else max_entries)
        self._clock = clock
        self._entries: "OrderedDict[CacheKey, Tuple[float, ScheduleView]]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_view(
        self,
        entries: Iterable[LedgerEntry],
        projections: Iterable[RecurringProjection],
        instruments: Union[dict, Iterable[Instrument]],
        accounts: Union[dict, Iterable[Account]],
        year: int,
        month: int,
        holidays: Optional[HolidayCalendar] = None,
    ) -> ScheduleView:
        """Cached build_schedule_view; errors from the build propagate and are not cached"""
        entries, projections = list(entries), list(projections)
        if not isinstance(instruments, dict):
            instruments = list(instruments)
        if not isinstance(accounts, dict):
            accounts = list(accounts)

        key = (year, month, content_hash(
            entries, projections, instruments, accounts, [sorted(holidays.fixed_dates) if holidays else None]
        ))
        now = self._clock()
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None and now - cached[0] < self._ttl:
                self._entries.move_to_end(key)
                self.hits += 1
                return cached[1]
            self._entries.pop(key, None)
            self.misses += 1

        view = build_schedule_view(entries, projections, instruments, accounts, year, month, holidays)

        with self._lock:
            self._entries[key] = (now, view)
            self._entries.move_to_end(key)
            self._evict(now)
        return view

    def invalidate(self, year: Optional[int] = None, month: Optional[int] = None) -> None:
        """Drop every cached view, or only those for one month"""
        with self._lock:
            if year is None:
                self._entries.clear()
                return
            for key in [k for k in self._entries if k[0] == year and (month is None or k[1] == month)]:
                del self._entries[key]

    def _evict(self, now: float) -> None:
        for key in [k for k, (stored, _) in self._entries.items() if now - stored >= self._ttl]:
            del self._entries[key]
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
