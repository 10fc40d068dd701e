"""Unit tests for the schedule view cache"""

import pytest
from dataclasses import replace

from paycycle.domain.exceptions import UnresolvedInstrumentReference
from paycycle.infrastructure.cache import ScheduleViewCache, content_hash


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ScheduleViewCache(ttl_seconds=60, max_entries=2, clock=clock)


def test_content_hash_is_order_independent(august_entries):
    assert content_hash(august_entries) == content_hash(list(reversed(august_entries)))
    assert content_hash(august_entries) != content_hash(august_entries[:-1])


def test_repeat_request_is_a_hit(cache, august_entries, august_projections, instruments, accounts):
    first = cache.get_view(august_entries, august_projections, instruments, accounts, 2025, 8)
    second = cache.get_view(
        list(reversed(august_entries)), august_projections, instruments, list(reversed(accounts)), 2025, 8
    )

    assert second is first
    assert (cache.hits, cache.misses) == (1, 1)


def test_changed_input_is_a_miss(cache, august_entries, august_projections, instruments, accounts):
    cache.get_view(august_entries, august_projections, instruments, accounts, 2025, 8)
    edited = [replace(august_entries[0], amount=1500)] + august_entries[1:]
    view = cache.get_view(edited, august_projections, instruments, accounts, 2025, 8)

    assert view.month_total == 7700
    assert cache.misses == 2


def test_entries_expire_after_ttl(cache, clock, august_entries, instruments, accounts):
    cache.get_view(august_entries, [], instruments, accounts, 2025, 8)
    clock.now = 61
    cache.get_view(august_entries, [], instruments, accounts, 2025, 8)

    assert cache.hits == 0
    assert cache.misses == 2


def test_least_recently_used_is_evicted(cache, august_entries, instruments, accounts):
    cache.get_view(august_entries, [], instruments, accounts, 2025, 7)
    cache.get_view(august_entries, [], instruments, accounts, 2025, 8)
    cache.get_view(august_entries, [], instruments, accounts, 2025, 7)  # refresh July
    cache.get_view(august_entries, [], instruments, accounts, 2025, 9)

    assert len(cache) == 2
    cache.get_view(august_entries, [], instruments, accounts, 2025, 7)
    assert cache.hits == 2


def test_invalidate_month(cache, august_entries, instruments, accounts):
    cache.get_view(august_entries, [], instruments, accounts, 2025, 8)
    cache.get_view(august_entries, [], instruments, accounts, 2025, 9)

    cache.invalidate(2025, 8)
    assert len(cache) == 1
    cache.invalidate()
    assert len(cache) == 0


def test_errors_are_not_cached(cache, august_entries, instruments):
    with pytest.raises(UnresolvedInstrumentReference):
        cache.get_view(august_entries, [], instruments, [], 2025, 8)
    assert len(cache) == 0


def test_cached_view_cannot_be_mutated_by_a_caller(cache, august_entries, instruments, accounts):
    first = cache.get_view(august_entries, [], instruments, accounts, 2025, 8)
    with pytest.raises(TypeError):
        first.rows[0].account_amounts["Beta Bank"] = 1_000_000

    again = cache.get_view(august_entries, [], instruments, accounts, 2025, 8)
    assert again.rows[0].account_amounts == {"Beta Bank": 500}
