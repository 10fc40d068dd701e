"""Prometheus metrics for cycle projection, recalculation and aggregation health"""

from prometheus_client import Counter, Histogram

# Cycle projection
cycle_counter = Counter(
    "paycycle_cycles_total",
    "Payment cycles computed",
    ["kind", "adjusted"],  # card | bank, true | false
)

# Batch recalculation
recalculated_entries_counter = Counter(
    "paycycle_recalculated_entries_total",
    "Entries re-projected by the batch recalculator",
)

# Aggregation
skipped_items_counter = Counter(
    "paycycle_skipped_items_total",
    "Malformed items skipped by the day-total aggregator",
)

aggregation_duration_histogram = Histogram(
    "paycycle_aggregation_duration_seconds",
    "Time spent building aggregated views",
    ["view"],  # day_totals | schedule_view
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 1.0],
)

# Configuration fixes
fix_application_counter = Counter(
    "paycycle_fix_applications_total",
    "Configuration fix applications",
    ["outcome"],  # applied | config_only | failed
)


def record_cycle(kind: str, is_adjusted: bool) -> None:
    """Record one computed cycle"""
    cycle_counter.labels(kind=kind, adjusted="true" if is_adjusted else "false").inc()
