"""Latency and residue measurements for the policy evaluator.

Worker threads open their own database connections, so the data being checked must
already be committed (the harness database, or a ``TransactionTestCase``).
"""

import time
import tracemalloc
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from django.conf import settings
from django.db import connection, reset_queries

from tenancy.policy import OP_READ, authorize

RESIDUE_BUDGET_BYTES = 512 * 1024


@dataclass
class TimedCheck:
    elapsed_ms: float
    budget_ms: float

    @property
    def within_budget(self) -> bool:
        return self.elapsed_ms < self.budget_ms


@dataclass
class ConcurrentCheck(TimedCheck):
    rows_by_member: dict = field(default_factory=dict)


@dataclass
class ResidueCheck:
    rounds: int
    reproducible: bool
    memory_growth_bytes: int
    budget_bytes: int = RESIDUE_BUDGET_BYTES

    @property
    def within_budget(self) -> bool:
        return self.reproducible and self.memory_growth_bytes < self.budget_bytes


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


def measure_single_check(fetch, subject, *, budget_ms: float | None = None):
    """Time one check-and-fetch. Returns the measurement and the fetched result."""

    if budget_ms is None:
        budget_ms = float(getattr(settings, "TENANCY_SINGLE_CHECK_BUDGET_MS", 100.0))
    start = time.perf_counter()
    result = fetch(subject)
    return TimedCheck(elapsed_ms=_elapsed_ms(start), budget_ms=budget_ms), result


def _fetch_in_worker(fetch, subject):
    try:
        return subject.member_id, list(fetch(subject))
    finally:
        connection.close()


def measure_concurrent_checks(fetch, subjects, *, budget_ms: float | None = None) -> ConcurrentCheck:
    """Run ``fetch`` for every subject at once, one thread each, and time the batch."""

    if budget_ms is None:
        budget_ms = float(getattr(settings, "TENANCY_CONCURRENT_CHECK_BUDGET_MS", 1000.0))
    subjects = list(subjects)
    start = time.perf_counter()
    with ThreadPoolExecutor(max_workers=max(len(subjects), 1)) as executor:
        futures = [executor.submit(_fetch_in_worker, fetch, subject) for subject in subjects]
        rows_by_member = dict(future.result() for future in futures)
    return ConcurrentCheck(
        elapsed_ms=_elapsed_ms(start),
        budget_ms=budget_ms,
        rows_by_member=rows_by_member,
    )


def _evaluate_round(subjects, resources) -> tuple:
    reset_queries()
    return tuple(authorize(subject, OP_READ, resource) for subject in subjects for resource in resources)


def measure_repeated_evaluation(subjects, resources, *, rounds: int = 5) -> ResidueCheck:
    """Evaluate the same grid repeatedly; decisions must not drift and memory must not grow."""

    subjects = list(subjects)
    resources = list(resources)
    baseline = _evaluate_round(subjects, resources)

    started_tracing = not tracemalloc.is_tracing()
    if started_tracing:
        tracemalloc.start()
    try:
        _evaluate_round(subjects, resources)
        before, _peak = tracemalloc.get_traced_memory()
        reproducible = True
        for _round in range(rounds):
            decisions = _evaluate_round(subjects, resources)
            reproducible = reproducible and decisions == baseline
        after, _peak = tracemalloc.get_traced_memory()
    finally:
        if started_tracing:
            tracemalloc.stop()

    return ResidueCheck(
        rounds=rounds,
        reproducible=reproducible,
        memory_growth_bytes=max(after - before, 0),
    )
