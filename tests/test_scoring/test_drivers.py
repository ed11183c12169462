"""
Tests for delivery_kpi/scoring/drivers.py.

What we test
------------
driver_stats():
  - Rates computed over completed tasks; five-star count over all tasks.

driver_score():
  - Fewer than 5 completed tasks → 0.
  - A perfect driver scores 100; the formula weights rating x3, punctuality x2.
  - Missing rates count as 0; result clamped to [0, 100].

driver_performance():
  - Unrated drivers excluded; sorted by score desc then name.

five_star_leaders():
  - Counts 5-star ratings, highest first, capped at ``limit``.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from delivery_kpi.models.stats import DriverStats
from delivery_kpi.models.task import Driver
from delivery_kpi.scoring.drivers import (
    MIN_COMPLETED_TASKS,
    driver_performance,
    driver_score,
    driver_stats,
    five_star_leaders,
)

START = datetime(2024, 5, 14, 8, 0, tzinfo=timezone.utc)


def _driver(name: str) -> Driver:
    first, last = name.split()
    return Driver(first_name=first, last_name=last)


def _perfect_tasks(make_task, name: str, n: int):
    return [
        make_task(
            task_id=f"{name}-{i}",
            driver=_driver(name),
            rating=5,
            completed_by="mobile",
            address_correct=True,
            window={"start": START},
            closed_at=START + timedelta(minutes=10),
        )
        for i in range(n)
    ]


# ── driver_stats ──────────────────────────────────────────────────────────────

def test_driver_stats_over_completed(make_task) -> None:
    tasks = [
        make_task(task_id="1", rating=5, completed_by="mobile"),
        make_task(task_id="2", rating=3, address_correct=False, forced_contactless=True),
        make_task(task_id="3", progression="FAILED", status="DELIVERY_FAILED", rating=5),
    ]
    stats = driver_stats("Ana Lopez", tasks)
    assert stats.total_tasks == 3
    assert stats.completed_tasks == 2
    assert stats.total_ratings == 2
    assert stats.five_star_count == 2
    assert stats.average_rating == pytest.approx(4.0)
    assert stats.scanbac_rate == pytest.approx(50.0)
    assert stats.forced_address_rate == pytest.approx(50.0)
    assert stats.forced_contactless_rate == pytest.approx(50.0)
    assert stats.punctuality_rate is None


# ── driver_score ──────────────────────────────────────────────────────────────

def test_score_zero_below_minimum() -> None:
    stats = DriverStats(name="x", completed_tasks=MIN_COMPLETED_TASKS - 1, average_rating=5.0)
    assert driver_score(stats, 10) == 0.0


def test_perfect_score() -> None:
    stats = DriverStats(
        name="x", completed_tasks=10, average_rating=5.0, punctuality_rate=100.0,
        scanbac_rate=100.0, forced_address_rate=0.0, forced_contactless_rate=0.0,
    )
    assert driver_score(stats, 10) == pytest.approx(100.0)


def test_score_formula() -> None:
    stats = DriverStats(
        name="x", completed_tasks=5, average_rating=4.0, punctuality_rate=50.0,
        scanbac_rate=20.0, forced_address_rate=10.0, forced_contactless_rate=30.0,
    )
    # (80*3 + 50*2 + 20 + 90 + 70 + 50) / 9
    assert driver_score(stats, 10) == pytest.approx(570 / 9)


def test_missing_rates_count_as_zero() -> None:
    stats = DriverStats(name="x", completed_tasks=5)
    # only the two "100 - forced" terms and volume contribute
    assert driver_score(stats, 5) == pytest.approx(300 / 9)
    assert driver_score(stats, 0) == pytest.approx(200 / 9)


# ── driver_performance ────────────────────────────────────────────────────────

def test_driver_performance_ranking(make_task) -> None:
    tasks = (
        _perfect_tasks(make_task, "Zoe Martin", 6)
        + _perfect_tasks(make_task, "Adam Petit", 6)
        + _perfect_tasks(make_task, "Eli Blanc", 3)
        + [make_task(task_id="u", driver=_driver("Noe Vidal"))]
    )
    perf = driver_performance(tasks)
    assert [d.name for d in perf] == ["Adam Petit", "Zoe Martin", "Eli Blanc"]
    assert perf[0].score == pytest.approx(100.0)
    assert perf[2].score == 0.0


def test_driver_performance_empty() -> None:
    assert driver_performance([]) == []


# ── five_star_leaders ─────────────────────────────────────────────────────────

def test_five_star_leaders(make_task) -> None:
    tasks = (
        _perfect_tasks(make_task, "Zoe Martin", 2)
        + _perfect_tasks(make_task, "Adam Petit", 2)
        + _perfect_tasks(make_task, "Eli Blanc", 3)
        + [make_task(task_id="x", driver=_driver("Noe Vidal"), rating=4)]
    )
    leaders = five_star_leaders(tasks, limit=2)
    assert [(c.name, c.value) for c in leaders] == [("Eli Blanc", 3), ("Adam Petit", 2)]
