"""
Driver performance: raw per-driver KPIs and a composite 0–100 score.

Score formula (weighted mean, clamped to 0–100)
-----------------------------------------------
    score = (
          rating_pct          * 3     # average rating / 5 * 100
        + punctuality_pct     * 2
        + scanbac_pct
        + (100 - forced_address_pct)
        + (100 - forced_contactless_pct)
        + volume_pct                  # completed / best driver's completed
    ) / 9

Missing rates count as 0 (a driver with no evaluable task gets no
punctuality credit). Drivers with fewer than ``MIN_COMPLETED_TASKS``
completed tasks score 0: too few stops to rank fairly.

All per-driver rates are computed over the driver's *completed* tasks, like
the dashboard's own scanbac / forced rates.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Iterable, Sequence

from delivery_kpi.models.stats import CountItem, DriverStats
from delivery_kpi.models.task import Task
from delivery_kpi.scoring.punctuality import summarize_punctuality
from delivery_kpi.taxonomy.delivery_taxonomy import SCANBAC_COMPLETED_BY, is_completed
from delivery_kpi.utils.rates import mean, rate

log = logging.getLogger(__name__)

MIN_COMPLETED_TASKS = 5
FIVE_STAR_RATING = 5


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def driver_stats(name: str, tasks: Sequence[Task]) -> DriverStats:
    """Raw KPIs of one driver over their tasks (``score`` left unset)."""
    completed = [t for t in tasks if is_completed(t.progression)]
    ratings = [t.rating for t in completed if t.rating is not None]
    n_completed = len(completed)

    return DriverStats(
        name=name,
        total_tasks=len(tasks),
        completed_tasks=n_completed,
        total_ratings=len(ratings),
        five_star_count=sum(1 for t in tasks if t.rating == FIVE_STAR_RATING),
        average_rating=mean(ratings),
        punctuality_rate=summarize_punctuality(completed).punctuality_rate,
        scanbac_rate=rate(
            sum(1 for t in completed if t.completed_by == SCANBAC_COMPLETED_BY), n_completed
        ),
        forced_address_rate=rate(
            sum(1 for t in completed if t.address_correct is False), n_completed
        ),
        forced_contactless_rate=rate(
            sum(1 for t in completed if t.forced_contactless), n_completed
        ),
    )


def driver_score(stats: DriverStats, max_completed_tasks: int) -> float:
    """Composite 0–100 score of one driver.

    Args:
        stats: Raw driver KPIs from ``driver_stats``.
        max_completed_tasks: Highest completed-task count of any driver in
            the same selection (the volume reference).

    Returns:
        Score in [0, 100]; 0 below ``MIN_COMPLETED_TASKS`` completed tasks.
    """
    if stats.completed_tasks < MIN_COMPLETED_TASKS:
        return 0.0

    rating_pct = (stats.average_rating / 5.0 * 100.0) if stats.average_rating else 0.0
    punctuality_pct = stats.punctuality_rate or 0.0
    scanbac_pct = stats.scanbac_rate or 0.0
    address_pct = 100.0 - (stats.forced_address_rate or 0.0)
    contactless_pct = 100.0 - (stats.forced_contactless_rate or 0.0)
    volume_pct = (
        stats.completed_tasks / max_completed_tasks * 100.0 if max_completed_tasks > 0 else 0.0
    )

    total = (
        rating_pct        * 3
        + punctuality_pct * 2
        + scanbac_pct
        + address_pct
        + contactless_pct
        + volume_pct
    )
    return _clamp(total / 9.0, 0.0, 100.0)


def _tasks_by_driver(tasks: Iterable[Task]) -> dict[str, list[Task]]:
    grouped: dict[str, list[Task]] = defaultdict(list)
    for task in tasks:
        name = task.driver_name
        if name:
            grouped[name].append(task)
    return grouped


def driver_performance(tasks: Iterable[Task]) -> list[DriverStats]:
    """Scored stats for every rated driver, best score first.

    Drivers without any rating are left out, as in the performance table.
    Ties on score are broken by name.
    """
    raw = [driver_stats(name, owned) for name, owned in _tasks_by_driver(tasks).items()]
    max_completed = max((s.completed_tasks for s in raw), default=0)

    scored = [
        s.model_copy(update={"score": driver_score(s, max_completed)})
        for s in raw
        if s.total_ratings > 0
    ]
    log.debug("Scored %d of %d driver(s)", len(scored), len(raw))
    return sorted(scored, key=lambda s: (-(s.score or 0.0), s.name))


def five_star_leaders(tasks: Iterable[Task], limit: int = 5) -> list[CountItem]:
    """Drivers with the most 5-star ratings, highest first (ties by name)."""
    counts: dict[str, int] = defaultdict(int)
    for task in tasks:
        if task.rating == FIVE_STAR_RATING and task.driver_name:
            counts[task.driver_name] += 1
    ranked = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [CountItem(name=name, value=value) for name, value in ranked[:limit]]
