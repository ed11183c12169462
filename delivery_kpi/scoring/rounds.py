"""
Per-round statistics: durations, average rating, punctuality and capacity.

Usage:
    tasks = tasks_for_round(rnd, all_tasks)
    stats = score_round(rnd, tasks)

``tasks_for_round`` reproduces how the platform links tasks to rounds: by
round name, hub name and calendar day. Records only share these three
fields (tasks carry no round id). ``index_tasks_by_round`` builds the same
link for many rounds at once.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from delivery_kpi.models.round import Round
from delivery_kpi.models.stats import RoundStats
from delivery_kpi.models.task import Task
from delivery_kpi.scoring.capacity import capacity_totals
from delivery_kpi.scoring.punctuality import summarize_punctuality
from delivery_kpi.utils.rates import mean
from delivery_kpi.utils.time_utils import day_key, seconds_to_minutes

log = logging.getLogger(__name__)


RoundKey = tuple[Optional[str], Optional[str], Optional[date]]


def round_key(name: Optional[str], hub_name: Optional[str], when: Optional[datetime]) -> RoundKey:
    """(round name, hub name, UTC day) linking a task to its round."""
    return name, hub_name, day_key(when)


def index_tasks_by_round(tasks: Iterable[Task]) -> dict[RoundKey, list[Task]]:
    """Group planned tasks by round key, preserving input order."""
    index: dict[RoundKey, list[Task]] = defaultdict(list)
    for task in tasks:
        if task.round_name:
            index[round_key(task.round_name, task.hub_name, task.date)].append(task)
    return index


def tasks_for_round(rnd: Round, tasks: Iterable[Task]) -> list[Task]:
    """Tasks belonging to ``rnd``, in input order.

    A task belongs to a round when round name, hub name and UTC calendar
    day are all equal (an undated task only joins an undated round). A
    round without a name owns no task.
    """
    if not rnd.name:
        return []
    return list(index_tasks_by_round(tasks).get(round_key(rnd.name, rnd.hub_name, rnd.date), ()))


def score_round(rnd: Round, tasks: Sequence[Task] = ()) -> RoundStats:
    """Compute ``RoundStats`` for one round and its tasks.

    Args:
        rnd: The round.
        tasks: The round's tasks; may be empty.

    Returns:
        ``RoundStats``. Durations are minutes with halves rounded up;
        ``average_rating`` / ``punctuality_rate`` are ``None`` when nothing
        is rated / evaluable.
    """
    ratings = [t.rating for t in tasks if t.rating is not None]
    punctuality = summarize_punctuality(tasks)
    capacity = capacity_totals(rnd, tasks)

    if capacity.bacs_overflow or capacity.weight_overflow:
        log.debug(
            "Round %s over capacity: %d bacs, %.1f kg",
            rnd.name, capacity.total_bacs, capacity.total_weight_kg,
        )

    return RoundStats(
        round_id=rnd.round_id,
        round_name=rnd.name,
        task_count=len(tasks),
        realized_duration_min=seconds_to_minutes(rnd.lasted_seconds),
        estimated_duration_min=seconds_to_minutes(rnd.planned_total_seconds),
        average_rating=mean(ratings),
        rating_count=len(ratings),
        punctuality_rate=punctuality.punctuality_rate,
        punctuality=punctuality,
        capacity=capacity,
    )
