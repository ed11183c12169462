"""
Deviation analysis: realized vs planned performance of groups of rounds.

Each round is taken together with its tasks (``index_tasks_by_round``) and
grouped three ways inside its depot:

  depot       ``depot_for(round.hub_name)``; "Inconnu" when no rule fires
  warehouse   the round's hub name; rounds without one are left out here
  carrier     ``carrier_for(round)``

Group metrics
-------------
    realized_punctuality   completed tasks closed within window ± 15 min
                           / completed tasks with a window and a closure
    planned_punctuality    tasks whose planned arrival is within window
                           ± 15 min / tasks with a window and a plan
    overweight_rate        rounds over ``MAX_WEIGHT_KG_PER_ROUND``
                           / rounds in the group
    total_duration_min     realized durations, else planned ones
    orders_per_2h          tasks / (total duration in hours / 2)
    average_rating         mean over rated completed tasks

A planned arrival later than window end + 15 min counts toward
``top_late_postal_codes``. Every rate is ``None`` when its denominator is 0.

Both punctuality checks widen the window by ``DEVIATION_TOLERANCE_MINUTES``
on each side; dashboard punctuality uses no tolerance.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Optional, Sequence

from delivery_kpi.aggregation.filters import OPEN_SCOPE, HubFilter, filter_rounds, filter_tasks
from delivery_kpi.classification.hubs import HubClassifier
from delivery_kpi.models.round import Round
from delivery_kpi.models.stats import (
    CountItem,
    DepotDeviation,
    DeviationReport,
    RoundGroupStats,
    TimeScope,
)
from delivery_kpi.models.task import Task
from delivery_kpi.scoring.capacity import capacity_totals
from delivery_kpi.scoring.punctuality import window_position
from delivery_kpi.scoring.rounds import index_tasks_by_round, round_key
from delivery_kpi.taxonomy.delivery_taxonomy import FilterDimension, is_completed
from delivery_kpi.utils.rates import mean, rate
from delivery_kpi.utils.time_utils import seconds_to_minutes

log = logging.getLogger(__name__)

DEVIATION_TOLERANCE_MINUTES = 15
TOP_LATE_POSTAL_CODES = 3

RoundWithTasks = tuple[Round, list[Task]]


def _round_seconds(rnd: Round) -> float:
    if rnd.lasted_seconds is not None:
        return rnd.lasted_seconds
    return rnd.planned_total_seconds or 0.0


def group_stats(group: Sequence[RoundWithTasks]) -> RoundGroupStats:
    """Compute ``RoundGroupStats`` for rounds paired with their tasks."""
    tasks = [t for _, owned in group for t in owned]
    completed = [t for t in tasks if is_completed(t.progression)]

    positions = (
        window_position(t, t.closed_at, DEVIATION_TOLERANCE_MINUTES) for t in completed
    )
    realized = [p for p in positions if p is not None]

    planned_on_time = 0
    planned_total = 0
    late_codes: Counter[str] = Counter()
    for task in tasks:
        position = window_position(task, task.estimated_arrival, DEVIATION_TOLERANCE_MINUTES)
        if position is None:
            continue
        planned_total += 1
        if position == "on_time":
            planned_on_time += 1
        elif position == "late" and task.postal_code:
            late_codes[task.postal_code] += 1

    ranked_codes = sorted(late_codes.items(), key=lambda kv: (-kv[1], kv[0]))
    overweight = sum(1 for rnd, owned in group if capacity_totals(rnd, owned).weight_overflow)
    seconds = sum(_round_seconds(rnd) for rnd, _ in group)
    hours = seconds / 3600.0

    return RoundGroupStats(
        round_count=len(group),
        task_count=len(tasks),
        realized_punctuality=rate(realized.count("on_time"), len(realized)),
        planned_punctuality=rate(planned_on_time, planned_total),
        overweight_rate=rate(overweight, len(group)),
        total_duration_min=seconds_to_minutes(seconds) or 0,
        orders_per_2h=len(tasks) / (hours / 2) if hours > 0 else None,
        average_rating=mean(t.rating for t in completed if t.rating is not None),
        top_late_postal_codes=tuple(
            CountItem(name=code, value=count)
            for code, count in ranked_codes[:TOP_LATE_POSTAL_CODES]
        ),
    )


def analyze_deviations(
    rounds: Sequence[Round],
    tasks: Sequence[Task],
    filter_dimension: str = FilterDimension.ALL,
    filter_value: Optional[str] = None,
    time_scope: Optional[TimeScope] = None,
    *,
    classifier: HubClassifier,
) -> DeviationReport:
    """Group rounds per depot, warehouse and carrier and score each group.

    Args:
        rounds: Rounds to analyse.
        tasks: Tasks, linked to rounds by name, hub and day.
        filter_dimension: ``all``, ``depot``, ``store`` or ``category``.
        filter_value: Value for the dimension.
        time_scope: Optional inclusive day range.
        classifier: Resolves depot and carrier of each round.

    Returns:
        ``DeviationReport`` with one row per depot, sorted by name.

    Raises:
        ValueError: If ``filter_dimension`` is unknown.
    """
    hub = HubFilter.build(filter_dimension, filter_value, classifier)
    scope = time_scope or OPEN_SCOPE
    by_round = index_tasks_by_round(filter_tasks(tasks, hub, scope))

    by_depot: dict[str, list[RoundWithTasks]] = defaultdict(list)
    by_warehouse: dict[str, dict[str, list[RoundWithTasks]]] = defaultdict(
        lambda: defaultdict(list)
    )
    by_carrier: dict[str, dict[str, list[RoundWithTasks]]] = defaultdict(
        lambda: defaultdict(list)
    )

    for rnd in filter_rounds(rounds, hub, scope):
        owned = by_round.get(round_key(rnd.name, rnd.hub_name, rnd.date), []) if rnd.name else []
        entry = (rnd, owned)
        depot = classifier.depot_for(rnd.hub_name)
        by_depot[depot].append(entry)
        if rnd.hub_name:
            by_warehouse[depot][rnd.hub_name].append(entry)
        by_carrier[depot][classifier.carrier_for(rnd)].append(entry)

    log.debug("Deviation analysis over %d depot(s)", len(by_depot))

    return DeviationReport(depots=tuple(
        DepotDeviation(
            name=depot,
            stats=group_stats(group),
            by_warehouse={
                name: group_stats(g) for name, g in sorted(by_warehouse[depot].items())
            },
            by_carrier={name: group_stats(g) for name, g in sorted(by_carrier[depot].items())},
        )
        for depot, group in sorted(by_depot.items())
    ))
