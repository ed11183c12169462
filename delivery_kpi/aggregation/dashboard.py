"""
Dashboard aggregation: one KPI rollup over tasks, rounds and feedback for
a hub filter and a time scope.

Usage:
    classifier = HubClassifier(depot_rules=rules.depot_rules,
                               carrier_rules=rules.carrier_rules)
    stats = aggregate(tasks, rounds, filter_dimension="depot",
                      filter_value="Rungis", classifier=classifier)

Denominators
------------
    failed_delivery_rate     failed / closed (completed + failed)
    punctuality_rate         on time / evaluable completed tasks
    late_over_1h_rate        late > 1h / evaluable completed tasks
    rating_rate              rated / completed
    average_rating           mean over rated completed tasks
    alert_rate               rating <= 3 / rated tasks
    scanbac_rate             completed_by == "mobile" / completed
    forced_*_rate            flag set / completed
    nps                      see ``aggregation.nps``

Every rate is ``None`` when its denominator is 0. Unplanned tasks are
counted in ``unplanned_tasks`` and otherwise treated like any other task.

The computation is pure: identical inputs give an identical result.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional, Sequence

from delivery_kpi.aggregation.filters import HubFilter, Selection, select
from delivery_kpi.aggregation.nps import nps_breakdown, nps_by_carrier
from delivery_kpi.classification.hubs import HubClassifier
from delivery_kpi.models.feedback import CategorizedComment, NpsData, ProcessedVerbatim
from delivery_kpi.models.round import Round
from delivery_kpi.models.stats import (
    CountItem,
    DashboardReport,
    DashboardStats,
    TimeScope,
)
from delivery_kpi.models.task import Task
from delivery_kpi.scoring.capacity import capacity_totals
from delivery_kpi.scoring.drivers import driver_performance, five_star_leaders
from delivery_kpi.scoring.punctuality import summarize_punctuality
from delivery_kpi.scoring.rounds import index_tasks_by_round, round_key
from delivery_kpi.taxonomy.delivery_taxonomy import (
    SCANBAC_COMPLETED_BY,
    ArticleStatus,
    CommentStatus,
    FilterDimension,
    RoundStatus,
    TaskStatus,
    is_completed,
    is_failed,
    is_quality_alert,
)
from delivery_kpi.utils.rates import mean, rate
from delivery_kpi.utils.time_utils import day_key

log = logging.getLogger(__name__)

REDELIVERY_MIN_ATTEMPTS = 2


def _status_is(value: Optional[str], expected: str) -> bool:
    return (value or "").upper() == expected


def _compute_stats(selection: Selection) -> DashboardStats:
    tasks = selection.tasks
    rounds = selection.rounds

    completed = [t for t in tasks if is_completed(t.progression)]
    failed = [t for t in tasks if is_failed(t.progression, t.status)]
    n_closed = sum(
        1 for t in tasks if is_completed(t.progression) or is_failed(t.progression, t.status)
    )
    n_completed = len(completed)

    completed_ratings = [t.rating for t in completed if t.rating is not None]
    all_ratings = [t.rating for t in tasks if t.rating is not None]
    alerts = sum(1 for r in all_ratings if is_quality_alert(r))

    punctuality = summarize_punctuality(completed)

    # ── Capacity ──────────────────────────────────────────────────────────────
    by_round = index_tasks_by_round(tasks)
    overflowing_bacs = 0
    overweight = 0
    for rnd in rounds:
        owned = by_round.get(round_key(rnd.name, rnd.hub_name, rnd.date), []) if rnd.name else []
        capacity = capacity_totals(rnd, owned)
        if capacity.bacs_overflow:
            overflowing_bacs += 1
        if capacity.weight_overflow:
            overweight += 1

    nps = nps_breakdown(selection.verbatims)

    return DashboardStats(
        total_tasks=len(tasks),
        completed_tasks=n_completed,
        unplanned_tasks=sum(1 for t in tasks if t.is_unplanned),
        closed_tasks=n_closed,
        failed_tasks=len(failed),
        failed_delivery_rate=rate(len(failed), n_closed),
        punctuality_rate=punctuality.punctuality_rate,
        late_over_1h_rate=punctuality.late_over_1h_rate,
        early_tasks=len(punctuality.early),
        late_tasks=len(punctuality.late),
        average_rating=mean(completed_ratings),
        number_of_ratings=len(completed_ratings),
        rating_rate=rate(len(completed_ratings), n_completed),
        quality_alerts=alerts,
        alert_rate=rate(alerts, len(all_ratings)),
        scanbac_rate=rate(
            sum(1 for t in completed if t.completed_by == SCANBAC_COMPLETED_BY), n_completed
        ),
        forced_arrival_rate=rate(sum(1 for t in completed if t.forced_arrival), n_completed),
        forced_address_rate=rate(
            sum(1 for t in completed if t.address_correct is False), n_completed
        ),
        forced_contactless_rate=rate(
            sum(1 for t in completed if t.forced_contactless), n_completed
        ),
        nps=nps.nps,
        nps_responses=nps.total,
        pending_tasks=sum(1 for t in tasks if _status_is(t.status, TaskStatus.PENDING)),
        missing_tasks=sum(1 for t in tasks if _status_is(t.status, TaskStatus.MISSING)),
        missing_bacs=sum(
            1 for t in tasks for a in t.articles if _status_is(a.status, ArticleStatus.MISSING)
        ),
        partial_delivered_tasks=sum(
            1 for t in tasks if _status_is(t.status, TaskStatus.PARTIAL_DELIVERED)
        ),
        redeliveries=sum(1 for t in tasks if (t.attempts or 1) >= REDELIVERY_MIN_ATTEMPTS),
        total_rounds=len(rounds),
        completed_rounds=sum(1 for r in rounds if _status_is(r.status, RoundStatus.COMPLETED)),
        overflowing_bacs_rounds=overflowing_bacs,
        overweight_rounds=overweight,
        pending_comments=sum(1 for c in selection.comments if c.status == CommentStatus.TO_PROCESS),
        pending_verbatims=sum(
            1 for v in selection.processed_verbatims if v.status == CommentStatus.TO_PROCESS
        ),
    )


def _select(
    tasks: Sequence[Task],
    rounds: Sequence[Round],
    comments: Sequence[CategorizedComment],
    nps_data: Sequence[NpsData],
    processed_verbatims: Sequence[ProcessedVerbatim],
    filter_dimension: str,
    filter_value: Optional[str],
    time_scope: Optional[TimeScope],
    classifier: HubClassifier,
) -> Selection:
    hub = HubFilter.build(filter_dimension, filter_value, classifier)
    selection = select(tasks, rounds, comments, nps_data, processed_verbatims, hub, time_scope)
    log.debug(
        "Dashboard selection %s=%s: %d task(s), %d round(s), %d verbatim(s)",
        hub.dimension, hub.value, len(selection.tasks), len(selection.rounds),
        len(selection.verbatims),
    )
    return selection


def aggregate(
    tasks: Sequence[Task],
    rounds: Sequence[Round],
    comments: Sequence[CategorizedComment] = (),
    nps_data: Sequence[NpsData] = (),
    processed_verbatims: Sequence[ProcessedVerbatim] = (),
    filter_dimension: str = FilterDimension.ALL,
    filter_value: Optional[str] = None,
    time_scope: Optional[TimeScope] = None,
    *,
    classifier: HubClassifier,
) -> DashboardStats:
    """Compute the dashboard KPIs for one filter selection.

    Args:
        tasks: Delivery tasks.
        rounds: Rounds.
        comments: Categorised customer comments.
        nps_data: NPS survey batches.
        processed_verbatims: Verbatims after manual treatment.
        filter_dimension: ``all``, ``depot``, ``store`` or ``category``.
        filter_value: Depot label, hub name or category for the dimension.
        time_scope: Optional inclusive day range.
        classifier: Resolves depots and categories for the hub filter.

    Returns:
        ``DashboardStats``; zero counts and ``None`` rates for empty input.

    Raises:
        ValueError: If ``filter_dimension`` is unknown.
    """
    selection = _select(
        tasks, rounds, comments, nps_data, processed_verbatims,
        filter_dimension, filter_value, time_scope, classifier,
    )
    return _compute_stats(selection)


# ── Full report ───────────────────────────────────────────────────────────────


def _count_items(values: Iterable[str]) -> tuple[CountItem, ...]:
    counts = Counter(values)
    return tuple(
        CountItem(name=name, value=value)
        for name, value in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    )


def _date_label(when: Optional[datetime]) -> str:
    day = day_key(when)
    return day.isoformat() if day is not None else "Unknown"


def _day_label(task: Task) -> str:
    return "Unplanned" if task.unplanned else _date_label(task.date)


def _over_time(labels: Iterable[str]) -> tuple[CountItem, ...]:
    """Day counts in calendar order."""
    return tuple(sorted(_count_items(labels), key=lambda c: c.name))


def build_dashboard_report(
    tasks: Sequence[Task],
    rounds: Sequence[Round],
    comments: Sequence[CategorizedComment] = (),
    nps_data: Sequence[NpsData] = (),
    processed_verbatims: Sequence[ProcessedVerbatim] = (),
    filter_dimension: str = FilterDimension.ALL,
    filter_value: Optional[str] = None,
    time_scope: Optional[TimeScope] = None,
    *,
    classifier: HubClassifier,
    top_n_drivers: int = 5,
) -> DashboardReport:
    """Dashboard KPIs plus the detail lists and breakdowns behind them.

    Same arguments as ``aggregate``; ``top_n_drivers`` caps the 5-star
    leaderboard. Deviation lists are sorted by minutes, largest first.
    """
    selection = _select(
        tasks, rounds, comments, nps_data, processed_verbatims,
        filter_dimension, filter_value, time_scope, classifier,
    )
    stats = _compute_stats(selection)

    completed = [t for t in selection.tasks if is_completed(t.progression)]
    punctuality = summarize_punctuality(completed)
    early = sorted(punctuality.early, key=lambda d: -d.minutes)
    late = sorted(punctuality.late, key=lambda d: -d.minutes)

    assignment = classifier.assign_carriers([*selection.rounds, *selection.tasks])

    return DashboardReport(
        stats=stats,
        nps=nps_breakdown(selection.verbatims),
        nps_by_carrier=nps_by_carrier(selection.verbatims),
        early_tasks=tuple(early),
        late_tasks=tuple(late),
        late_tasks_over_1h=tuple(d for d in late if d.late_over_1h),
        unassigned_drivers=assignment.unassigned_drivers,
        tasks_by_status=_count_items(t.status or "Unknown" for t in selection.tasks),
        tasks_by_progression=_count_items(t.progression or "Unknown" for t in selection.tasks),
        tasks_over_time=_over_time(_day_label(t) for t in selection.tasks),
        rounds_over_time=_over_time(_date_label(r.date) for r in selection.rounds),
        rounds_by_status=_count_items(r.status or "Unknown" for r in selection.rounds),
        top_five_star_drivers=tuple(five_star_leaders(selection.tasks, limit=top_n_drivers)),
        driver_performance=tuple(driver_performance(selection.tasks)),
    )
