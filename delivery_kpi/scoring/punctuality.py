"""
Punctuality evaluation against scheduled delivery windows.

Rules
-----
A task is *evaluable* when it has a window start and a completion timestamp.
A missing window end defaults to ``start + DEFAULT_WINDOW_MINUTES`` (legacy
records only carry the slot start).

    early          closed_at <  window_start
    on time        window_start <= closed_at <= window_end   (inclusive)
    late           closed_at >  window_end
    late over 1h   closed_at >  window_end + 60 min          (strict)

Late-over-1h is a sub-bucket of late and never overlaps on-time. Deviation
magnitudes are whole minutes (truncated) and always non-negative.

Rates use the evaluable count as denominator and are ``None`` when it is 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Optional

from delivery_kpi.models.stats import PunctualityDeviation, PunctualitySummary
from delivery_kpi.models.task import Task
from delivery_kpi.utils.rates import rate
from delivery_kpi.utils.time_utils import minutes_between

DEFAULT_WINDOW_MINUTES = 120
LATE_OVER_1H_MINUTES = 60


@dataclass(frozen=True)
class WindowOutcome:
    """Result of checking one task against its window.

    Attributes:
        status: ``"early"``, ``"on_time"`` or ``"late"``.
        minutes: Whole minutes outside the window (0 when on time).
        late_over_1h: True if more than 60 minutes past the window end.
    """

    status: str
    minutes: int
    late_over_1h: bool
    window_start: datetime
    window_end: datetime


def window_bounds(task: Task) -> Optional[tuple[datetime, datetime]]:
    """(start, end) of the task window, or ``None`` without a start."""
    start = task.window.start
    if start is None:
        return None
    end = task.window.end or start + timedelta(minutes=DEFAULT_WINDOW_MINUTES)
    return start, end


def window_position(
    task: Task, when: Optional[datetime], tolerance_minutes: int = 0
) -> Optional[str]:
    """``"early"``, ``"on_time"`` or ``"late"`` for ``when`` against the task
    window widened by ``tolerance_minutes`` on both sides.

    Used for the planned arrival as well as the closure. ``None`` when the
    task has no window start or ``when`` is unknown.
    """
    bounds = window_bounds(task)
    if bounds is None or when is None:
        return None
    slack = timedelta(minutes=tolerance_minutes)
    start, end = bounds
    if when < start - slack:
        return "early"
    if when > end + slack:
        return "late"
    return "on_time"


def evaluate_task(task: Task) -> Optional[WindowOutcome]:
    """Classify one task against its window; ``None`` if not evaluable."""
    bounds = window_bounds(task)
    closed = task.closed_at
    if bounds is None or closed is None:
        return None
    start, end = bounds

    if closed < start:
        return WindowOutcome("early", minutes_between(closed, start), False, start, end)
    if closed > end:
        over_1h = closed > end + timedelta(minutes=LATE_OVER_1H_MINUTES)
        return WindowOutcome("late", minutes_between(end, closed), over_1h, start, end)
    return WindowOutcome("on_time", 0, False, start, end)


def summarize_punctuality(tasks: Iterable[Task]) -> PunctualitySummary:
    """Aggregate window outcomes over ``tasks``.

    Returns:
        ``PunctualitySummary`` with counts, rates (``None`` when nothing is
        evaluable) and the early / late deviation lists in input order.
    """
    evaluable = 0
    on_time = 0
    over_1h = 0
    early: list[PunctualityDeviation] = []
    late: list[PunctualityDeviation] = []

    for task in tasks:
        outcome = evaluate_task(task)
        if outcome is None:
            continue
        evaluable += 1
        if outcome.status == "on_time":
            on_time += 1
            continue

        deviation = PunctualityDeviation(
            task_id=task.task_id,
            driver_name=task.driver_name,
            direction=outcome.status,
            minutes=outcome.minutes,
            late_over_1h=outcome.late_over_1h,
            window_start=outcome.window_start,
            window_end=outcome.window_end,
            closed_at=task.closed_at,
        )
        if outcome.status == "early":
            early.append(deviation)
        else:
            late.append(deviation)
            if outcome.late_over_1h:
                over_1h += 1

    return PunctualitySummary(
        evaluable_count=evaluable,
        on_time_count=on_time,
        late_over_1h_count=over_1h,
        punctuality_rate=rate(on_time, evaluable),
        late_over_1h_rate=rate(over_1h, evaluable),
        early=tuple(early),
        late=tuple(late),
    )
