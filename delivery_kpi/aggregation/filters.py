"""
Pre-filters applied before any KPI is computed.

Two independent filters narrow the input collections:

  hub filter   ``FilterDimension``:
                 all       → keep everything (the value is ignored)
                 depot     → depot_for(hub_name) == value
                 store     → hub_name == value (exact)
                 category  → category_for(hub_name) == value
  time scope   inclusive calendar-day range on the record's date. An open
               scope keeps everything, undated records included; a bounded
               scope drops undated records.

Feedback records follow their task: comments are kept when their task id
survives the task filter; NPS verbatims carry their own store / depot and
task date, and are matched on those.

A non-``all`` dimension with an empty value selects nothing specific and
behaves like ``all`` (the picker's "every hub" entry).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from delivery_kpi.classification.hubs import HubClassifier
from delivery_kpi.models.feedback import CategorizedComment, NpsData, NpsVerbatim, ProcessedVerbatim
from delivery_kpi.models.round import Round
from delivery_kpi.models.stats import TimeScope
from delivery_kpi.models.task import Task
from delivery_kpi.taxonomy.delivery_taxonomy import FilterDimension
from delivery_kpi.utils.time_utils import day_key

OPEN_SCOPE = TimeScope()


@dataclass(frozen=True)
class HubFilter:
    """A (dimension, value) hub selection bound to a classifier."""

    dimension: FilterDimension
    value: Optional[str]
    classifier: HubClassifier

    @classmethod
    def build(
        cls,
        dimension: str,
        value: Optional[str],
        classifier: HubClassifier,
    ) -> "HubFilter":
        """Validate the dimension and normalise an empty value to ``all``.

        Raises:
            ValueError: If ``dimension`` is not a known filter dimension.
        """
        dim = FilterDimension(dimension)
        if dim != FilterDimension.ALL and not (value or "").strip():
            dim = FilterDimension.ALL
        return cls(dimension=dim, value=(value or "").strip() or None, classifier=classifier)

    @property
    def is_open(self) -> bool:
        return self.dimension == FilterDimension.ALL

    def accepts(self, hub_name: Optional[str]) -> bool:
        if self.is_open:
            return True
        if self.dimension == FilterDimension.DEPOT:
            return self.classifier.depot_for(hub_name) == self.value
        if self.dimension == FilterDimension.STORE:
            return hub_name == self.value
        return self.classifier.category_for(hub_name) == self.value

    def accepts_verbatim(self, verbatim: NpsVerbatim) -> bool:
        if self.is_open:
            return True
        if self.dimension == FilterDimension.DEPOT:
            # Survey rows carry the depot label directly; fall back to the store.
            if verbatim.depot:
                return verbatim.depot == self.value
            return self.classifier.depot_for(verbatim.store) == self.value
        return self.accepts(verbatim.store)


def filter_tasks(tasks: Iterable[Task], hub: HubFilter, scope: TimeScope = OPEN_SCOPE) -> list[Task]:
    return [t for t in tasks if hub.accepts(t.hub_name) and scope.contains(day_key(t.date))]


def filter_rounds(
    rounds: Iterable[Round], hub: HubFilter, scope: TimeScope = OPEN_SCOPE
) -> list[Round]:
    return [r for r in rounds if hub.accepts(r.hub_name) and scope.contains(day_key(r.date))]


def filter_verbatims(
    verbatims: Iterable[NpsVerbatim], hub: HubFilter, scope: TimeScope = OPEN_SCOPE
) -> list[NpsVerbatim]:
    return [
        v for v in verbatims
        if hub.accepts_verbatim(v) and scope.contains(day_key(v.task_date))
    ]


def filter_comments(
    comments: Iterable[CategorizedComment], task_ids: Optional[set[str]]
) -> list[CategorizedComment]:
    """Keep comments whose task survived; ``task_ids=None`` keeps all."""
    if task_ids is None:
        return list(comments)
    return [c for c in comments if c.task_id in task_ids]


def flatten_verbatims(nps_data: Iterable[NpsData]) -> list[NpsVerbatim]:
    """All verbatims of all batches, in batch order."""
    return [v for batch in nps_data for v in batch.verbatims]


@dataclass(frozen=True)
class Selection:
    """The filtered input collections of one dashboard computation."""

    tasks: list[Task]
    rounds: list[Round]
    comments: list[CategorizedComment]
    verbatims: list[NpsVerbatim]
    processed_verbatims: list[ProcessedVerbatim]


def select(
    tasks: Sequence[Task],
    rounds: Sequence[Round],
    comments: Sequence[CategorizedComment],
    nps_data: Sequence[NpsData],
    processed_verbatims: Sequence[ProcessedVerbatim],
    hub: HubFilter,
    scope: Optional[TimeScope] = None,
) -> Selection:
    """Apply the hub filter and the time scope to every collection."""
    scope = scope or OPEN_SCOPE
    kept_tasks = filter_tasks(tasks, hub, scope)
    unfiltered = hub.is_open and scope.start is None and scope.end is None
    task_ids = None if unfiltered else {t.task_id for t in kept_tasks if t.task_id}

    return Selection(
        tasks=kept_tasks,
        rounds=filter_rounds(rounds, hub, scope),
        comments=filter_comments(comments, task_ids),
        verbatims=filter_verbatims(flatten_verbatims(nps_data), hub, scope),
        processed_verbatims=filter_verbatims(processed_verbatims, hub, scope),
    )
