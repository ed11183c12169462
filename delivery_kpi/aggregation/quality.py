"""
Quality rollup: customer ratings grouped depot → carrier → driver.

Only rated tasks count, completed or not. Every rating lands in exactly one
line at each level:

  depot     ``depot_for(hub_name)``; unmatched hubs stay under "Inconnu"
  carrier   ``carrier_for(task)``
  driver    the driver's external id, else the driver name, else "Inconnu"

A rating is an alert when it is 3 or below (``is_quality_alert``), the same
rule as the dashboard's ``quality_alerts``. Each level reports rating count,
alert count, average rating and alert rate; rows are sorted by average
rating, best first, then by name.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Optional, Sequence

from delivery_kpi.aggregation.filters import OPEN_SCOPE, HubFilter, filter_tasks
from delivery_kpi.classification.hubs import HubClassifier
from delivery_kpi.models.stats import (
    CarrierQuality,
    DepotQuality,
    DriverQuality,
    QualityRating,
    QualityReport,
    QualityTally,
    TimeScope,
)
from delivery_kpi.models.task import Task
from delivery_kpi.taxonomy.delivery_taxonomy import (
    UNKNOWN_LABEL,
    FilterDimension,
    is_quality_alert,
)
from delivery_kpi.utils.rates import mean, rate

log = logging.getLogger(__name__)


@dataclass
class _Tally:
    """Ratings seen so far for one group; filled in place, then frozen."""

    name: str = UNKNOWN_LABEL
    ratings: list[float] = field(default_factory=list)
    alerts: int = 0

    def add(self, rating: float) -> None:
        self.ratings.append(rating)
        if is_quality_alert(rating):
            self.alerts += 1

    def fields(self) -> dict:
        return {
            "name": self.name,
            "rating_count": len(self.ratings),
            "alert_count": self.alerts,
            "average_rating": mean(self.ratings),
            "alert_rate": rate(self.alerts, len(self.ratings)),
        }


def _best_first(row: QualityTally) -> tuple[float, str]:
    return -(row.average_rating or 0.0), row.name


def driver_key(task: Task) -> tuple[str, str]:
    """(driver id, display name) grouping a task's ratings."""
    name = task.driver_name or UNKNOWN_LABEL
    external_id = task.driver.external_id if task.driver else None
    return external_id or name, name


def build_quality_report(
    tasks: Sequence[Task],
    filter_dimension: str = FilterDimension.ALL,
    filter_value: Optional[str] = None,
    time_scope: Optional[TimeScope] = None,
    *,
    classifier: HubClassifier,
) -> QualityReport:
    """Roll rated tasks up into the depot / carrier / driver quality tree.

    Args:
        tasks: Delivery tasks; unrated ones are ignored.
        filter_dimension: ``all``, ``depot``, ``store`` or ``category``.
        filter_value: Value for the dimension.
        time_scope: Optional inclusive day range.
        classifier: Resolves depot and carrier of each task.

    Returns:
        ``QualityReport``; an empty tree and a zero summary (``None``
        average and rate) when no task is rated.

    Raises:
        ValueError: If ``filter_dimension`` is unknown.
    """
    hub = HubFilter.build(filter_dimension, filter_value, classifier)
    kept = filter_tasks(tasks, hub, time_scope or OPEN_SCOPE)
    rated = [t for t in kept if t.rating is not None]

    summary = _Tally(name="Total")
    depots: dict[str, _Tally] = defaultdict(_Tally)
    carriers: dict[tuple[str, str], _Tally] = defaultdict(_Tally)
    drivers: dict[tuple[str, str, str], _Tally] = defaultdict(_Tally)
    details: dict[tuple[str, str, str], list[QualityRating]] = defaultdict(list)

    for task in rated:
        depot = classifier.depot_for(task.hub_name)
        carrier = classifier.carrier_for(task)
        driver_id, driver_name = driver_key(task)

        depots[depot].name = depot
        carriers[(depot, carrier)].name = carrier
        drivers[(depot, carrier, driver_id)].name = driver_name
        for tally in (
            summary, depots[depot], carriers[(depot, carrier)], drivers[(depot, carrier, driver_id)]
        ):
            tally.add(task.rating)
        details[(depot, carrier, driver_id)].append(QualityRating(
            task_id=task.task_id, rating=task.rating, comment=task.comment or None, date=task.date,
        ))

    log.debug("Quality rollup over %d rated task(s), %d depot(s)", len(rated), len(depots))

    def _carrier_rows(depot: str) -> list[CarrierQuality]:
        rows = []
        for (d, carrier), tally in carriers.items():
            if d != depot:
                continue
            driver_rows = [
                DriverQuality(driver_id=key[2], ratings=tuple(details[key]), **t.fields())
                for key, t in drivers.items() if key[:2] == (depot, carrier)
            ]
            rows.append(CarrierQuality(
                drivers=tuple(sorted(driver_rows, key=_best_first)), **tally.fields()
            ))
        return sorted(rows, key=_best_first)

    depot_rows = [
        DepotQuality(carriers=tuple(_carrier_rows(name)), **tally.fields())
        for name, tally in depots.items()
    ]
    return QualityReport(
        summary=QualityTally(**summary.fields()),
        depots=tuple(sorted(depot_rows, key=_best_first)),
    )
