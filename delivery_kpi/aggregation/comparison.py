"""
Side-by-side depot comparison on the headline KPIs.

Each selected depot is aggregated on its own (``aggregate`` with the
``depot`` filter), then every comparison KPI gets its own leaderboard.
Lower-is-better KPIs (failure, alerts, late > 1h) rank ascending.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from delivery_kpi.aggregation.dashboard import aggregate
from delivery_kpi.aggregation.ranking import rank_by_kpi
from delivery_kpi.classification.hubs import HubClassifier
from delivery_kpi.models.feedback import CategorizedComment, NpsData, ProcessedVerbatim
from delivery_kpi.models.round import Round
from delivery_kpi.models.stats import (
    DepotComparison,
    KpiLeaderboard,
    RankedValue,
    TimeScope,
)
from delivery_kpi.models.task import Task
from delivery_kpi.taxonomy.delivery_taxonomy import FilterDimension

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComparisonKpi:
    """A ``DashboardStats`` field shown in the comparison view."""

    key: str
    label: str
    higher_is_better: bool = True
    unit: str = "%"


COMPARISON_KPIS: tuple[ComparisonKpi, ...] = (
    ComparisonKpi("failed_delivery_rate", "Taux d'échec", higher_is_better=False),
    ComparisonKpi("punctuality_rate", "Ponctualité"),
    ComparisonKpi("average_rating", "Note moyenne", unit=""),
    ComparisonKpi("nps", "Score NPS", unit=""),
    ComparisonKpi("scanbac_rate", "Taux de SCANBAC"),
    ComparisonKpi("alert_rate", "Taux d'alertes qualité", higher_is_better=False),
    ComparisonKpi("rating_rate", "Taux de participation (notes)"),
    ComparisonKpi("late_over_1h_rate", "Taux de retard > 1h", higher_is_better=False),
)


def compare_depots(
    depots: Iterable[str],
    tasks: Sequence[Task],
    rounds: Sequence[Round],
    comments: Sequence[CategorizedComment] = (),
    nps_data: Sequence[NpsData] = (),
    processed_verbatims: Sequence[ProcessedVerbatim] = (),
    time_scope: Optional[TimeScope] = None,
    *,
    classifier: HubClassifier,
) -> list[DepotComparison]:
    """Aggregate each depot separately, in the order given."""
    results = [
        DepotComparison(
            name=depot,
            stats=aggregate(
                tasks, rounds, comments, nps_data, processed_verbatims,
                FilterDimension.DEPOT, depot, time_scope,
                classifier=classifier,
            ),
        )
        for depot in depots
    ]
    log.debug("Compared %d depot(s)", len(results))
    return results


def _stat_value(row: DepotComparison, kpi: str) -> Optional[float]:
    return getattr(row.stats, kpi)


def kpi_leaderboard(
    comparisons: Sequence[DepotComparison],
    kpis: Sequence[ComparisonKpi] = COMPARISON_KPIS,
) -> list[KpiLeaderboard]:
    """One ranked depot list per KPI, best first, N/A last.

    Raises:
        AttributeError: If a KPI key is not a ``DashboardStats`` field.
    """
    boards = []
    for kpi in kpis:
        ranked = rank_by_kpi(comparisons, kpi.key, kpi.higher_is_better, value_of=_stat_value)
        boards.append(
            KpiLeaderboard(
                kpi=kpi.key,
                label=kpi.label,
                higher_is_better=kpi.higher_is_better,
                entries=tuple(
                    RankedValue(rank=i, name=row.name, value=_stat_value(row, kpi.key))
                    for i, row in enumerate(ranked, start=1)
                ),
            )
        )
    return boards
