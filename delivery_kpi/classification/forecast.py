"""
Forecast classification: bucket rounds per depot and carrier by time of day
and by business unit.

Two orthogonal axes are computed from the same round name:

  time axis   first active ``time`` rule whose keyword is contained in the
              lower-cased round name → ``matin`` or ``soir``. At most one
              bucket per round; a round matching no time rule counts in
              neither.
  BU axis     first active ``type`` / ``BU`` rule whose keyword starts the
              round name → ``bu``; otherwise ``classique``. Every round lands
              on exactly one side.

A round can therefore count in ``matin`` *and* ``classique`` at once.

Depot resolution
----------------
Rounds whose depot resolves to "Inconnu" are **skipped**, unlike dashboard
aggregation which keeps them under the fallback label. The skip count is
reported on the ``ForecastReport``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Sequence

from delivery_kpi.classification.hubs import HubClassifier
from delivery_kpi.classification.matcher import match
from delivery_kpi.models.round import Round
from delivery_kpi.models.rules import ForecastRule
from delivery_kpi.models.stats import DepotForecast, ForecastReport, ForecastTotals
from delivery_kpi.taxonomy.delivery_taxonomy import (
    UNKNOWN_LABEL,
    ForecastCategory,
    ForecastRuleType,
    MatchMode,
)

log = logging.getLogger(__name__)


def split_active_rules(
    rules: Sequence[ForecastRule],
) -> tuple[list[ForecastRule], list[ForecastRule]]:
    """Return (active time rules, active BU rules), each in input order."""
    if not isinstance(rules, (list, tuple)):
        raise TypeError(f"rules must be a list or tuple, got {type(rules).__name__}.")
    time_rules = [
        r for r in rules
        if r.is_active and r.type == ForecastRuleType.TIME
        and r.category in (ForecastCategory.MATIN, ForecastCategory.SOIR)
    ]
    bu_rules = [
        r for r in rules
        if r.is_active and r.type == ForecastRuleType.TYPE and r.category == ForecastCategory.BU
    ]
    return time_rules, bu_rules


def _bump(totals: ForecastTotals, time_category: ForecastCategory | None, is_bu: bool) -> None:
    totals.total += 1
    if time_category == ForecastCategory.MATIN:
        totals.matin += 1
    elif time_category == ForecastCategory.SOIR:
        totals.soir += 1
    if is_bu:
        totals.bu += 1
    else:
        totals.classique += 1


def classify(
    rounds: Sequence[Round],
    rules: Sequence[ForecastRule],
    *,
    classifier: HubClassifier,
) -> ForecastReport:
    """Classify rounds into forecast buckets per depot and carrier.

    Args:
        rounds: Rounds to classify.
        rules: Forecast rules; inactive ones are ignored.
        classifier: Resolves depot and carrier of each round.

    Returns:
        ``ForecastReport`` with the nested depot -> carrier map, sorted depot
        rows, carrier totals across depots and global totals.
    """
    time_rules, bu_rules = split_active_rules(rules)

    by_depot: dict[str, dict[str, ForecastTotals]] = defaultdict(
        lambda: defaultdict(ForecastTotals)
    )
    depot_totals: dict[str, ForecastTotals] = defaultdict(ForecastTotals)
    carrier_totals: dict[str, ForecastTotals] = defaultdict(ForecastTotals)
    global_totals = ForecastTotals()
    skipped = 0

    for rnd in rounds:
        depot = classifier.depot_for(rnd.hub_name)
        if depot == UNKNOWN_LABEL:
            skipped += 1
            continue
        carrier = classifier.carrier_for(rnd)

        time_rule = match(time_rules, rnd.name, MatchMode.CONTAINS)
        time_category = time_rule.category if time_rule is not None else None
        is_bu = match(bu_rules, rnd.name, MatchMode.STARTS_WITH) is not None

        for totals in (
            by_depot[depot][carrier],
            depot_totals[depot],
            carrier_totals[carrier],
            global_totals,
        ):
            _bump(totals, time_category, is_bu)

    if skipped:
        log.debug("Forecast skipped %d round(s) with no resolvable depot", skipped)

    depots = sorted(
        (
            DepotForecast(
                name=name,
                totals=depot_totals[name],
                by_carrier=dict(
                    sorted(carriers.items(), key=lambda kv: (-kv[1].total, kv[0]))
                ),
            )
            for name, carriers in by_depot.items()
        ),
        key=lambda d: (-d.totals.total, d.name),
    )

    return ForecastReport(
        by_depot={name: dict(carriers) for name, carriers in by_depot.items()},
        depots=tuple(depots),
        by_carrier=dict(sorted(carrier_totals.items(), key=lambda kv: (-kv[1].total, kv[0]))),
        totals=global_totals,
        skipped_rounds=skipped,
    )
