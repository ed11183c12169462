"""
Tests for delivery_kpi/classification/forecast.py.

What we test
------------
split_active_rules():
  - Inactive rules dropped; time and BU rules separated.

classify():
  - Time axis: first active time rule (contains) → matin or soir, at most one.
  - BU axis: startsWith → bu, otherwise classique; bu + classique == total.
  - Time and BU axes are orthogonal (a round can be matin and classique).
  - Rounds with an unknown depot are skipped and counted.
  - Nested depot → carrier map, carrier totals, global totals.
  - Depot rows sorted by total descending then name.
  - Empty inputs give zero totals.
"""

from __future__ import annotations

import pytest

from delivery_kpi.classification.forecast import classify, split_active_rules
from delivery_kpi.models.rules import ForecastRule
from delivery_kpi.models.task import Driver
from delivery_kpi.taxonomy.delivery_taxonomy import UNKNOWN_LABEL


def _idlog() -> Driver:
    return Driver(first_name="Jean", last_name="ID LOG")


# ── split_active_rules ─────────────────────────────────────────────────────────

def test_split_active_rules(forecast_rules) -> None:
    time_rules, bu_rules = split_active_rules(forecast_rules)
    assert [r.name for r in time_rules] == ["Matin", "Soir"]
    assert [r.name for r in bu_rules] == ["BU"]


def test_split_rejects_non_list() -> None:
    with pytest.raises(TypeError):
        split_active_rules(None)  # type: ignore[arg-type]


# ── Axes ───────────────────────────────────────────────────────────────────────

def test_time_and_bu_axes_are_orthogonal(make_round, forecast_rules, classifier) -> None:
    rounds = [
        make_round(name="R1 Matin"),          # matin + classique
        make_round(name="BU-7 soir"),         # soir + bu
        make_round(name="R3 journée"),        # no time bucket + classique
        make_round(name="Tournée BU"),        # BU not at start → classique
    ]
    report = classify(rounds, forecast_rules, classifier=classifier)

    t = report.totals
    assert (t.total, t.matin, t.soir, t.bu, t.classique) == (4, 1, 1, 1, 3)
    assert t.bu + t.classique == t.total
    assert t.matin + t.soir <= t.total


def test_first_time_rule_wins(make_round, classifier) -> None:
    rules = [
        ForecastRule(name="Soir", type="time", category="Soir", keywords=["r1"]),
        ForecastRule(name="Matin", type="time", category="Matin", keywords=["matin"]),
    ]
    report = classify([make_round(name="R1 Matin")], rules, classifier=classifier)
    assert report.totals.soir == 1
    assert report.totals.matin == 0


def test_inactive_rules_ignored(make_round, forecast_rules, classifier) -> None:
    # "Old" (inactive) would put "R1 ..." rounds in soir.
    report = classify([make_round(name="R1 journée")], forecast_rules, classifier=classifier)
    assert report.totals.soir == 0


def test_bu_starts_with_is_case_insensitive(make_round, forecast_rules, classifier) -> None:
    report = classify([make_round(name="bu-12")], forecast_rules, classifier=classifier)
    assert report.totals.bu == 1


# ── Depots and carriers ────────────────────────────────────────────────────────

def test_unknown_depot_rounds_are_skipped(make_round, forecast_rules, classifier) -> None:
    rounds = [
        make_round(name="R1 Matin"),
        make_round(name="R2 Matin", hub_name="Carrefour Lyon"),
        make_round(name="R3 Matin", hub_name=None),
    ]
    report = classify(rounds, forecast_rules, classifier=classifier)
    assert report.totals.total == 1
    assert report.skipped_rounds == 2
    assert UNKNOWN_LABEL not in report.by_depot


def test_nested_depot_carrier_map(make_round, forecast_rules, classifier) -> None:
    rounds = [
        make_round(name="R1 Matin", driver=_idlog()),
        make_round(name="R2 Soir", driver=_idlog()),
        make_round(name="R3 Matin"),
        make_round(name="R4 Matin", hub_name="Vitry 2", driver=_idlog()),
    ]
    report = classify(rounds, forecast_rules, classifier=classifier)

    rungis = report.by_depot["Rungis"]
    assert rungis["ID LOG"].total == 2
    assert rungis["ID LOG"].matin == 1
    assert rungis["ID LOG"].soir == 1
    assert rungis[UNKNOWN_LABEL].total == 1
    assert report.by_depot["Vitry"]["ID LOG"].total == 1

    assert report.by_carrier["ID LOG"].total == 3
    assert report.by_carrier[UNKNOWN_LABEL].total == 1
    assert [d.name for d in report.depots] == ["Rungis", "Vitry"]
    assert report.depots[0].totals.total == 3
    assert list(report.depots[0].by_carrier) == ["ID LOG", UNKNOWN_LABEL]


def test_depot_sort_ties_by_name(make_round, forecast_rules, classifier) -> None:
    rounds = [make_round(hub_name="Vitry 2"), make_round(hub_name="Rungis")]
    report = classify(rounds, forecast_rules, classifier=classifier)
    assert [d.name for d in report.depots] == ["Rungis", "Vitry"]


def test_empty_inputs(forecast_rules, classifier) -> None:
    report = classify([], forecast_rules, classifier=classifier)
    assert report.totals.total == 0
    assert report.depots == ()
    assert report.skipped_rounds == 0

    report = classify([], [], classifier=classifier)
    assert report.by_depot == {}
