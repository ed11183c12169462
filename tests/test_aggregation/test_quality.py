"""
Tests for delivery_kpi/aggregation/quality.py.

What we test
------------
build_quality_report():
  - Only rated tasks count; summary count, alerts, average and alert rate.
  - Depot → carrier → driver nesting; unmatched hubs / carriers under "Inconnu".
  - Rows sorted by average rating, best first, ties by name.
  - Drivers grouped by external id; ratings keep task id and comment.
  - Alert threshold: 3 is an alert, 4 is not.
  - Empty input: empty tree, None average and rate.
  - Hub filter and time scope narrow the rated tasks.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from delivery_kpi.aggregation.quality import build_quality_report
from delivery_kpi.models.stats import TimeScope
from delivery_kpi.models.task import Driver

JEAN = Driver(first_name="Jean", last_name="ID LOG", external_id="D1")
PAUL = Driver(first_name="stt", last_name="Paul")
ZOE = Driver(first_name="Zoe", last_name="Martin")


@pytest.fixture
def rated_tasks(make_task):
    return [
        make_task(task_id="T1", driver=JEAN, rating=5),
        make_task(task_id="T2", driver=JEAN, rating=3, comment="Retard"),
        make_task(task_id="T3", driver=PAUL, rating=4),
        make_task(task_id="T4", hub_name="Vitry Nord", driver=ZOE, rating=1),
        make_task(task_id="T5", driver=ZOE),
        make_task(task_id="T6", hub_name="Lyon", rating=5),
    ]


# ── Summary ───────────────────────────────────────────────────────────────────

def test_summary_counts_rated_tasks_only(rated_tasks, classifier) -> None:
    summary = build_quality_report(rated_tasks, classifier=classifier).summary
    assert summary.rating_count == 5
    assert summary.alert_count == 2
    assert summary.average_rating == pytest.approx(3.6)
    assert summary.alert_rate == pytest.approx(40.0)


def test_empty_input_is_na(make_task, classifier) -> None:
    report = build_quality_report([make_task(rating=None)], classifier=classifier)
    assert report.depots == ()
    assert report.summary.rating_count == 0
    assert report.summary.average_rating is None
    assert report.summary.alert_rate is None


@pytest.mark.parametrize("rating, alert", [(3, 1), (4, 0), (0, 1)])
def test_alert_threshold(make_task, classifier, rating, alert) -> None:
    report = build_quality_report([make_task(rating=rating)], classifier=classifier)
    assert report.summary.alert_count == alert


# ── Tree ──────────────────────────────────────────────────────────────────────

def test_depots_sorted_best_first(rated_tasks, classifier) -> None:
    report = build_quality_report(rated_tasks, classifier=classifier)
    assert [(d.name, d.rating_count) for d in report.depots] == [
        ("Inconnu", 1), ("Rungis", 3), ("Vitry", 1),
    ]
    rungis = report.depots[1]
    assert rungis.average_rating == pytest.approx(4.0)
    assert rungis.alert_rate == pytest.approx(100 / 3)


def test_carriers_and_drivers(rated_tasks, classifier) -> None:
    rungis = build_quality_report(rated_tasks, classifier=classifier).depots[1]
    # ID LOG and STT both average 4.0: ties go by name
    assert [c.name for c in rungis.carriers] == ["ID LOG", "STT"]

    id_log = rungis.carriers[0]
    assert id_log.alert_count == 1
    [jean] = id_log.drivers
    assert jean.driver_id == "D1"
    assert jean.name == "Jean ID LOG"
    assert [(r.task_id, r.rating, r.comment) for r in jean.ratings] == [
        ("T1", 5.0, None), ("T2", 3.0, "Retard"),
    ]


def test_unknown_driver_and_carrier(rated_tasks, classifier) -> None:
    unknown = build_quality_report(rated_tasks, classifier=classifier).depots[0]
    assert [c.name for c in unknown.carriers] == ["Inconnu"]
    assert unknown.carriers[0].drivers[0].driver_id == "Inconnu"


def test_driver_without_external_id_grouped_by_name(make_task, classifier) -> None:
    tasks = [make_task(task_id=str(i), driver=ZOE, rating=r) for i, r in enumerate((2, 4))]
    [depot] = build_quality_report(tasks, classifier=classifier).depots
    [driver] = depot.carriers[0].drivers
    assert driver.driver_id == "Zoe Martin"
    assert driver.rating_count == 2
    assert driver.average_rating == pytest.approx(3.0)


# ── Filters ───────────────────────────────────────────────────────────────────

def test_depot_filter(rated_tasks, classifier) -> None:
    report = build_quality_report(rated_tasks, "depot", "Vitry", classifier=classifier)
    assert [d.name for d in report.depots] == ["Vitry"]
    assert report.summary.rating_count == 1


def test_time_scope(make_task, classifier) -> None:
    tasks = [
        make_task(task_id="1", rating=5, date=datetime(2024, 5, 14, tzinfo=timezone.utc)),
        make_task(task_id="2", rating=1, date=datetime(2024, 5, 20, tzinfo=timezone.utc)),
    ]
    scope = TimeScope(start=date(2024, 5, 14), end=date(2024, 5, 15))
    report = build_quality_report(tasks, time_scope=scope, classifier=classifier)
    assert report.summary.rating_count == 1
    assert report.summary.alert_count == 0


def test_unknown_dimension_rejected(rated_tasks, classifier) -> None:
    with pytest.raises(ValueError):
        build_quality_report(rated_tasks, "region", "Nord", classifier=classifier)
