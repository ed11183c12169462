"""Tests for delivery_kpi.reporting.formatters."""

from __future__ import annotations

import pytest

from delivery_kpi.models.rules import CarrierRule, DepotRule, ForecastRule, RuleSet
from delivery_kpi.models.stats import (
    CapacityTotals,
    CarrierQuality,
    CountItem,
    DashboardReport,
    DashboardStats,
    DepotDeviation,
    DepotForecast,
    DepotQuality,
    DeviationReport,
    DriverQuality,
    DriverStats,
    ForecastReport,
    ForecastTotals,
    KpiLeaderboard,
    NpsBreakdown,
    QualityReport,
    QualityTally,
    RankedValue,
    RoundGroupStats,
    RoundStats,
)
from delivery_kpi.reporting.formatters import (
    format_dashboard,
    format_dashboard_report,
    format_deviations,
    format_forecast,
    format_leaderboards,
    format_quality,
    format_rate,
    format_round_stats,
    format_rule_set,
    format_value,
)


# ── Values ────────────────────────────────────────────────────────────────────


@pytest.mark.parametrize("value, expected", [
    (None, "N/A"),
    (0.0, "0.00%"),
    (12.5, "12.50%"),
    (100.0, "100.00%"),
])
def test_format_rate(value, expected) -> None:
    assert format_rate(value) == expected


def test_format_value_custom_label() -> None:
    """The N/A label and precision are configurable."""
    assert format_value(None, na_label="-") == "-"
    assert format_value(4.26, decimals=1) == "4.3"


# ── Dashboard ─────────────────────────────────────────────────────────────────


def test_dashboard_na_is_not_zero() -> None:
    """A rate with no denominator prints N/A, never 0.00%."""
    stats = DashboardStats(total_tasks=2, completed_tasks=0, failed_delivery_rate=None)
    text = format_dashboard(stats, title="Rungis")
    assert "=== Dashboard: Rungis ===" in text
    line = next(l for l in text.splitlines() if "Failed delivery rate" in l)
    assert line.strip().endswith("N/A")


def test_dashboard_empty_selection() -> None:
    """No task and no round: a single placeholder line."""
    text = format_dashboard(DashboardStats())
    assert "(no data for this selection)" in text
    assert "Punctuality" not in text


def test_dashboard_report_sections() -> None:
    report = DashboardReport(
        stats=DashboardStats(total_tasks=3, completed_tasks=3, average_rating=4.5),
        nps_by_carrier={"ID LOG": NpsBreakdown(promoters=1, total=1, nps=100.0)},
        driver_performance=(DriverStats(name="Jean Dupont", completed_tasks=6, score=88.0),),
        top_five_star_drivers=(CountItem(name="Jean Dupont", value=4),),
        unassigned_drivers=("Zoe Martin",),
    )
    text = format_dashboard_report(report)
    assert "[NPS BY CARRIER]" in text
    assert "[DRIVER PERFORMANCE]" in text
    assert "88.0" in text
    assert "[TOP 5-STAR DRIVERS]" in text
    assert "[UNASSIGNED DRIVERS] 1" in text
    assert "- Zoe Martin" in text


# ── Round / forecast / comparison / rules ────────────────────────────────────


def test_round_stats_over_limit() -> None:
    stats = RoundStats(
        round_name="R1 Matin",
        capacity=CapacityTotals(bacs_sec=60, bacs_frais=40, bacs_surgele=10, bacs_overflow=True),
    )
    text = format_round_stats(stats)
    assert "Round: R1 Matin" in text
    assert "110" in text
    assert text.count("[OVER LIMIT]") == 1
    assert "Average rating:     N/A" in text
    assert "Realized duration:  N/A" in text


def test_forecast_table() -> None:
    idlog = ForecastTotals(total=2, matin=1, soir=1, bu=0, classique=2)
    report = ForecastReport(
        depots=(DepotForecast(name="Rungis", totals=idlog, by_carrier={"ID LOG": idlog}),),
        totals=idlog,
        skipped_rounds=3,
    )
    text = format_forecast(report)
    assert "Rungis" in text
    assert "ID LOG" in text
    assert "TOTAL" in text
    assert "(3 round(s) skipped: unknown depot)" in text


def test_forecast_empty() -> None:
    assert "(no classifiable rounds)" in format_forecast(ForecastReport())


# ── Quality / deviations ─────────────────────────────────────────────────────


def test_quality_tree() -> None:
    driver = DriverQuality(name="Jean Dupont", driver_id="D1", rating_count=2,
                           alert_count=1, average_rating=4.0, alert_rate=50.0)
    carrier = CarrierQuality(name="ID LOG", rating_count=2, alert_count=1,
                             average_rating=4.0, alert_rate=50.0, drivers=(driver,))
    depot = DepotQuality(name="Rungis", rating_count=2, alert_count=1,
                         average_rating=4.0, alert_rate=50.0, carriers=(carrier,))
    report = QualityReport(
        summary=QualityTally(name="Total", rating_count=2, alert_count=1,
                             average_rating=4.0, alert_rate=50.0),
        depots=(depot,),
    )
    lines = format_quality(report).splitlines()
    assert "=== Quality ===" in lines
    assert next(l for l in lines if "Rungis" in l).startswith("    Rungis")
    assert next(l for l in lines if "ID LOG" in l).startswith("      ID LOG")
    assert next(l for l in lines if "Jean Dupont" in l).startswith("        Jean Dupont")
    assert lines[-1].strip().startswith("Total")
    assert lines[-1].strip().endswith("50.0%")


def test_quality_empty_is_na() -> None:
    text = format_quality(QualityReport(summary=QualityTally(name="Total")))
    assert "(no rated task)" in text
    assert text.splitlines()[-1].strip().endswith("N/A")


def test_deviation_table() -> None:
    rungis = RoundGroupStats(
        round_count=2, task_count=5, realized_punctuality=66.7, planned_punctuality=None,
        overweight_rate=50.0, total_duration_min=180, orders_per_2h=3.3,
        top_late_postal_codes=(CountItem(name="94150", value=2),),
    )
    report = DeviationReport(depots=(
        DepotDeviation(name="Rungis", stats=rungis,
                       by_warehouse={"Rungis Sud": rungis}, by_carrier={"ID LOG": rungis}),
    ))
    lines = format_deviations(report).splitlines()
    assert "=== Deviation Analysis ===" in lines
    row = next(l for l in lines if l.strip().startswith("Rungis "))
    assert "66.7%" in row
    assert "N/A" in row
    assert any(l.strip().startswith("hub Rungis Sud") for l in lines)
    assert any(l.strip().startswith("carrier ID LOG") for l in lines)
    assert "      planned late: 94150 (2)" in lines


def test_deviation_empty() -> None:
    assert "(no round)" in format_deviations(DeviationReport())


def test_leaderboards() -> None:
    board = KpiLeaderboard(
        kpi="failed_delivery_rate",
        label="Taux d'échec",
        higher_is_better=False,
        entries=(RankedValue(rank=1, name="Rungis", value=0.0),
                 RankedValue(rank=2, name="VLG", value=None)),
    )
    text = format_leaderboards([board])
    assert "(lower is better)" in text
    assert "*" in next(l for l in text.splitlines() if "Rungis" in l)
    assert next(l for l in text.splitlines() if "VLG" in l).strip().endswith("N/A")
    assert "(no depot selected)" in format_leaderboards([])


def test_rule_set_summary() -> None:
    rules = RuleSet(
        depot_rules=(DepotRule(name="Rungis", keywords=["Rung"]),),
        carrier_rules=(CarrierRule(carrier="STT", keywords=["stt"], mode="startsWith"),),
        forecast_rules=(ForecastRule(name="Old", type="time", category="Soir", is_active=False),),
    )
    text = format_rule_set(rules)
    assert "[DEPOT RULES] 1" in text
    assert "driver startsWith stt" in text
    assert "(inactive)" in text
