"""
ASCII terminal formatters for CLI reporting commands.

All formatters accept derived stats records and return plain multi-line
strings suitable for ``typer.echo()``.

No third-party dependencies (no ``rich``, no ``colorama``).

N/A
---
Every rate, mean and NPS may be ``None`` (empty denominator). It is always
rendered as the configured N/A label, never as ``0.00``: a depot with no
rated task has no average rating, not a bad one.
"""

from __future__ import annotations

from typing import Optional, Sequence

from delivery_kpi.models.rules import RuleSet
from delivery_kpi.models.stats import (
    DashboardReport,
    DashboardStats,
    DeviationReport,
    ForecastReport,
    ForecastTotals,
    KpiLeaderboard,
    QualityReport,
    QualityTally,
    RoundGroupStats,
    RoundStats,
)
from delivery_kpi.scoring.capacity import MAX_BACS_PER_ROUND, MAX_WEIGHT_KG_PER_ROUND

NA_LABEL = "N/A"


def format_value(
    value: Optional[float],
    decimals: int = 2,
    unit: str = "",
    na_label: str = NA_LABEL,
) -> str:
    """Format a number with fixed decimals, or ``na_label`` for ``None``."""
    if value is None:
        return na_label
    return f"{value:.{decimals}f}{unit}"


def format_rate(value: Optional[float], decimals: int = 2, na_label: str = NA_LABEL) -> str:
    """Format a percentage rate (``12.50%``), or ``na_label`` for ``None``."""
    return format_value(value, decimals, "%", na_label)


def _minutes(value: Optional[int], na_label: str) -> str:
    return na_label if value is None else f"{value} min"


# ── Dashboard ─────────────────────────────────────────────────────────────────


def format_dashboard(
    stats: DashboardStats,
    title: str = "All hubs",
    decimals: int = 2,
    na_label: str = NA_LABEL,
) -> str:
    """Format the headline dashboard KPIs as a two-column table."""
    def r(v: Optional[float]) -> str:
        return format_rate(v, decimals, na_label)

    def n(v: Optional[float]) -> str:
        return format_value(v, decimals, "", na_label)

    rows: list[tuple[str, str]] = [
        ("Total tasks", str(stats.total_tasks)),
        ("Completed tasks", str(stats.completed_tasks)),
        ("Unplanned tasks", str(stats.unplanned_tasks)),
        ("Failed tasks", str(stats.failed_tasks)),
        ("Failed delivery rate", r(stats.failed_delivery_rate)),
        ("Punctuality rate", r(stats.punctuality_rate)),
        ("Late > 1h rate", r(stats.late_over_1h_rate)),
        ("Early / late tasks", f"{stats.early_tasks} / {stats.late_tasks}"),
        ("Average rating", n(stats.average_rating)),
        ("Ratings (rate)", f"{stats.number_of_ratings} ({r(stats.rating_rate)})"),
        ("Quality alerts (rate)", f"{stats.quality_alerts} ({r(stats.alert_rate)})"),
        ("Scanbac rate", r(stats.scanbac_rate)),
        ("Forced arrival rate", r(stats.forced_arrival_rate)),
        ("Forced address rate", r(stats.forced_address_rate)),
        ("Forced contactless rate", r(stats.forced_contactless_rate)),
        ("NPS (responses)", f"{n(stats.nps)} ({stats.nps_responses})"),
        ("Pending / missing tasks", f"{stats.pending_tasks} / {stats.missing_tasks}"),
        ("Missing bacs", str(stats.missing_bacs)),
        ("Partial deliveries", str(stats.partial_delivered_tasks)),
        ("Redeliveries", str(stats.redeliveries)),
        ("Rounds (completed)", f"{stats.total_rounds} ({stats.completed_rounds})"),
        (f"Rounds > {MAX_BACS_PER_ROUND} bacs", str(stats.overflowing_bacs_rounds)),
        (f"Rounds > {MAX_WEIGHT_KG_PER_ROUND:g} kg", str(stats.overweight_rounds)),
        ("Pending comments", str(stats.pending_comments)),
        ("Pending verbatims", str(stats.pending_verbatims)),
    ]

    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Dashboard: {title} ===")
    if not stats.has_data:
        lines.append("  (no data for this selection)")
        return "\n".join(lines)

    width = max(len(label) for label, _ in rows)
    for label, value in rows:
        lines.append(f"  {label:<{width}}  {value:>16}")
    return "\n".join(lines)


def format_dashboard_report(
    report: DashboardReport,
    title: str = "All hubs",
    decimals: int = 2,
    na_label: str = NA_LABEL,
) -> str:
    """Dashboard KPIs followed by NPS per carrier, drivers and unassigned drivers."""
    lines = [format_dashboard(report.stats, title, decimals, na_label)]

    if report.nps_by_carrier:
        lines.append("")
        lines.append("  [NPS BY CARRIER]")
        header = f"    {'Carrier':<24}  {'Prom':>5}  {'Pass':>5}  {'Detr':>5}  {'NPS':>8}"
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4))
        for carrier, b in report.nps_by_carrier.items():
            lines.append(
                f"    {carrier[:24]:<24}  {b.promoters:>5}  {b.passives:>5}  "
                f"{b.detractors:>5}  {format_value(b.nps, decimals, '', na_label):>8}"
            )

    if report.driver_performance:
        lines.append("")
        lines.append("  [DRIVER PERFORMANCE]")
        header = (
            f"    {'Driver':<28}  {'Done':>5}  {'Rating':>7}  "
            f"{'Punct.':>8}  {'Scanbac':>8}  {'Score':>6}"
        )
        lines.append(header)
        lines.append("    " + "-" * (len(header) - 4))
        for d in report.driver_performance:
            lines.append(
                f"    {d.name[:28]:<28}  {d.completed_tasks:>5}  "
                f"{format_value(d.average_rating, decimals, '', na_label):>7}  "
                f"{format_rate(d.punctuality_rate, 1, na_label):>8}  "
                f"{format_rate(d.scanbac_rate, 1, na_label):>8}  "
                f"{format_value(d.score, 1, '', na_label):>6}"
            )

    if report.top_five_star_drivers:
        lines.append("")
        lines.append("  [TOP 5-STAR DRIVERS]")
        for i, item in enumerate(report.top_five_star_drivers, start=1):
            lines.append(f"    {i:>2}. {item.name}  ({item.value})")

    if report.unassigned_drivers:
        lines.append("")
        lines.append(f"  [UNASSIGNED DRIVERS] {len(report.unassigned_drivers)} without carrier rule")
        for name in report.unassigned_drivers:
            lines.append(f"    - {name}")

    return "\n".join(lines)


# ── Round ─────────────────────────────────────────────────────────────────────


def format_round_stats(stats: RoundStats, decimals: int = 2, na_label: str = NA_LABEL) -> str:
    """Format one round's durations, rating, punctuality and capacity."""
    cap = stats.capacity
    bacs_flag = "  [OVER LIMIT]" if cap.bacs_overflow else ""
    weight_flag = "  [OVER LIMIT]" if cap.weight_overflow else ""

    lines: list[str] = []
    lines.append("")
    lines.append(f"=== Round: {stats.round_name or na_label} ===")
    lines.append(f"  Tasks:              {stats.task_count}")
    lines.append(f"  Realized duration:  {_minutes(stats.realized_duration_min, na_label)}")
    lines.append(f"  Estimated duration: {_minutes(stats.estimated_duration_min, na_label)}")
    lines.append(
        f"  Average rating:     {format_value(stats.average_rating, decimals, '', na_label)}"
        f" ({stats.rating_count} rated)"
    )
    lines.append(
        f"  Punctuality:        {format_rate(stats.punctuality_rate, decimals, na_label)}"
        f" ({stats.punctuality.on_time_count}/{stats.punctuality.evaluable_count} on time,"
        f" {len(stats.punctuality.early)} early, {len(stats.punctuality.late)} late)"
    )
    lines.append(
        f"  Bacs:               {cap.total_bacs} "
        f"(sec {cap.bacs_sec}, frais {cap.bacs_frais}, surg {cap.bacs_surgele})"
        f" / {MAX_BACS_PER_ROUND}{bacs_flag}"
    )
    lines.append(
        f"  Weight:             {cap.total_weight_kg:.1f} kg"
        f" / {MAX_WEIGHT_KG_PER_ROUND:g} kg{weight_flag}"
    )
    return "\n".join(lines)


# ── Quality ───────────────────────────────────────────────────────────────────


def _quality_row(row: QualityTally, indent: str, decimals: int, na_label: str) -> str:
    width = 32 - len(indent)
    return (
        f"{indent}{row.name[:width]:<{width}}  {row.rating_count:>7}  {row.alert_count:>6}  "
        f"{format_value(row.average_rating, decimals, '', na_label):>7}  "
        f"{format_rate(row.alert_rate, 1, na_label):>8}"
    )


def format_quality(report: QualityReport, decimals: int = 2, na_label: str = NA_LABEL) -> str:
    """Format the depot / carrier / driver rating tree with its summary line."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Quality ===")
    header = (
        f"    {'Depot / carrier / driver':<28}  {'Ratings':>7}  {'Alerts':>6}  "
        f"{'Average':>7}  {'Alert %':>8}"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))

    if not report.depots:
        lines.append("    (no rated task)")
    for depot in report.depots:
        lines.append(_quality_row(depot, "    ", decimals, na_label))
        for carrier in depot.carriers:
            lines.append(_quality_row(carrier, "      ", decimals, na_label))
            for driver in carrier.drivers:
                lines.append(_quality_row(driver, "        ", decimals, na_label))

    lines.append("    " + "-" * (len(header) - 4))
    lines.append(_quality_row(report.summary, "    ", decimals, na_label))
    return "\n".join(lines)


# ── Deviation analysis ────────────────────────────────────────────────────────


def _deviation_row(
    label: str, s: RoundGroupStats, indent: str, decimals: int, na_label: str
) -> str:
    width = 30 - len(indent)
    return (
        f"{indent}{label[:width]:<{width}}  {s.round_count:>6}  "
        f"{format_rate(s.realized_punctuality, 1, na_label):>8}  "
        f"{format_rate(s.planned_punctuality, 1, na_label):>8}  "
        f"{format_rate(s.overweight_rate, 1, na_label):>8}  "
        f"{s.total_duration_min:>8}  "
        f"{format_value(s.orders_per_2h, 1, '', na_label):>7}  "
        f"{format_value(s.average_rating, decimals, '', na_label):>7}"
    )


def format_deviations(
    report: DeviationReport, decimals: int = 2, na_label: str = NA_LABEL
) -> str:
    """Format realized vs planned stats per depot, then per warehouse and carrier."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Deviation Analysis ===")
    header = (
        f"    {'Depot / group':<26}  {'Rounds':>6}  {'Realized':>8}  {'Planned':>8}  "
        f"{'Overwt':>8}  {'Minutes':>8}  {'Ord/2h':>7}  {'Rating':>7}"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))

    if not report.depots:
        lines.append("    (no round)")
    for depot in report.depots:
        lines.append(_deviation_row(depot.name, depot.stats, "    ", decimals, na_label))
        for name, stats in depot.by_warehouse.items():
            lines.append(_deviation_row(f"hub {name}", stats, "      ", decimals, na_label))
        for name, stats in depot.by_carrier.items():
            lines.append(_deviation_row(f"carrier {name}", stats, "      ", decimals, na_label))
        if depot.stats.top_late_postal_codes:
            codes = ", ".join(f"{c.name} ({c.value})" for c in depot.stats.top_late_postal_codes)
            lines.append(f"      planned late: {codes}")
    return "\n".join(lines)


# ── Forecast ──────────────────────────────────────────────────────────────────


def _forecast_row(label: str, t: ForecastTotals, indent: str = "    ") -> str:
    return (
        f"{indent}{label[:28]:<28}  {t.total:>6}  {t.matin:>6}  {t.soir:>6}  "
        f"{t.bu:>6}  {t.classique:>9}"
    )


def format_forecast(report: ForecastReport) -> str:
    """Format forecast counts per depot (with carrier sub-rows) and totals."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Forecast by Depot ===")
    header = (
        f"    {'Depot / carrier':<28}  {'Total':>6}  {'Matin':>6}  {'Soir':>6}  "
        f"{'BU':>6}  {'Classique':>9}"
    )
    lines.append(header)
    lines.append("    " + "-" * (len(header) - 4))

    if not report.depots:
        lines.append("    (no classifiable rounds)")
    for depot in report.depots:
        lines.append(_forecast_row(depot.name, depot.totals))
        for carrier, totals in depot.by_carrier.items():
            lines.append(_forecast_row(carrier, totals, indent="      "))

    lines.append("    " + "-" * (len(header) - 4))
    lines.append(_forecast_row("TOTAL", report.totals))
    if report.skipped_rounds:
        lines.append(f"  ({report.skipped_rounds} round(s) skipped: unknown depot)")
    return "\n".join(lines)


# ── Comparison ────────────────────────────────────────────────────────────────


def format_leaderboards(
    boards: Sequence[KpiLeaderboard],
    decimals: int = 2,
    na_label: str = NA_LABEL,
) -> str:
    """Format one ranked block per KPI; rank 1 is marked with ``*``."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Depot Comparison ===")
    if not boards:
        lines.append("  (no depot selected)")
        return "\n".join(lines)

    for board in boards:
        direction = "higher is better" if board.higher_is_better else "lower is better"
        lines.append("")
        lines.append(f"  [{board.label}]  ({direction})")
        for entry in board.entries:
            marker = "*" if entry.rank == 1 else " "
            lines.append(
                f"   {marker}{entry.rank:>2}  {entry.name[:24]:<24}  "
                f"{format_value(entry.value, decimals, '', na_label):>10}"
            )
    return "\n".join(lines)


# ── Rules ─────────────────────────────────────────────────────────────────────


def format_rule_set(rules: RuleSet) -> str:
    """Summarise a rule set in precedence order."""
    lines: list[str] = []
    lines.append("")
    lines.append("=== Rule Set ===")

    lines.append(f"  [DEPOT RULES] {len(rules.depot_rules)}")
    for i, d in enumerate(rules.depot_rules, start=1):
        lines.append(f"    {i:>2}. {d.name:<20} contains {', '.join(d.keywords)}")

    lines.append(f"  [CARRIER RULES] {len(rules.carrier_rules)}")
    for i, c in enumerate(rules.carrier_rules, start=1):
        lines.append(
            f"    {i:>2}. {c.carrier:<20} {c.field} {c.mode.value} {', '.join(c.keywords)}"
        )

    lines.append(f"  [FORECAST RULES] {len(rules.forecast_rules)}")
    for i, f in enumerate(rules.forecast_rules, start=1):
        state = "" if f.is_active else "  (inactive)"
        lines.append(
            f"    {i:>2}. {f.name or '-':<20} {f.type.value}/{f.category.value} "
            f"{', '.join(f.keywords)}{state}"
        )
    return "\n".join(lines)
