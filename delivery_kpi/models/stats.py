"""
Derived statistics records — the engine's outputs.

Every record here is plain data: frozen pydantic models with no behaviour
beyond trivial properties, safe to ``model_dump()`` / ``model_dump_json()``
for display or export.

Rates
-----
Every rate field is ``Optional[float]`` in percent (0–100). ``None`` means
the denominator was zero ("N/A"), which is distinct from ``0.0``. NPS lives
in [-100, 100] with the same ``None`` convention.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

_STATS_CONFIG = ConfigDict(frozen=True)


class PunctualityDeviation(BaseModel):
    """A task completed outside its window.

    Attributes:
        task_id: Task identifier.
        driver_name: Driver full name, if known.
        direction: ``"early"`` or ``"late"``.
        minutes: Whole minutes outside the window, always >= 0.
        late_over_1h: True when more than 60 minutes past the window end.
    """

    model_config = _STATS_CONFIG

    task_id: Optional[str] = None
    driver_name: Optional[str] = None
    direction: str
    minutes: int
    late_over_1h: bool = False
    window_start: Optional[datetime] = None
    window_end: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class PunctualitySummary(BaseModel):
    """Punctuality over a set of tasks.

    ``evaluable_count`` is the denominator of both rates: tasks with a
    window start and a completion timestamp.
    """

    model_config = _STATS_CONFIG

    evaluable_count: int = 0
    on_time_count: int = 0
    late_over_1h_count: int = 0
    punctuality_rate: Optional[float] = None
    late_over_1h_rate: Optional[float] = None
    early: tuple[PunctualityDeviation, ...] = ()
    late: tuple[PunctualityDeviation, ...] = ()


class CapacityTotals(BaseModel):
    """Crate and weight totals of a round, with overflow flags."""

    model_config = _STATS_CONFIG

    bacs_sec: int = 0
    bacs_frais: int = 0
    bacs_surgele: int = 0
    total_weight_kg: float = 0.0
    bacs_overflow: bool = False
    weight_overflow: bool = False

    @property
    def total_bacs(self) -> int:
        return self.bacs_sec + self.bacs_frais + self.bacs_surgele

    def bacs_excess(self, limit: int) -> int:
        """Crates above ``limit`` (0 when within it)."""
        return max(0, self.total_bacs - limit)

    def weight_excess(self, limit: float) -> float:
        """Kilograms above ``limit`` (0.0 when within it)."""
        return max(0.0, self.total_weight_kg - limit)


class RoundStats(BaseModel):
    """Per-round derived metrics.

    Attributes:
        round_name: Round name.
        realized_duration_min: Realized duration in minutes, or ``None``.
        estimated_duration_min: Planned duration in minutes, or ``None``.
        average_rating: Mean of rated tasks, or ``None`` when none is rated.
        rating_count: Number of rated tasks.
        punctuality_rate: On-time share of evaluable tasks, or ``None``.
        punctuality: Full punctuality breakdown.
        capacity: Crate / weight totals and overflow flags.
    """

    model_config = _STATS_CONFIG

    round_id: Optional[str] = None
    round_name: Optional[str] = None
    task_count: int = 0
    realized_duration_min: Optional[int] = None
    estimated_duration_min: Optional[int] = None
    average_rating: Optional[float] = None
    rating_count: int = 0
    punctuality_rate: Optional[float] = None
    punctuality: PunctualitySummary = PunctualitySummary()
    capacity: CapacityTotals = CapacityTotals()


class NpsBreakdown(BaseModel):
    """NPS bucket counts and score; ``nps`` is ``None`` when ``total == 0``."""

    model_config = _STATS_CONFIG

    promoters: int = 0
    passives: int = 0
    detractors: int = 0
    total: int = 0
    nps: Optional[float] = None


class CountItem(BaseModel):
    """One bar of a count breakdown (status, progression, day...)."""

    model_config = _STATS_CONFIG

    name: str
    value: int


class DashboardStats(BaseModel):
    """Cross-collection KPI rollup for one filter selection.

    Counts are plain integers; every ``*_rate``, ``average_rating`` and
    ``nps`` is ``None`` when its denominator is empty.
    """

    model_config = _STATS_CONFIG

    total_tasks: int = 0
    completed_tasks: int = 0
    unplanned_tasks: int = 0
    closed_tasks: int = 0
    failed_tasks: int = 0
    failed_delivery_rate: Optional[float] = None
    punctuality_rate: Optional[float] = None
    late_over_1h_rate: Optional[float] = None
    early_tasks: int = 0
    late_tasks: int = 0
    average_rating: Optional[float] = None
    number_of_ratings: int = 0
    rating_rate: Optional[float] = None
    quality_alerts: int = 0
    alert_rate: Optional[float] = None
    scanbac_rate: Optional[float] = None
    forced_arrival_rate: Optional[float] = None
    forced_address_rate: Optional[float] = None
    forced_contactless_rate: Optional[float] = None
    nps: Optional[float] = None
    nps_responses: int = 0
    pending_tasks: int = 0
    missing_tasks: int = 0
    missing_bacs: int = 0
    partial_delivered_tasks: int = 0
    redeliveries: int = 0
    total_rounds: int = 0
    completed_rounds: int = 0
    overflowing_bacs_rounds: int = 0
    overweight_rounds: int = 0
    pending_comments: int = 0
    pending_verbatims: int = 0

    @property
    def has_data(self) -> bool:
        return self.total_tasks > 0 or self.total_rounds > 0


class DriverStats(BaseModel):
    """Raw per-driver KPIs plus the composite score."""

    model_config = _STATS_CONFIG

    name: str
    total_tasks: int = 0
    completed_tasks: int = 0
    total_ratings: int = 0
    five_star_count: int = 0
    average_rating: Optional[float] = None
    punctuality_rate: Optional[float] = None
    scanbac_rate: Optional[float] = None
    forced_address_rate: Optional[float] = None
    forced_contactless_rate: Optional[float] = None
    score: Optional[float] = None


class CarrierAssignment(BaseModel):
    """Carrier label per record, plus drivers no rule could place.

    Attributes:
        labels: Carrier label per input record, in input order.
        unassigned_drivers: Sorted, de-duplicated driver names (or round
            names when the driver is unknown) that resolved to "Inconnu".
    """

    model_config = _STATS_CONFIG

    labels: tuple[str, ...] = ()
    unassigned_drivers: tuple[str, ...] = ()


class DashboardReport(BaseModel):
    """Everything the dashboard view renders for one filter selection."""

    model_config = _STATS_CONFIG

    stats: DashboardStats
    nps: NpsBreakdown = NpsBreakdown()
    nps_by_carrier: dict[str, NpsBreakdown] = {}
    early_tasks: tuple[PunctualityDeviation, ...] = ()
    late_tasks: tuple[PunctualityDeviation, ...] = ()
    late_tasks_over_1h: tuple[PunctualityDeviation, ...] = ()
    unassigned_drivers: tuple[str, ...] = ()
    tasks_by_status: tuple[CountItem, ...] = ()
    tasks_by_progression: tuple[CountItem, ...] = ()
    tasks_over_time: tuple[CountItem, ...] = ()
    rounds_over_time: tuple[CountItem, ...] = ()
    rounds_by_status: tuple[CountItem, ...] = ()
    top_five_star_drivers: tuple[CountItem, ...] = ()
    driver_performance: tuple[DriverStats, ...] = ()


class ForecastTotals(BaseModel):
    """Round counts for one forecast cell.

    ``matin + soir <= total`` (a round may match no time rule) and
    ``bu + classique == total`` (every round is on exactly one BU axis side).
    Not frozen: accumulated in place while classifying, then returned.
    """

    total: int = 0
    matin: int = 0
    soir: int = 0
    bu: int = 0
    classique: int = 0


class DepotForecast(BaseModel):
    model_config = _STATS_CONFIG

    name: str
    totals: ForecastTotals
    by_carrier: dict[str, ForecastTotals] = {}


class ForecastReport(BaseModel):
    """Forecast classification result.

    Attributes:
        by_depot: depot -> carrier -> totals (the core nested map).
        depots: Depot rows sorted by total descending, then name.
        by_carrier: Carrier totals across depots.
        totals: Global totals.
        skipped_rounds: Rounds excluded because their depot is unknown.
    """

    model_config = _STATS_CONFIG

    by_depot: dict[str, dict[str, ForecastTotals]] = {}
    depots: tuple[DepotForecast, ...] = ()
    by_carrier: dict[str, ForecastTotals] = {}
    totals: ForecastTotals = ForecastTotals()
    skipped_rounds: int = 0


class TimeScope(BaseModel):
    """Inclusive calendar-day range; an open bound is unbounded."""

    model_config = _STATS_CONFIG

    start: Optional[date] = None
    end: Optional[date] = None

    def contains(self, day: Optional[date]) -> bool:
        """True if ``day`` is within the scope. Unknown days never are,
        unless the scope is fully open."""
        if self.start is None and self.end is None:
            return True
        if day is None:
            return False
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True


class DepotComparison(BaseModel):
    """Dashboard stats of one depot, for side-by-side comparison."""

    model_config = _STATS_CONFIG

    name: str
    stats: DashboardStats


class RankedValue(BaseModel):
    """One leaderboard line; ``rank`` is 1-based, ``value`` may be N/A."""

    model_config = _STATS_CONFIG

    rank: int
    name: str
    value: Optional[float] = None


class KpiLeaderboard(BaseModel):
    """Depots ranked on one KPI, best first, N/A values last."""

    model_config = _STATS_CONFIG

    kpi: str
    label: str
    higher_is_better: bool = True
    entries: tuple[RankedValue, ...] = ()


# ── Quality ───────────────────────────────────────────────────────────────────


class QualityRating(BaseModel):
    """One customer rating behind a driver's quality line."""

    model_config = _STATS_CONFIG

    task_id: Optional[str] = None
    rating: float
    comment: Optional[str] = None
    date: Optional[datetime] = None


class QualityTally(BaseModel):
    """Rating count, alert count, average rating and alert rate of a group.

    ``average_rating`` and ``alert_rate`` are ``None`` when nothing is rated.
    """

    model_config = _STATS_CONFIG

    name: str
    rating_count: int = 0
    alert_count: int = 0
    average_rating: Optional[float] = None
    alert_rate: Optional[float] = None


class DriverQuality(QualityTally):
    driver_id: str
    ratings: tuple[QualityRating, ...] = ()


class CarrierQuality(QualityTally):
    drivers: tuple[DriverQuality, ...] = ()


class DepotQuality(QualityTally):
    carriers: tuple[CarrierQuality, ...] = ()


class QualityReport(BaseModel):
    """Rated tasks rolled up depot -> carrier -> driver, best average first."""

    model_config = _STATS_CONFIG

    summary: QualityTally
    depots: tuple[DepotQuality, ...] = ()


# ── Deviation analysis ────────────────────────────────────────────────────────


class RoundGroupStats(BaseModel):
    """Realized vs planned delivery performance of a group of rounds.

    Attributes:
        round_count: Rounds in the group.
        task_count: Tasks linked to those rounds.
        realized_punctuality: Completed tasks closed inside their window
            (with tolerance), over completed tasks with a window and a
            closure.
        planned_punctuality: Same check on the planned arrival, over tasks
            with a window and a planned arrival.
        overweight_rate: Rounds over the weight limit, over ``round_count``.
        total_duration_min: Realized duration of the rounds, the planned
            one when no realized duration is known.
        orders_per_2h: Tasks per two hours of ``total_duration_min``.
        average_rating: Mean rating of completed tasks.
        top_late_postal_codes: Postal codes with the most planned-late
            tasks, at most three.
    """

    model_config = _STATS_CONFIG

    round_count: int = 0
    task_count: int = 0
    realized_punctuality: Optional[float] = None
    planned_punctuality: Optional[float] = None
    overweight_rate: Optional[float] = None
    total_duration_min: int = 0
    orders_per_2h: Optional[float] = None
    average_rating: Optional[float] = None
    top_late_postal_codes: tuple[CountItem, ...] = ()


class DepotDeviation(BaseModel):
    """Group stats of one depot, split per warehouse (hub) and per carrier."""

    model_config = _STATS_CONFIG

    name: str
    stats: RoundGroupStats
    by_warehouse: dict[str, RoundGroupStats] = {}
    by_carrier: dict[str, RoundGroupStats] = {}


class DeviationReport(BaseModel):
    model_config = _STATS_CONFIG

    depots: tuple[DepotDeviation, ...] = ()
