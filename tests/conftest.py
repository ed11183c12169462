"""
Shared pytest fixtures for the delivery-kpi test suite.

Provides:
  - ``make_task`` / ``make_round``: factories building records from keyword
    overrides on top of sane defaults (completed task, dated round).
  - Rule fixtures mirroring a small real configuration: depot rules,
    carrier rules, forecast rules, and a ``classifier`` built from them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from delivery_kpi.classification.hubs import HubClassifier
from delivery_kpi.models.round import Round
from delivery_kpi.models.rules import CarrierRule, DepotRule, ForecastRule
from delivery_kpi.models.task import Task

DAY = datetime(2024, 5, 14, tzinfo=timezone.utc)


# ── Record factories ──────────────────────────────────────────────────────────

@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory: ``make_task(**overrides) -> Task``.

    Defaults to a completed task of round "R1 Matin" at hub "Rungis Sud",
    with no window, rating or closure.
    """
    def _make(**overrides: Any) -> Task:
        fields: dict[str, Any] = {
            "task_id": "T1",
            "hub_name": "Rungis Sud",
            "round_name": "R1 Matin",
            "date": DAY,
            "progression": "COMPLETED",
            "status": "DELIVERED",
        }
        fields.update(overrides)
        return Task(**fields)

    return _make


@pytest.fixture
def make_round() -> Callable[..., Round]:
    """Factory: ``make_round(**overrides) -> Round`` named "R1 Matin" at "Rungis Sud"."""
    def _make(**overrides: Any) -> Round:
        fields: dict[str, Any] = {
            "round_id": "RD1",
            "name": "R1 Matin",
            "hub_name": "Rungis Sud",
            "date": DAY,
            "status": "COMPLETED",
        }
        fields.update(overrides)
        return Round(**fields)

    return _make


# ── Rules ─────────────────────────────────────────────────────────────────────

@pytest.fixture
def depot_rules() -> list[DepotRule]:
    return [
        DepotRule(name="Rungis", keywords=["Rung"]),
        DepotRule(name="Vitry", keywords=["Vitr"]),
        DepotRule(name="VLG", keywords=["Villeneuve", "Vill"]),
    ]


@pytest.fixture
def carrier_rules() -> list[CarrierRule]:
    return [
        CarrierRule(carrier="ID LOG", keywords=["id log"]),
        CarrierRule(carrier="STT", keywords=["stt"], mode="startsWith"),
        CarrierRule(carrier="Express", keywords=["EXP"], field="round", mode="startsWith"),
    ]


@pytest.fixture
def forecast_rules() -> list[ForecastRule]:
    return [
        ForecastRule(name="Matin", type="time", category="Matin", keywords=["matin"]),
        ForecastRule(name="Soir", type="time", category="Soir", keywords=["soir"]),
        ForecastRule(name="BU", type="type", category="BU", keywords=["BU"]),
        ForecastRule(
            name="Old", type="time", category="Soir", keywords=["r1"], is_active=False
        ),
    ]


@pytest.fixture
def classifier(depot_rules: list[DepotRule], carrier_rules: list[CarrierRule]) -> HubClassifier:
    return HubClassifier(depot_rules=depot_rules, carrier_rules=carrier_rules)
