"""
Tests for delivery_kpi/models/round.py.

What we test
------------
  - Store keys (nom, nomHub, tempsTotal, realInfo, poidsReel) accepted.
  - Negative durations / weights and invalid counters dropped to None.
  - A completion timestamp in the future is dropped.
  - Flat driver names lifted; driver_name property.
  - Non-string status and non-object driver values tolerated.
"""

from __future__ import annotations

from datetime import timedelta

from delivery_kpi.models.round import Round
from delivery_kpi.utils.time_utils import utcnow


def test_store_document_parses() -> None:
    rnd = Round.model_validate({
        "_id": "abc",
        "nom": "R12 Matin",
        "nomHub": "Rungis Sud",
        "date": "2024-05-14",
        "statut": "COMPLETED",
        "tempsTotal": 5400,
        "realInfo": {"hasFinished": "2024-05-14T12:00:00Z", "hasLasted": 6000},
        "bacsSec": 40,
        "bacsFrais": 20,
        "poidsReel": 812.5,
        "prenomChauffeur": "Jean",
        "nomChauffeur": "Dupont",
        "carrierOverride": "STT",
    })
    assert rnd.round_id == "abc"
    assert rnd.name == "R12 Matin"
    assert rnd.status == "COMPLETED"
    assert rnd.planned_total_seconds == 5400.0
    assert rnd.lasted_seconds == 6000.0
    assert rnd.finished_at is not None
    assert rnd.bacs_sec == 40
    assert rnd.bacs_surg is None
    assert rnd.weight_kg == 812.5
    assert rnd.driver_name == "Jean Dupont"
    assert rnd.carrier_override == "STT"


def test_invalid_quantities_dropped() -> None:
    rnd = Round(lasted_seconds=-5, weight_kg="heavy", order_count=-1, bacs_frais=2.0)
    assert rnd.lasted_seconds is None
    assert rnd.weight_kg is None
    assert rnd.order_count is None
    assert rnd.bacs_frais == 2


def test_future_finish_dropped() -> None:
    future = utcnow() + timedelta(days=2)
    assert Round(finished_at=future).finished_at is None


def test_blank_names_become_none() -> None:
    rnd = Round(name="  ", hub_name="", carrier_override=" ")
    assert rnd.name is None
    assert rnd.hub_name is None
    assert rnd.carrier_override is None
    assert rnd.driver_name is None


def test_odd_status_and_driver_tolerated() -> None:
    rnd = Round.model_validate({"nom": 12, "statut": 3, "driver": "Jean", "nomHub": None})
    assert rnd.name == "12"
    assert rnd.status == "3"
    assert rnd.driver is None
    assert rnd.hub_name is None
    assert Round.model_validate({"statut": {"code": 1}}).status is None
