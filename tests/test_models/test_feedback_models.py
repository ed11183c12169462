"""
Tests for delivery_kpi/models/feedback.py.

What we test
------------
NpsVerbatim / NpsData:
  - Store keys accepted; scores outside 0–10 dropped.
  - null verbatims list, non-object entries and null text fields tolerated.

ProcessedVerbatim:
  - responsibilities / category accept a string, a list or null.
  - null status falls back to "à traiter".

CategorizedComment:
  - null comment / category / status fall back to their defaults.
  - A missing task id is still an error.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from delivery_kpi.models.feedback import (
    CategorizedComment,
    NpsData,
    NpsVerbatim,
    ProcessedVerbatim,
)


# ── NpsVerbatim / NpsData ─────────────────────────────────────────────────────

def test_verbatim_store_keys() -> None:
    v = NpsVerbatim.model_validate({"taskId": 7, "npsScore": "9", "taskDate": "2024-05-14"})
    assert v.task_id == "7"
    assert v.nps_score == 9
    assert v.task_date is not None


@pytest.mark.parametrize("raw", [-1, 11, "x", True, None])
def test_out_of_range_score_dropped(raw) -> None:
    assert NpsVerbatim(nps_score=raw).nps_score is None


def test_verbatim_null_text_fields() -> None:
    v = NpsVerbatim.model_validate({
        "verbatim": None, "store": None, "depot": 12, "carrier": {"x": 1}, "driver": " ",
    })
    assert v.verbatim == ""
    assert v.store is None
    assert v.depot == "12"
    assert v.carrier is None
    assert v.driver is None


def test_nps_data_null_verbatims() -> None:
    assert NpsData.model_validate({"id": "b1", "verbatims": None}).verbatims == ()
    batch = NpsData.model_validate({"verbatims": [{"npsScore": 10}, "oops", None]})
    assert len(batch.verbatims) == 1
    assert batch.verbatims[0].nps_score == 10


# ── ProcessedVerbatim ─────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw, expected", [
    ("Livreur", ("Livreur",)),
    (["Livreur", None, "", 3], ("Livreur", "3")),
    (None, ()),
    ("  ", ()),
])
def test_processed_lists(raw, expected) -> None:
    assert ProcessedVerbatim(category=raw).category == expected


def test_processed_null_status() -> None:
    v = ProcessedVerbatim.model_validate({"taskId": 1, "status": None})
    assert v.status == "à traiter"


# ── CategorizedComment ────────────────────────────────────────────────────────

def test_comment_null_fields_default() -> None:
    c = CategorizedComment.model_validate({
        "taskId": 5, "comment": None, "category": None, "status": None, "rating": "bad",
    })
    assert c.task_id == "5"
    assert c.comment == ""
    assert c.category == "Autre"
    assert c.status == "à traiter"
    assert c.rating is None


def test_comment_requires_task_id() -> None:
    with pytest.raises(ValidationError):
        CategorizedComment.model_validate({"comment": "x"})
