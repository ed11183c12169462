"""
Tests for delivery_kpi/aggregation/nps.py.

What we test
------------
nps_category():
  - Boundaries: 6 detractor, 7 and 8 passive, 9 promoter; None → None.

nps_breakdown():
  - NPS = (promoters - detractors) / total * 100.
  - Verbatims without a valid score are not responses.
  - Empty selection → nps None.

nps_by_carrier():
  - Blank carrier grouped under "Inconnu"; keys sorted.
"""

from __future__ import annotations

import pytest

from delivery_kpi.aggregation.nps import nps_breakdown, nps_by_carrier, nps_category
from delivery_kpi.models.feedback import NpsVerbatim
from delivery_kpi.taxonomy.delivery_taxonomy import NpsCategory


def _v(score, carrier=None) -> NpsVerbatim:
    return NpsVerbatim(nps_score=score, carrier=carrier)


@pytest.mark.parametrize("score, expected", [
    (0, NpsCategory.DETRACTOR),
    (6, NpsCategory.DETRACTOR),
    (7, NpsCategory.PASSIVE),
    (8, NpsCategory.PASSIVE),
    (9, NpsCategory.PROMOTER),
    (10, NpsCategory.PROMOTER),
    (None, None),
])
def test_nps_category_boundaries(score, expected) -> None:
    assert nps_category(score) == expected


def test_breakdown() -> None:
    b = nps_breakdown([_v(10), _v(9), _v(9), _v(8), _v(6), _v(None), _v(42)])
    assert (b.promoters, b.passives, b.detractors, b.total) == (3, 1, 1, 5)
    assert b.nps == pytest.approx(40.0)


def test_breakdown_bounds() -> None:
    assert nps_breakdown([_v(10)]).nps == pytest.approx(100.0)
    assert nps_breakdown([_v(0), _v(3)]).nps == pytest.approx(-100.0)


def test_breakdown_empty_is_none() -> None:
    b = nps_breakdown([])
    assert b.total == 0
    assert b.nps is None
    assert nps_breakdown([_v(None)]).nps is None


def test_score_parsed_from_text() -> None:
    assert NpsVerbatim.model_validate({"npsScore": "9"}).nps_score == 9
    assert NpsVerbatim.model_validate({"npsScore": "n/a"}).nps_score is None


def test_by_carrier() -> None:
    result = nps_by_carrier([
        _v(10, "STT"), _v(2, "STT"), _v(9, "  "), _v(8, None), _v(10, "ID LOG"),
    ])
    assert list(result) == ["ID LOG", "Inconnu", "STT"]
    assert result["STT"].nps == pytest.approx(0.0)
    assert result["Inconnu"].total == 2
    assert result["ID LOG"].nps == pytest.approx(100.0)
