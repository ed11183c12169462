"""
Net Promoter Score over survey verbatims.

Buckets (0–10 answers):
    promoter   score >= 9
    passive    7 <= score <= 8
    detractor  score <= 6

    NPS = (promoters - detractors) / total * 100, in [-100, 100]

The bucket is always re-derived from the score. Verbatims without a valid
score are not responses and do not count in ``total``; an empty selection
gives ``nps = None``.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional

from delivery_kpi.models.feedback import NpsVerbatim
from delivery_kpi.models.stats import NpsBreakdown
from delivery_kpi.taxonomy.delivery_taxonomy import UNKNOWN_LABEL, NpsCategory

PROMOTER_MIN_SCORE = 9
DETRACTOR_MAX_SCORE = 6


def nps_category(score: Optional[int]) -> Optional[NpsCategory]:
    """Bucket of a 0–10 score, or ``None`` for a missing score."""
    if score is None:
        return None
    if score >= PROMOTER_MIN_SCORE:
        return NpsCategory.PROMOTER
    if score <= DETRACTOR_MAX_SCORE:
        return NpsCategory.DETRACTOR
    return NpsCategory.PASSIVE


def nps_breakdown(verbatims: Iterable[NpsVerbatim]) -> NpsBreakdown:
    """Bucket counts and NPS of ``verbatims``."""
    counts = {NpsCategory.PROMOTER: 0, NpsCategory.PASSIVE: 0, NpsCategory.DETRACTOR: 0}
    for v in verbatims:
        category = nps_category(v.nps_score)
        if category is not None:
            counts[category] += 1

    total = sum(counts.values())
    nps = None
    if total > 0:
        nps = (counts[NpsCategory.PROMOTER] - counts[NpsCategory.DETRACTOR]) / total * 100.0
    return NpsBreakdown(
        promoters=counts[NpsCategory.PROMOTER],
        passives=counts[NpsCategory.PASSIVE],
        detractors=counts[NpsCategory.DETRACTOR],
        total=total,
        nps=nps,
    )


def nps_by_carrier(verbatims: Iterable[NpsVerbatim]) -> dict[str, NpsBreakdown]:
    """NPS per carrier label (``"Inconnu"`` when blank), sorted by carrier."""
    grouped: dict[str, list[NpsVerbatim]] = defaultdict(list)
    for v in verbatims:
        carrier = (v.carrier or "").strip() or UNKNOWN_LABEL
        grouped[carrier].append(v)
    return {carrier: nps_breakdown(grouped[carrier]) for carrier in sorted(grouped)}
