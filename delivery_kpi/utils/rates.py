"""
Rate and mean helpers shared by the scorers and the dashboard.

Every KPI rate in the package is a percentage with an explicit "N/A":
``None`` when the denominator is zero, never ``0.0`` and never ``NaN``.
"""

from __future__ import annotations

from typing import Iterable, Optional


def rate(numerator: int, denominator: int) -> Optional[float]:
    """``numerator / denominator * 100``, or ``None`` when ``denominator == 0``."""
    if denominator <= 0:
        return None
    return numerator / denominator * 100.0


def mean(values: Iterable[float]) -> Optional[float]:
    """Arithmetic mean, or ``None`` for an empty iterable."""
    total = 0.0
    count = 0
    for v in values:
        total += v
        count += 1
    if count == 0:
        return None
    return total / count
