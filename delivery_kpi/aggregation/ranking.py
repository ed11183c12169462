"""
Ranking rows on one KPI with N/A values always last.

A plain ``sorted(..., reverse=True)`` would float ``None`` to whichever end
the comparison puts it (or fail outright). Here missing values sort after
every real value in both directions, and ties keep input order.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, TypeVar

T = TypeVar("T")


def rank_by_kpi(
    rows: Iterable[T],
    kpi: str,
    higher_is_better: bool = True,
    value_of: Optional[Callable[[T, str], Optional[float]]] = None,
) -> list[T]:
    """Return ``rows`` sorted best-first on ``kpi``.

    Args:
        rows: Records to rank.
        kpi: Attribute name of the value to rank on.
        higher_is_better: Descending order when True, ascending otherwise.
        value_of: ``(row, kpi) -> value`` accessor; defaults to
            ``getattr(row, kpi)``.

    Returns:
        New list; rows whose value is ``None`` come last, in input order.
    """
    getter = value_of or _attribute
    valued: list[tuple[float, T]] = []
    missing: list[T] = []
    for row in rows:
        value = getter(row, kpi)
        if value is None:
            missing.append(row)
        else:
            valued.append((value, row))

    valued.sort(key=lambda pair: -pair[0] if higher_is_better else pair[0])
    return [row for _, row in valued] + missing


def _attribute(row: Any, kpi: str) -> Optional[float]:
    return getattr(row, kpi)
