"""
Round capacity: crate ("bac") counts per type, total weight, and overflow
flags against the fleet's fixed vehicle limits.

Counting sources, most specific first:
  1. ``BAC_*`` typed articles of each task (summing ``quantity``).
  2. The task's legacy ``bacs_sec`` / ``bacs_frais`` / ``bacs_surg``
     counters, when the task carries no articles.
  3. The round's own counters, when no task is supplied at all.

Weight is the sum of per-article weight hints of a task, else the task's
``weight_kg``. When no task carries any weight, the round's ``weight_kg``
(computed upstream) is used.

Overflow is strict: 105 crates or 1250.0 kg exactly is *not* an overflow.
The limits are fleet policy constants, not runtime configuration.
"""

from __future__ import annotations

from typing import Optional, Sequence

from delivery_kpi.models.round import Round
from delivery_kpi.models.stats import CapacityTotals
from delivery_kpi.models.task import Task
from delivery_kpi.taxonomy.delivery_taxonomy import BacType

MAX_BACS_PER_ROUND = 105
MAX_WEIGHT_KG_PER_ROUND = 1250.0


def task_bacs(task: Task) -> dict[BacType, int]:
    """Crate counts per type for one task."""
    counts = {BacType.SEC: 0, BacType.FRAIS: 0, BacType.SURGELE: 0}
    if task.articles:
        for article in task.articles:
            kind = (article.type or "").upper()
            if kind in counts:
                counts[BacType(kind)] += article.quantity
        return counts

    counts[BacType.SEC] = task.bacs_sec or 0
    counts[BacType.FRAIS] = task.bacs_frais or 0
    counts[BacType.SURGELE] = task.bacs_surg or 0
    return counts


def task_weight(task: Task) -> Optional[float]:
    """Weight of one task in kg, or ``None`` when nothing is known."""
    hints = [a.weight_kg for a in task.articles if a.weight_kg is not None]
    if hints:
        return sum(hints)
    return task.weight_kg


def capacity_totals(rnd: Round, tasks: Sequence[Task] = ()) -> CapacityTotals:
    """Crate / weight totals of a round and their overflow flags.

    Args:
        rnd: The round.
        tasks: Tasks of the round (see ``rounds.tasks_for_round``). May be
            empty, in which case the round's own counters are used.

    Returns:
        ``CapacityTotals``.
    """
    if tasks:
        sec = frais = surg = 0
        weights: list[float] = []
        for task in tasks:
            counts = task_bacs(task)
            sec += counts[BacType.SEC]
            frais += counts[BacType.FRAIS]
            surg += counts[BacType.SURGELE]
            w = task_weight(task)
            if w is not None:
                weights.append(w)
        weight = sum(weights) if weights else (rnd.weight_kg or 0.0)
    else:
        sec = rnd.bacs_sec or 0
        frais = rnd.bacs_frais or 0
        surg = rnd.bacs_surg or 0
        weight = rnd.weight_kg or 0.0

    return CapacityTotals(
        bacs_sec=sec,
        bacs_frais=frais,
        bacs_surgele=surg,
        total_weight_kg=weight,
        bacs_overflow=sec + frais + surg > MAX_BACS_PER_ROUND,
        weight_overflow=weight > MAX_WEIGHT_KG_PER_ROUND,
    )
