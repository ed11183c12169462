"""
Hub, depot and carrier classification.

Three independent questions about a record:

  depot_for(hub_name)      which depot does this hub roll up to?
                           ``contains`` match over the ordered DepotRules.
  category_for(hub_name)   is the hub a warehouse, a store, or neither?
                           Naming convention only; never looks at DepotRules,
                           so the entrepot / magasin split stays stable when
                           operators edit depot rules.
  carrier_for(record)      which carrier does the driver / round belong to?
                           Round ``carrier_override`` first, then ordered
                           CarrierRules, each against its own field.

Unmatched records resolve to ``UNKNOWN_LABEL`` ("Inconnu"). For carriers the
drivers behind those records are also returned by ``assign_carriers`` as an
explicit "unassigned drivers" list so that operators can fix their rules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Union

from delivery_kpi.classification.matcher import match, rule_matches
from delivery_kpi.models.round import Round
from delivery_kpi.models.rules import CarrierRule, DepotRule
from delivery_kpi.models.stats import CarrierAssignment
from delivery_kpi.models.task import Task
from delivery_kpi.taxonomy.delivery_taxonomy import UNKNOWN_LABEL, HubCategory, MatchMode

log = logging.getLogger(__name__)

CarrierSubject = Union[Round, Task, str, None]


@dataclass(frozen=True)
class HubNamingConvention:
    """Prefixes that identify warehouse and store hubs by name.

    Depot prefixes are checked first, then store prefixes; anything else is
    ``HubCategory.AUTRE``. Comparison is case-insensitive ``startsWith``.
    """

    depot_prefixes: tuple[str, ...] = (
        "entrepot", "entrepôt", "aix", "cast", "rung", "solo", "vill", "vitr",
    )
    store_prefixes: tuple[str, ...] = ("carrefour", "f")


DEFAULT_NAMING_CONVENTION = HubNamingConvention()


@dataclass(frozen=True)
class HubClassifier:
    """Classifies hubs and carriers against explicit, ordered rule lists.

    Holds no state besides its (immutable) rules; every method is pure.

    Attributes:
        depot_rules: Ordered DepotRules.
        carrier_rules: Ordered CarrierRules.
        naming: Hub naming convention for ``category_for``.
    """

    depot_rules: tuple[DepotRule, ...] = ()
    carrier_rules: tuple[CarrierRule, ...] = ()
    naming: HubNamingConvention = field(default=DEFAULT_NAMING_CONVENTION)

    def __post_init__(self) -> None:
        for name in ("depot_rules", "carrier_rules"):
            value = getattr(self, name)
            if not isinstance(value, (list, tuple)):
                raise TypeError(f"{name} must be a list or tuple, got {type(value).__name__}.")
            object.__setattr__(self, name, tuple(value))

    # ── Depot ─────────────────────────────────────────────────────────────────

    def depot_for(self, hub_name: Optional[str]) -> str:
        """Depot label for a hub name, or ``"Inconnu"``."""
        rule = match(self.depot_rules, hub_name, MatchMode.CONTAINS)
        return rule.name if rule is not None else UNKNOWN_LABEL

    def category_for(self, hub_name: Optional[str]) -> HubCategory:
        """``depot`` / ``magasin`` / ``autre`` from the naming convention."""
        if not hub_name:
            return HubCategory.AUTRE
        lowered = hub_name.strip().lower()
        if any(lowered.startswith(p) for p in self.naming.depot_prefixes):
            return HubCategory.DEPOT
        if any(lowered.startswith(p) for p in self.naming.store_prefixes):
            return HubCategory.MAGASIN
        return HubCategory.AUTRE

    def available_depots(self, records: Iterable[Union[Task, Round]]) -> list[str]:
        """Sorted distinct depot labels present in ``records`` (``Inconnu`` excluded)."""
        depots = {self.depot_for(r.hub_name) for r in records}
        depots.discard(UNKNOWN_LABEL)
        return sorted(depots)

    def available_stores(self, records: Iterable[Union[Task, Round]]) -> list[str]:
        """Sorted distinct hub names categorised as ``magasin``."""
        return sorted({
            r.hub_name for r in records
            if r.hub_name and self.category_for(r.hub_name) == HubCategory.MAGASIN
        })

    # ── Carrier ───────────────────────────────────────────────────────────────

    def carrier_for(self, subject: CarrierSubject) -> str:
        """Carrier label for a round, task, or bare driver name.

        Resolution order:
          1. ``Round.carrier_override`` when set.
          2. First CarrierRule (in list order) whose keywords match its
             field: the driver full name (``field="driver"``) or the round
             name (``field="round"``).
          3. ``"Inconnu"``.

        A round or task without a hub name is unclassifiable and resolves to
        ``"Inconnu"`` unless it carries an override.
        """
        if isinstance(subject, Round) and subject.carrier_override:
            return subject.carrier_override
        if isinstance(subject, (Round, Task)) and not subject.hub_name:
            return UNKNOWN_LABEL

        driver_name, round_name = _carrier_fields(subject)
        if not driver_name and not round_name:
            return UNKNOWN_LABEL

        for rule in self.carrier_rules:
            candidate = driver_name if rule.field == "driver" else round_name
            if rule_matches(rule, candidate, rule.mode):
                return rule.carrier
        return UNKNOWN_LABEL

    def assign_carriers(self, records: Sequence[CarrierSubject]) -> CarrierAssignment:
        """Resolve carriers for many records and collect unassigned drivers.

        Args:
            records: Rounds, tasks or driver names.

        Returns:
            ``CarrierAssignment`` with one label per record (input order) and
            the sorted distinct names of drivers that matched no rule. A
            record with no driver name is reported by its round name.
        """
        labels: list[str] = []
        unassigned: set[str] = set()
        for record in records:
            label = self.carrier_for(record)
            labels.append(label)
            if label == UNKNOWN_LABEL:
                driver_name, round_name = _carrier_fields(record)
                name = driver_name or round_name
                if name:
                    unassigned.add(name)

        if unassigned:
            log.debug("%d driver(s) matched no carrier rule", len(unassigned))
        return CarrierAssignment(labels=tuple(labels), unassigned_drivers=tuple(sorted(unassigned)))


def _carrier_fields(subject: CarrierSubject) -> tuple[Optional[str], Optional[str]]:
    """(driver full name, round name) of a carrier subject."""
    if subject is None:
        return None, None
    if isinstance(subject, str):
        name = subject.strip()
        return (name or None), None
    if isinstance(subject, Round):
        return subject.driver_name, subject.name
    if isinstance(subject, Task):
        return subject.driver_name, subject.round_name
    raise TypeError(f"Cannot resolve a carrier for {type(subject).__name__}.")
