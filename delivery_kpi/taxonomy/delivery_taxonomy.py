"""
Delivery taxonomy: the closed vocabularies used by tasks, rounds and rules.

Four families of labels:
  - ``TaskProgression`` / ``TaskStatus`` — the *where is it*: lifecycle of a
    delivery stop as reported by the routing platform.
  - ``HubCategory``     — the *what kind of place*: warehouse vs. in-store.
  - ``ForecastRuleType`` / ``ForecastCategory`` — forecast bucketing.
  - ``MatchMode``       — how a rule keyword is compared to a candidate.

Status values arrive upper-cased from the platform but are compared
case-insensitively (see ``is_failed``), since exports are not consistent.

This module has NO imports from any other ``delivery_kpi`` package.
"""

from enum import StrEnum

UNKNOWN_LABEL = "Inconnu"
"""Fallback label for any classification where no rule fires."""


class TaskProgression(StrEnum):
    """Coarse progression of a delivery task."""

    ANNOUNCED = "ANNOUNCED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class TaskStatus(StrEnum):
    """Fine-grained delivery status."""

    PENDING = "PENDING"
    MISSING = "MISSING"
    DELIVERED = "DELIVERED"
    PARTIAL_DELIVERED = "PARTIAL_DELIVERED"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    NOT_DELIVERED = "NOT_DELIVERED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class RoundStatus(StrEnum):
    """Round lifecycle status."""

    PLANNED = "PLANNED"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"


class HubCategory(StrEnum):
    """Category of a hub, derived from its naming convention."""

    DEPOT = "depot"
    """Warehouse-type hub ("entrepot")."""

    MAGASIN = "magasin"
    """In-store drop point."""

    AUTRE = "autre"
    """Anything the naming convention does not recognise."""


class BacType(StrEnum):
    """Reusable crate types tracked on articles."""

    SEC = "BAC_SEC"
    FRAIS = "BAC_FRAIS"
    SURGELE = "BAC_SURGELE"


class ArticleStatus(StrEnum):
    MISSING = "MISSING"


class MatchMode(StrEnum):
    """Keyword comparison mode for ordered rules."""

    CONTAINS = "contains"
    STARTS_WITH = "startsWith"


class ForecastRuleType(StrEnum):
    TIME = "time"
    """Time-of-day rule (Matin / Soir), matched with ``contains``."""

    TYPE = "type"
    """Business-unit rule, matched with ``startsWith``."""


class ForecastCategory(StrEnum):
    MATIN = "Matin"
    SOIR = "Soir"
    BU = "BU"
    CLASSIQUE = "Classique"


class NpsCategory(StrEnum):
    PROMOTER = "Promoter"
    PASSIVE = "Passive"
    DETRACTOR = "Detractor"


class CommentStatus(StrEnum):
    """Treatment status of a customer comment or verbatim."""

    TO_PROCESS = "à traiter"
    IN_PROGRESS = "en cours"
    PROCESSED = "traité"


class FilterDimension(StrEnum):
    """Pre-filter dimension for dashboard aggregation."""

    ALL = "all"
    DEPOT = "depot"
    STORE = "store"
    CATEGORY = "category"


FAILED_PROGRESSIONS: frozenset[str] = frozenset({
    TaskProgression.FAILED, TaskProgression.CANCELLED,
})
FAILED_STATUSES: frozenset[str] = frozenset({
    TaskStatus.DELIVERY_FAILED,
    TaskStatus.NOT_DELIVERED,
    TaskStatus.CANCELLED,
    TaskStatus.REJECTED,
})

SCANBAC_COMPLETED_BY = "mobile"
"""``completed_by`` value meaning the crates were scanned on the driver app."""

QUALITY_ALERT_MAX_RATING = 3
"""Ratings at or below this value raise a quality alert."""


def is_completed(progression: str | None) -> bool:
    return (progression or "").upper() == TaskProgression.COMPLETED


def is_failed(progression: str | None, status: str | None) -> bool:
    """True if either the progression or the status marks a failed delivery."""
    return (
        (progression or "").upper() in FAILED_PROGRESSIONS
        or (status or "").upper() in FAILED_STATUSES
    )


def is_quality_alert(rating: float | None) -> bool:
    return rating is not None and rating <= QUALITY_ALERT_MAX_RATING
