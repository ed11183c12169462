"""
Delivery task models — one stop within a round, as exported by the routing
platform into the document store.

Field names
-----------
The store uses French camelCase keys (``tacheId``, ``nomHub``,
``dateCloture``...). Every field accepts the store key *and* its snake_case
name via ``AliasChoices``, so records can be built from raw documents with
``Task.model_validate(doc)`` or directly in tests with keyword arguments.

Lenient parsing
---------------
Real-world exports are full of holes. Date fields go through
``parse_timestamp`` and become ``None`` when unreadable; out-of-range ratings
and negative counters are dropped to ``None``. A ``null`` or oddly typed
value falls back to the field default, and free-text fields only keep
strings and numbers. A malformed record never raises; metrics that depend
on a missing field simply skip that record.

All models are frozen (immutable) after construction.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from delivery_kpi.utils.time_utils import parse_timestamp

_RECORD_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


def as_text(v: Any) -> Optional[str]:
    """Free-text store value as ``str``; numbers are stringified, other
    non-string values (objects, lists, booleans) become ``None``."""
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return str(v)
    return None


def as_id(v: Any) -> Optional[str]:
    """Identifier or name: stringified and stripped, ``None`` when blank."""
    if v is None:
        return None
    text = str(v).strip()
    return text or None


class Driver(BaseModel):
    """Driver identity as embedded in a task or a round."""

    model_config = _RECORD_CONFIG

    first_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("first_name", "firstName", "prenom")
    )
    last_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("last_name", "lastName", "nom")
    )
    external_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("external_id", "externalId", "idExterne")
    )

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def coerce_names(cls, v: Any) -> Optional[str]:
        return as_text(v)

    @field_validator("external_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Optional[str]:
        return as_id(as_text(v))

    @property
    def full_name(self) -> Optional[str]:
        """``"first last"`` stripped, or ``None`` when both parts are empty."""
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or None


class Article(BaseModel):
    """A line item of a task; crates ("bacs") are articles with a ``BAC_*`` type."""

    model_config = _RECORD_CONFIG

    barcode: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("barcode", "codeBarre")
    )
    type: Optional[str] = None
    status: Optional[str] = Field(default=None, validation_alias=AliasChoices("status", "statut"))
    quantity: int = Field(default=1, validation_alias=AliasChoices("quantity", "quantite"))
    weight_kg: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("weight_kg", "poids", "poidsEnKg")
    )

    @field_validator("barcode", "type", "status", mode="before")
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return as_text(v)

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v: Any) -> int:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0:
            return int(v)
        return 1

    @field_validator("weight_kg", mode="before")
    @classmethod
    def drop_invalid_weight(cls, v: Any) -> Optional[float]:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0:
            return float(v)
        return None


class TimeWindow(BaseModel):
    """Scheduled delivery slot. ``end`` may be missing on legacy records."""

    model_config = _RECORD_CONFIG

    start: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("start", "debut"))
    end: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("end", "fin"))

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)


class Task(BaseModel):
    """One delivery stop.

    Attributes:
        task_id: Platform task identifier (``tacheId``).
        hub_name: Hub the task is attached to (``nomHub``).
        round_name: Round name (``nomTournee``); ``None`` for unplanned tasks.
        sequence: Stop index within the round.
        date: Planned delivery date.
        window: Scheduled time window.
        closed_at: Completion timestamp (``dateCloture``).
        status: Fine-grained status (``TaskStatus`` values).
        progression: Coarse progression (``TaskProgression`` values).
        attempts: Delivery attempts (``tentatives``).
        driver: Driver identity (``livreur`` or flat ``prenomChauffeur`` /
            ``nomChauffeur``).
        client: Shipper account (e.g. ``"CARREFOUR LAD"``).
        contact: End customer contact name.
        articles: Line items; crates are ``BAC_*`` typed articles.
        rating: Customer rating of the driver, 0–5.
        comment: Customer free-text comment.
        forced_arrival: Driver forced the on-site arrival (``surPlaceForce``).
        forced_contactless: Contactless delivery was forced.
        address_correct: ``False`` when the driver forced a wrong address.
        completed_by: Channel that closed the task (``"mobile"`` = scanned).
        instructions: Delivery instructions text.
        weight_kg: Task weight in kilograms.
        bacs_sec / bacs_frais / bacs_surg: Legacy per-task crate counters,
            used when the task carries no articles.
        estimated_arrival: Planned arrival from the routing plan
            (``heureArriveeEstimee``).
        postal_code: Delivery postal code (``codePostal``).
        unplanned: Explicit unplanned flag.
    """

    model_config = _RECORD_CONFIG

    task_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("task_id", "tacheId", "id")
    )
    hub_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("hub_name", "nomHub"))
    round_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("round_name", "nomTournee")
    )
    sequence: Optional[int] = None
    date: Optional[datetime] = None
    window: TimeWindow = TimeWindow()
    closed_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("closed_at", "dateCloture")
    )
    status: Optional[str] = None
    progression: Optional[str] = None
    attempts: Optional[int] = Field(default=None, validation_alias=AliasChoices("attempts", "tentatives"))
    driver: Optional[Driver] = Field(default=None, validation_alias=AliasChoices("driver", "livreur"))
    client: Optional[str] = None
    contact: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contact", "personneContact")
    )
    articles: tuple[Article, ...] = ()
    rating: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("rating", "notationLivreur")
    )
    comment: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("comment", "commentaireLivreur", "metaCommentaireLivreur")
    )
    forced_arrival: bool = Field(
        default=False, validation_alias=AliasChoices("forced_arrival", "surPlaceForce")
    )
    forced_contactless: bool = Field(
        default=False, validation_alias=AliasChoices("forced_contactless", "sansContactForce")
    )
    address_correct: Optional[bool] = Field(
        default=None, validation_alias=AliasChoices("address_correct", "adresseCorrecte")
    )
    completed_by: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("completed_by", "completePar", "terminePar")
    )
    instructions: Optional[str] = None
    weight_kg: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("weight_kg", "poidsEnKg")
    )
    bacs_sec: Optional[int] = Field(default=None, validation_alias=AliasChoices("bacs_sec", "bacsSec"))
    bacs_frais: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("bacs_frais", "bacsFrais")
    )
    bacs_surg: Optional[int] = Field(default=None, validation_alias=AliasChoices("bacs_surg", "bacsSurg"))
    estimated_arrival: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("estimated_arrival", "heureArriveeEstimee")
    )
    postal_code: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("postal_code", "codePostal")
    )
    unplanned: bool = False

    @model_validator(mode="before")
    @classmethod
    def lift_store_fields(cls, data: Any) -> Any:
        """Map nested / flat store layouts onto the model's fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        meta = data.get("metaDonnees")
        if isinstance(meta, dict):
            data.setdefault("notationLivreur", meta.get("notationLivreur"))
            data.setdefault("commentaireLivreur", meta.get("commentaireLivreur"))

        if "window" not in data:
            slot = data.get("creneauHoraire")
            if isinstance(slot, dict):
                data["window"] = slot
            elif "debutCreneauInitial" in data or "finCreneauInitial" in data:
                data["window"] = {
                    "start": data.get("debutCreneauInitial"),
                    "end": data.get("finCreneauInitial"),
                }

        if "driver" not in data and "livreur" not in data:
            if "prenomChauffeur" in data or "nomChauffeur" in data:
                data["driver"] = {
                    "first_name": data.get("prenomChauffeur"),
                    "last_name": data.get("nomChauffeur"),
                }

        execution = data.get("execution")
        if isinstance(execution, dict) and isinstance(execution.get("sansContact"), dict):
            data.setdefault("sansContactForce", execution["sansContact"].get("forced"))

        arrival = data.get("heureReelle")
        if isinstance(arrival, dict) and isinstance(arrival.get("arrivee"), dict):
            data.setdefault("adresseCorrecte", arrival["arrivee"].get("adresseCorrecte"))

        return data

    @field_validator("date", "closed_at", "estimated_arrival", mode="before")
    @classmethod
    def parse_dates(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("task_id", "round_name", "hub_name", "postal_code", mode="before")
    @classmethod
    def stringify_ids(cls, v: Any) -> Optional[str]:
        return as_id(v)

    @field_validator(
        "status", "progression", "client", "contact", "comment", "completed_by", "instructions",
        mode="before",
    )
    @classmethod
    def coerce_text(cls, v: Any) -> Optional[str]:
        return as_text(v)

    @field_validator("window", mode="before")
    @classmethod
    def default_window(cls, v: Any) -> Any:
        if isinstance(v, (dict, TimeWindow)):
            return v
        return TimeWindow()

    @field_validator("driver", mode="before")
    @classmethod
    def drop_invalid_driver(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, Driver)) else None

    @field_validator("articles", mode="before")
    @classmethod
    def keep_article_objects(cls, v: Any) -> tuple:
        """``null`` or a non-list becomes no articles; non-object items are dropped."""
        if not isinstance(v, (list, tuple)):
            return ()
        return tuple(a for a in v if isinstance(a, (dict, Article)))

    @field_validator("address_correct", mode="before")
    @classmethod
    def strict_optional_flag(cls, v: Any) -> Optional[bool]:
        return v if isinstance(v, bool) else None

    @field_validator("rating", mode="before")
    @classmethod
    def drop_invalid_rating(cls, v: Any) -> Optional[float]:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and 0 <= v <= 5:
            return float(v)
        return None

    @field_validator(
        "sequence", "attempts", "bacs_sec", "bacs_frais", "bacs_surg", mode="before"
    )
    @classmethod
    def drop_invalid_counter(cls, v: Any) -> Optional[int]:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0:
            return int(v)
        return None

    @field_validator("weight_kg", mode="before")
    @classmethod
    def drop_invalid_weight(cls, v: Any) -> Optional[float]:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0:
            return float(v)
        return None

    @field_validator("forced_arrival", "forced_contactless", "unplanned", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return v is True

    @property
    def driver_name(self) -> Optional[str]:
        return self.driver.full_name if self.driver else None

    @property
    def is_unplanned(self) -> bool:
        """True when the task has no round assignment."""
        return self.unplanned or not self.round_name


def sequence_conflicts(tasks: list[Task]) -> dict[str, list[int]]:
    """Return duplicated sequence indexes per round name.

    Sequence is expected to be unique within a round when present. This is a
    diagnostic only; duplicated tasks are still aggregated.

    Returns:
        Mapping of round name -> sorted list of sequence values seen more
        than once. Rounds without conflicts are omitted.
    """
    seen: dict[str, set[int]] = {}
    dupes: dict[str, set[int]] = {}
    for task in tasks:
        if task.round_name is None or task.sequence is None:
            continue
        bucket = seen.setdefault(task.round_name, set())
        if task.sequence in bucket:
            dupes.setdefault(task.round_name, set()).add(task.sequence)
        bucket.add(task.sequence)
    return {name: sorted(values) for name, values in dupes.items()}
