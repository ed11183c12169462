"""
Round (``Tournee``) model — one vehicle route for one day.

Durations follow the routing platform's convention: ``planned_total_seconds``
(``tempsTotal``) and ``lasted_seconds`` (``realInfo.hasLasted``) are in
seconds. ``finished_at`` is ``realInfo.hasFinished``.

Lenient on data-shape problems, like ``Task``: a negative realized duration
or a completion timestamp in the future is dropped to ``None`` rather than
rejected.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from delivery_kpi.models.task import Driver, as_id, as_text
from delivery_kpi.utils.time_utils import parse_timestamp, utcnow


class Round(BaseModel):
    """One vehicle route.

    Attributes:
        round_id: Store document id.
        name: Round name (``nom``); free text, carries BU / shift hints.
        date: Round date.
        hub_name: Hub the round departs from (``nomHub``).
        driver: Driver identity.
        status: Round status (``RoundStatus`` values).
        order_count: Number of orders planned on the round.
        planned_total_seconds: Planned total time (``tempsTotal``).
        finished_at: Realized completion timestamp.
        lasted_seconds: Realized duration.
        bacs_sec / bacs_frais / bacs_surg: Round-level crate counters, used
            when the round's tasks are not available.
        weight_kg: Round weight computed upstream (``poidsReel``).
        carrier_override: Operator-forced carrier label; wins over rules.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    round_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("round_id", "id", "_id", "idInterne")
    )
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("name", "nom"))
    date: Optional[datetime] = None
    hub_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("hub_name", "nomHub")
    )
    driver: Optional[Driver] = None
    status: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("status", "statut")
    )
    order_count: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("order_count", "nbCommandes", "orderCount")
    )
    planned_total_seconds: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("planned_total_seconds", "tempsTotal", "totalTime"),
    )
    finished_at: Optional[datetime] = Field(
        default=None,
        validation_alias=AliasChoices("finished_at", "heureFinReelle", "hasFinished"),
    )
    lasted_seconds: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("lasted_seconds", "dureeReel", "hasLasted")
    )
    bacs_sec: Optional[int] = Field(default=None, validation_alias=AliasChoices("bacs_sec", "bacsSec"))
    bacs_frais: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("bacs_frais", "bacsFrais")
    )
    bacs_surg: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("bacs_surg", "bacsSurg")
    )
    weight_kg: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("weight_kg", "poidsReel")
    )
    carrier_override: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("carrier_override", "carrierOverride")
    )

    @model_validator(mode="before")
    @classmethod
    def lift_store_fields(cls, data: Any) -> Any:
        """Map ``realInfo`` and flat driver keys onto the model's fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        real = data.get("realInfo")
        if isinstance(real, dict):
            data.setdefault("hasFinished", real.get("hasFinished"))
            data.setdefault("hasLasted", real.get("hasLasted"))

        if "driver" not in data and ("prenomChauffeur" in data or "nomChauffeur" in data):
            data["driver"] = {
                "first_name": data.get("prenomChauffeur"),
                "last_name": data.get("nomChauffeur"),
            }
        return data

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("finished_at", mode="before")
    @classmethod
    def parse_finished(cls, v: Any) -> Optional[datetime]:
        parsed = parse_timestamp(v)
        if parsed is not None and parsed > utcnow():
            return None
        return parsed

    @field_validator("round_id", "name", "hub_name", "carrier_override", mode="before")
    @classmethod
    def stringify(cls, v: Any) -> Optional[str]:
        return as_id(v)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> Optional[str]:
        return as_text(v)

    @field_validator("driver", mode="before")
    @classmethod
    def drop_invalid_driver(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, Driver)) else None

    @field_validator("planned_total_seconds", "lasted_seconds", "weight_kg", mode="before")
    @classmethod
    def drop_negative_quantity(cls, v: Any) -> Optional[float]:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0:
            return float(v)
        return None

    @field_validator("order_count", "bacs_sec", "bacs_frais", "bacs_surg", mode="before")
    @classmethod
    def drop_invalid_counter(cls, v: Any) -> Optional[int]:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v >= 0:
            return int(v)
        return None

    @property
    def driver_name(self) -> Optional[str]:
        return self.driver.full_name if self.driver else None
