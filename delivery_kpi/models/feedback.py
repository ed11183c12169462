"""
Customer feedback models: NPS survey verbatims and categorised comments.

These records are produced by collaborators (CSV import of the NPS survey,
the AI comment categoriser) and only *read* by the aggregation layer, which
counts them and computes NPS.

``NpsVerbatim.nps_score`` is the raw 0–10 answer. The survey export also
carries a ``npsCategory`` column, but the engine always re-derives the
bucket from the score (see ``aggregation.nps.nps_category``) so that a
mislabelled row cannot skew the NPS.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from delivery_kpi.models.task import as_id, as_text
from delivery_kpi.taxonomy.delivery_taxonomy import CommentStatus
from delivery_kpi.utils.time_utils import parse_timestamp

_FEEDBACK_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


def _as_list(v: Any) -> tuple[str, ...]:
    if isinstance(v, (list, tuple)):
        return tuple(text for text in (as_text(x) for x in v) if text)
    text = as_text(v)
    return (text,) if text and text.strip() else ()


def _text_or(default: str, v: Any) -> str:
    text = as_text(v)
    return default if text is None else text


class NpsVerbatim(BaseModel):
    """One NPS survey answer linked to a delivery task."""

    model_config = _FEEDBACK_CONFIG

    task_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("task_id", "taskId"))
    nps_score: Optional[int] = Field(
        default=None, validation_alias=AliasChoices("nps_score", "npsScore")
    )
    verbatim: str = ""
    store: Optional[str] = None
    depot: Optional[str] = None
    carrier: Optional[str] = None
    driver: Optional[str] = None
    task_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("task_date", "taskDate")
    )

    @field_validator("nps_score", mode="before")
    @classmethod
    def drop_out_of_range(cls, v: Any) -> Optional[int]:
        if isinstance(v, str) and v.strip().lstrip("-").isdigit():
            v = int(v.strip())
        if isinstance(v, (int, float)) and not isinstance(v, bool) and 0 <= v <= 10:
            return int(v)
        return None

    @field_validator("task_date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)

    @field_validator("task_id", "store", "depot", "carrier", "driver", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> Optional[str]:
        return as_id(as_text(v))

    @field_validator("verbatim", mode="before")
    @classmethod
    def coerce_verbatim(cls, v: Any) -> str:
        return _text_or("", v)


class NpsData(BaseModel):
    """A batch of verbatims imported for one association date."""

    model_config = _FEEDBACK_CONFIG

    batch_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("batch_id", "id"))
    association_date: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("association_date", "associationDate")
    )
    verbatims: tuple[NpsVerbatim, ...] = ()

    @field_validator("verbatims", mode="before")
    @classmethod
    def keep_verbatim_objects(cls, v: Any) -> tuple:
        if not isinstance(v, (list, tuple)):
            return ()
        return tuple(x for x in v if isinstance(x, (dict, NpsVerbatim)))

    @field_validator("association_date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Optional[datetime]:
        return parse_timestamp(v)


class ProcessedVerbatim(NpsVerbatim):
    """An NPS verbatim after manual treatment (responsibility + category)."""

    responsibilities: tuple[str, ...] = ()
    category: tuple[str, ...] = ()
    status: str = "à traiter"

    @field_validator("responsibilities", "category", mode="before")
    @classmethod
    def coerce_list(cls, v: Union[str, list, None]) -> tuple[str, ...]:
        return _as_list(v)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> str:
        return _text_or(CommentStatus.TO_PROCESS.value, v)


class CategorizedComment(BaseModel):
    """A negative driver comment with its (keyword or AI) category."""

    model_config = _FEEDBACK_CONFIG

    task_id: str = Field(validation_alias=AliasChoices("task_id", "taskId", "id"))
    comment: str = ""
    rating: Optional[float] = None
    category: str = "Autre"
    status: str = "à traiter"
    driver_name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("driver_name", "driverName")
    )

    @field_validator("task_id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str:
        return str(v)

    @field_validator("comment", mode="before")
    @classmethod
    def coerce_comment(cls, v: Any) -> str:
        return _text_or("", v)

    @field_validator("driver_name", mode="before")
    @classmethod
    def coerce_driver_name(cls, v: Any) -> Optional[str]:
        return as_id(as_text(v))

    @field_validator("category", mode="before")
    @classmethod
    def default_category(cls, v: Any) -> str:
        return _text_or("Autre", v)

    @field_validator("status", mode="before")
    @classmethod
    def default_status(cls, v: Any) -> str:
        return _text_or(CommentStatus.TO_PROCESS.value, v)

    @field_validator("rating", mode="before")
    @classmethod
    def drop_invalid_rating(cls, v: Any) -> Optional[float]:
        if isinstance(v, (int, float)) and not isinstance(v, bool) and 0 <= v <= 5:
            return float(v)
        return None
