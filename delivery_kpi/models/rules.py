"""
Classification rule models — operator-maintained, ordered keyword rules.

Rules are owned by the settings subsystem and handed to the engine as plain
ordered lists. **List order is the only precedence**: the first rule whose
keywords match wins, so operators reorder rules to change outcomes.

Keywords are stripped on construction and blank entries are discarded (the
settings form splits a comma-separated string, which leaves empty items
behind). A blank keyword would otherwise match every candidate in
``contains`` mode.

All rule models are frozen; ``RuleSet`` bundles the three lists.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from delivery_kpi.taxonomy.delivery_taxonomy import (
    ForecastCategory,
    ForecastRuleType,
    MatchMode,
)

_RULE_CONFIG = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


def _clean_keywords(v: Any) -> tuple[str, ...]:
    if v is None:
        return ()
    if isinstance(v, str):
        v = v.split(",")
    return tuple(k.strip() for k in v if isinstance(k, str) and k.strip())


class DepotRule(BaseModel):
    """Maps hub names containing any keyword to a depot label.

    Attributes:
        name: Depot label, e.g. ``"Rungis"``.
        keywords: Substrings searched (case-insensitively) in the hub name.
    """

    model_config = _RULE_CONFIG

    name: str
    keywords: tuple[str, ...] = Field(
        default=(), validation_alias=AliasChoices("keywords", "prefixes", "patterns")
    )

    @field_validator("keywords", mode="before")
    @classmethod
    def clean_keywords(cls, v: Any) -> tuple[str, ...]:
        return _clean_keywords(v)


class CarrierRule(BaseModel):
    """Maps a driver or round to a carrier label.

    Attributes:
        carrier: Carrier label, e.g. ``"ID LOG"``.
        keywords: Patterns compared to the selected field.
        field: Which text to test: ``"driver"`` (driver full name) or
            ``"round"`` (round name).
        mode: ``"contains"`` or ``"startsWith"``.
    """

    model_config = _RULE_CONFIG

    carrier: str = Field(validation_alias=AliasChoices("carrier", "name"))
    keywords: tuple[str, ...] = ()
    field: str = "driver"
    mode: MatchMode = MatchMode.CONTAINS

    @field_validator("keywords", mode="before")
    @classmethod
    def clean_keywords(cls, v: Any) -> tuple[str, ...]:
        return _clean_keywords(v)

    @field_validator("field")
    @classmethod
    def validate_field(cls, v: str) -> str:
        if v not in {"driver", "round"}:
            raise ValueError(f"Unknown carrier rule field '{v}'. Must be 'driver' or 'round'.")
        return v


class ForecastRule(BaseModel):
    """Keyword rule bucketing rounds by time of day or business unit.

    Attributes:
        rule_id: Store document id.
        name: Operator-facing rule name.
        type: ``"time"`` (Matin / Soir) or ``"type"`` (business unit).
        category: ``Matin``, ``Soir``, ``BU`` or ``Classique``.
        keywords: Keywords compared to the lower-cased round name.
        is_active: Only active rules take part in classification.
    """

    model_config = _RULE_CONFIG

    rule_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("rule_id", "id"))
    name: str = ""
    type: ForecastRuleType
    category: ForecastCategory
    keywords: tuple[str, ...] = ()
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    @field_validator("keywords", mode="before")
    @classmethod
    def clean_keywords(cls, v: Any) -> tuple[str, ...]:
        return _clean_keywords(v)


class RuleSet(BaseModel):
    """The three ordered rule lists handed to the engine together."""

    model_config = _RULE_CONFIG

    depot_rules: tuple[DepotRule, ...] = Field(
        default=(), validation_alias=AliasChoices("depot_rules", "depotRules")
    )
    carrier_rules: tuple[CarrierRule, ...] = Field(
        default=(), validation_alias=AliasChoices("carrier_rules", "carrierRules")
    )
    forecast_rules: tuple[ForecastRule, ...] = Field(
        default=(), validation_alias=AliasChoices("forecast_rules", "forecastRules")
    )
