"""
JSON loaders for rule sets and record exports.

Rule set file
-------------
A single JSON object with three ordered lists; list order is rule precedence::

    {
      "depotRules":    [{"name": "Rungis", "keywords": ["Rung"]}, ...],
      "carrierRules":  [{"carrier": "ID LOG", "keywords": ["id log"],
                         "field": "driver", "mode": "contains"}, ...],
      "forecastRules": [{"name": "Matin", "type": "time", "category": "Matin",
                         "keywords": ["matin"], "isActive": true}, ...]
    }

Any list may be omitted. Validation rules:
  - the top level must be an object and each list a JSON array of objects;
  - every rule must parse (known ``mode`` / ``field`` / ``type`` /
    ``category``);
  - duplicate depot names are rejected (the second would never fire).

Errors are ``ValueError`` naming the list and the index of the bad entry.

Record exports
--------------
Task / round / feedback exports are JSON arrays of store documents, or an
object wrapping the array under a key (``{"tasks": [...]}``). Records are
parsed leniently by their models; only a non-object entry is an error.

Usage
-----
    from delivery_kpi.rules.loader import load_rule_set, load_tasks

    rules = load_rule_set(Path("config/rules.json"))
    tasks = load_tasks(Path("exports/tasks.json"))
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from delivery_kpi.models.feedback import CategorizedComment, NpsData, ProcessedVerbatim
from delivery_kpi.models.round import Round
from delivery_kpi.models.rules import CarrierRule, DepotRule, ForecastRule, RuleSet
from delivery_kpi.models.task import Task

log = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

# (canonical key, accepted keys, model)
_RULE_LISTS: tuple[tuple[str, tuple[str, ...], type[BaseModel]], ...] = (
    ("depot_rules", ("depotRules", "depot_rules"), DepotRule),
    ("carrier_rules", ("carrierRules", "carrier_rules"), CarrierRule),
    ("forecast_rules", ("forecastRules", "forecast_rules"), ForecastRule),
)


def load_json(path: Path) -> Any:
    """Read and decode a JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is not valid JSON.
    """
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    try:
        with open(path, encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


# ── Rule sets ─────────────────────────────────────────────────────────────────


def _parse_rule_list(key: str, raw: Any, model: type[M]) -> list[M]:
    if not isinstance(raw, list):
        raise ValueError(f"'{key}' must be a JSON array, got {type(raw).__name__}.")
    rules: list[M] = []
    for i, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ValueError(f"'{key}' entry at index {i} must be an object.")
        try:
            rules.append(model.model_validate(entry))
        except ValidationError as exc:
            raise ValueError(f"'{key}' entry at index {i} is invalid: {exc}") from exc
    return rules


def parse_rule_set(data: Any) -> RuleSet:
    """Validate a decoded rule-set document and build a ``RuleSet``."""
    if not isinstance(data, dict):
        raise ValueError(f"Rule set must be a JSON object, got {type(data).__name__}.")

    parsed: dict[str, list[Any]] = {}
    for canonical, keys, model in _RULE_LISTS:
        key = next((k for k in keys if k in data), None)
        parsed[canonical] = [] if key is None else _parse_rule_list(key, data[key], model)

    seen: set[str] = set()
    for i, rule in enumerate(parsed["depot_rules"]):
        if rule.name in seen:
            raise ValueError(f"Duplicate depot rule '{rule.name}' at index {i}.")
        seen.add(rule.name)

    for canonical, _, _ in _RULE_LISTS:
        empty = [i for i, r in enumerate(parsed[canonical]) if not r.keywords]
        if empty:
            log.warning("%s: rule(s) at index %s have no keyword and never match", canonical, empty)

    return RuleSet(
        depot_rules=tuple(parsed["depot_rules"]),
        carrier_rules=tuple(parsed["carrier_rules"]),
        forecast_rules=tuple(parsed["forecast_rules"]),
    )


def load_rule_set(path: Path) -> RuleSet:
    """Load a rule-set JSON file.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ValueError: If the file is malformed (see module docstring).
    """
    rules = parse_rule_set(load_json(path))
    log.info(
        "Loaded rules from %s: %d depot, %d carrier, %d forecast",
        path, len(rules.depot_rules), len(rules.carrier_rules), len(rules.forecast_rules),
    )
    return rules


# ── Record exports ────────────────────────────────────────────────────────────


def load_records(path: Path, model: type[M], key: Optional[str] = None) -> list[M]:
    """Load a JSON export of store documents as ``model`` instances.

    Args:
        path: JSON file: an array, or an object holding the array under
            ``key``.
        model: Record model (``Task``, ``Round``...).
        key: Wrapper key accepted when the top level is an object.

    Raises:
        ValueError: If the layout is not an array of objects.
    """
    data = load_json(path)
    if isinstance(data, dict) and key is not None and key in data:
        data = data[key]
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of records, got {type(data).__name__}.")

    records: list[M] = []
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise ValueError(f"{path}: record at index {i} must be an object.")
        try:
            records.append(model.model_validate(entry))
        except ValidationError as exc:
            raise ValueError(f"{path}: record at index {i} is invalid: {exc}") from exc
    log.debug("Loaded %d %s record(s) from %s", len(records), model.__name__, path)
    return records


def load_tasks(path: Path) -> list[Task]:
    return load_records(path, Task, key="tasks")


def load_rounds(path: Path) -> list[Round]:
    return load_records(path, Round, key="rounds")


def load_nps_data(path: Path) -> list[NpsData]:
    return load_records(path, NpsData, key="npsData")


def load_comments(path: Path) -> list[CategorizedComment]:
    return load_records(path, CategorizedComment, key="comments")


def load_processed_verbatims(path: Path) -> list[ProcessedVerbatim]:
    return load_records(path, ProcessedVerbatim, key="verbatims")
