"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local env overrides (gitignored)
  4. Environment variables        — ``DELIVERY_KPI_*`` prefix

Entry point: ``load_config(config_path=None) -> AppConfig``

Only operator-facing settings live here (logging, where the rule set is,
how reports are rendered). Business policy such as the capacity limits or
the NPS thresholds are code constants, and classification rules are data
loaded from the rules file.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

# ── Sub-config models ─────────────────────────────────────────────────────────


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: Optional[str] = None
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()

    @field_validator("log_file", mode="before")
    @classmethod
    def empty_log_file(cls, v: Any) -> Optional[str]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        return v


class RulesConfig(BaseModel):
    """Location of the ordered classification rule set."""

    model_config = ConfigDict(frozen=True)

    rules_file: str = "config/rules.json"


class ReportingConfig(BaseModel):
    """Rendering of ASCII reports."""

    model_config = ConfigDict(frozen=True)

    na_label: str = "N/A"
    decimals: int = 2
    top_n_drivers: int = 5

    @field_validator("decimals")
    @classmethod
    def validate_decimals(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError(f"decimals must be in [0, 6], got {v}.")
        return v

    @field_validator("top_n_drivers")
    @classmethod
    def validate_top_n(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"top_n_drivers must be >= 1, got {v}.")
        return v


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth.

    CLI commands receive an ``AppConfig`` instance built by ``load_config()``.
    """

    model_config = ConfigDict(frozen=True)

    logging: LoggingConfig = LoggingConfig()
    rules: RulesConfig = RulesConfig()
    reporting: ReportingConfig = ReportingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If the specified ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    if config_path is None:
        config_path = root / "config" / "default.toml"

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}\n"
            "Create config/default.toml or pass --config."
        )

    with open(config_path, "rb") as f:
        raw: dict[str, Any] = tomllib.load(f)

    local_config_path = config_path.parent / "local.toml"
    if local_config_path.exists():
        with open(local_config_path, "rb") as f:
            raw = _deep_merge(raw, tomllib.load(f))

    # 3. Apply DELIVERY_KPI_* environment variable overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply DELIVERY_KPI_* env vars to the raw config dict.

    Supported overrides:
      DELIVERY_KPI_LOG_LEVEL   → raw["logging"]["level"]
      DELIVERY_KPI_RULES_FILE  → raw["rules"]["rules_file"]
      DELIVERY_KPI_DEBUG       → raw["debug"]
    """
    if log_level := os.environ.get("DELIVERY_KPI_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if rules_file := os.environ.get("DELIVERY_KPI_RULES_FILE"):
        raw.setdefault("rules", {})["rules_file"] = rules_file

    if debug := os.environ.get("DELIVERY_KPI_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        logging=LoggingConfig(**raw.get("logging", {})),
        rules=RulesConfig(**raw.get("rules", {})),
        reporting=ReportingConfig(**raw.get("reporting", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
